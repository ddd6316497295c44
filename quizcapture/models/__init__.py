"""Data models for the QuizCapture session core."""

from .transcript import Role, TranscriptLine
from .events import (
    ErrorNotification,
    GenerationNotification,
    SegmentationNotification,
    StatusNotification,
    TimerNotification,
)

__all__ = [
    "Role",
    "TranscriptLine",
    # Notifications published to subscribers
    "ErrorNotification",
    "GenerationNotification",
    "SegmentationNotification",
    "StatusNotification",
    "TimerNotification",
]
