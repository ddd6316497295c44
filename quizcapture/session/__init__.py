"""Recording session core: segmentation, timer and the controller."""

from .errors import (
    AlreadyRunning,
    GenerationFailed,
    InvalidDuration,
    PersistenceFailed,
    SessionError,
    SourceUnavailable,
    TimerRunning,
)
from .clock import ManualScheduler, Scheduler, ThreadingScheduler
from .controller import RecordingSessionController

__all__ = [
    "SessionError",
    "InvalidDuration",
    "AlreadyRunning",
    "TimerRunning",
    "SourceUnavailable",
    "GenerationFailed",
    "PersistenceFailed",
    "Scheduler",
    "ManualScheduler",
    "ThreadingScheduler",
    "RecordingSessionController",
]
