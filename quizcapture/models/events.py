"""Event and notification models for the serialized session dispatch path."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Tuple

from .transcript import TranscriptLine


# Events are enqueued by scheduled ticks and async completions and applied by
# the controller one at a time.

@dataclass
class SegmentationTick:
    pass


@dataclass
class TimerTick:
    pass


@dataclass
class TimerGraceElapsed:
    session_id: str


@dataclass
class TimerAutoReset:
    session_id: str


@dataclass
class ConnectTimeout:
    attempt: int


@dataclass
class LinesSaved:
    token: Tuple  # ("segment" | "flush" | "retry", session epoch, number)
    lines: List[TranscriptLine]


@dataclass
class LinesSaveFailed:
    token: Tuple
    lines: List[TranscriptLine]
    error: str


@dataclass
class QuestionsReady:
    token: Any  # timer session id or ("segment", epoch, segment index)
    questions: List[Any]


@dataclass
class QuestionsFailed:
    token: Any
    error: str


# Notifications are published to UI subscribers after state changes.

@dataclass
class StatusNotification:
    """Recording status or mute flag changed."""
    recording_status: str
    muted: bool
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class SegmentationNotification:
    """Segmentation state changed (pause detected, segment committed, reset)."""
    event_type: str  # "paused", "resumed", "committed", "suppressed", "reset"
    segment_count: int
    is_paused: bool
    remaining_ms: int
    segment_index: Optional[int] = None
    text: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class TimerNotification:
    """Timer state changed."""
    event_type: str  # "started", "completed", "stopped", "reset"
    status: str
    session_id: Optional[str]
    remaining_ms: int
    accumulated_chars: int
    questions_generated: bool
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class GenerationNotification:
    """A question generation call was dispatched or finished."""
    event_type: str  # "dispatched", "succeeded", "failed"
    source: str  # "segment" or "timer"
    token: Any
    questions: List[Any] = field(default_factory=list)
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class ErrorNotification:
    """A failure surfaced to the presentation layer."""
    error_type: str
    message: str
    fatal: bool = False  # True when recording moved to the error status
    timestamp: datetime = field(default_factory=datetime.now)
