"""Session state models owned by the recording session controller."""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .transcript import TranscriptLine
from ..transcription.buffer import TranscriptBuffer


class RecordingStatus(Enum):
    """Lifecycle of the audio/ASR connection."""
    STOPPED = "stopped"
    CONNECTING = "connecting"
    RECORDING = "recording"
    ERROR = "error"
    DISCONNECTED = "disconnected"


class TimerStatus(Enum):
    """Lifecycle of a timer session."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"


DEFAULT_THRESHOLD_MS = 10000


@dataclass
class SegmentationState:
    """Pause-detection state plus the window of lines since the last close."""
    enabled: bool = True
    is_paused: bool = False
    pause_started_at: Optional[int] = None
    segment_count: int = 0
    threshold_ms: int = DEFAULT_THRESHOLD_MS
    remaining_ms: int = DEFAULT_THRESHOLD_MS
    last_speech_at: Optional[int] = None
    muted_at: Optional[int] = None
    pending_lines: List[TranscriptLine] = field(default_factory=list)
    last_committed_text: Optional[str] = None
    closed_count: int = 0  # closes handed out, used as the segment token


@dataclass
class TimerState:
    """Countdown timer state; `session_id` scopes the fire-once guard."""
    status: TimerStatus = TimerStatus.IDLE
    duration_ms: int = 0
    started_at: Optional[int] = None
    ended_at: Optional[int] = None
    remaining_ms: int = 0
    accumulated_text: str = ""
    last_text: Optional[str] = None
    questions_generated: bool = False
    session_id: Optional[str] = None


@dataclass
class SessionState:
    """Root aggregate for one recording session."""
    recording_status: RecordingStatus = RecordingStatus.STOPPED
    muted: bool = False
    buffer: TranscriptBuffer = field(default_factory=TranscriptBuffer)
    segmentation: SegmentationState = field(default_factory=SegmentationState)
    timer: TimerState = field(default_factory=TimerState)
    last_error: Optional[str] = None
    unsaved_lines: List[TranscriptLine] = field(default_factory=list)

    @classmethod
    def idle(cls, threshold_ms: int = DEFAULT_THRESHOLD_MS,
             segmentation_enabled: bool = True) -> "SessionState":
        """Fresh state for the given segmentation settings."""
        return cls(segmentation=SegmentationState(
            enabled=segmentation_enabled,
            threshold_ms=threshold_ms,
            remaining_ms=threshold_ms,
        ))

    def snapshot(self) -> "SessionState":
        return copy.deepcopy(self)
