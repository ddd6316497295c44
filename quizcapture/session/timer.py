"""Countdown timer sessions that collect speech for one question batch."""

import logging
import random
import string
from dataclasses import dataclass, fields
from typing import List, Optional

from ..models.session import TimerState, TimerStatus
from ..transcription.normalizer import is_duplicate
from .errors import AlreadyRunning, InvalidDuration, TimerRunning

logger = logging.getLogger(__name__)

DEFAULT_GRACE_MS = 2000


@dataclass(frozen=True)
class TimerPreset:
    """A selectable timer length."""
    label: str
    minutes: int
    value: str

    @property
    def duration_ms(self) -> int:
        return self.minutes * 60 * 1000


TIMER_PRESETS: List[TimerPreset] = [
    TimerPreset("1 minute (test)", 1, "1min"),
    TimerPreset("5 minutes", 5, "5min"),
    TimerPreset("10 minutes", 10, "10min"),
    TimerPreset("30 minutes", 30, "30min"),
    TimerPreset("60 minutes", 60, "60min"),
]


def duration_from_preset(value: str) -> int:
    """Duration in ms for a preset value such as '5min'."""
    for preset in TIMER_PRESETS:
        if preset.value == value:
            return preset.duration_ms
    raise InvalidDuration(f"Unknown timer preset: {value}")


def custom_duration(hours: int, minutes: int) -> int:
    """Duration in ms for a custom hours/minutes selection."""
    if hours < 0 or minutes < 0:
        raise InvalidDuration(f"Negative custom duration: {hours}h {minutes}m")
    return (hours * 60 + minutes) * 60 * 1000


def new_session_id(now: int, prefix: str = "timer") -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{prefix}_{now}_{suffix}"


class TimerEngine:
    """Operates on the timer slice of the session state."""

    def __init__(self, state: TimerState):
        self.state = state

    @property
    def is_running(self) -> bool:
        return self.state.status == TimerStatus.RUNNING

    def validate_start(self, duration_ms: int) -> None:
        """Raise if `start` would be rejected; leaves state untouched."""
        if duration_ms is None or duration_ms <= 0:
            raise InvalidDuration(f"Timer duration must be positive, got {duration_ms}")
        if self.is_running:
            raise AlreadyRunning(f"Timer session {self.state.session_id} is already running")

    def start(self, duration_ms: int, now: int, session_id: Optional[str] = None) -> str:
        """Begin a new timer session and return its id (generated unless given)."""
        self.validate_start(duration_ms)
        state = self.state
        state.status = TimerStatus.RUNNING
        state.duration_ms = int(duration_ms)
        state.started_at = now
        state.ended_at = None
        state.remaining_ms = int(duration_ms)
        state.accumulated_text = ""
        state.last_text = None
        state.questions_generated = False
        state.session_id = session_id or new_session_id(now)
        logger.info(f"Timer started: {state.session_id} for {duration_ms}ms")
        return state.session_id

    def on_final_text(self, text: str) -> bool:
        """Append finalized speech while running; returns True when added."""
        state = self.state
        if not self.is_running:
            return False
        cleaned = " ".join(text.split())
        if not cleaned:
            return False
        if state.last_text is not None and is_duplicate(cleaned, state.last_text):
            logger.debug(f"Timer skipped repeated text: '{cleaned[:50]}'")
            return False
        state.accumulated_text = (
            f"{state.accumulated_text} {cleaned}" if state.accumulated_text else cleaned)
        state.last_text = cleaned
        return True

    def on_tick(self, now: int) -> bool:
        """Update the countdown; returns True on the tick that completes it."""
        state = self.state
        if not self.is_running or state.started_at is None:
            return False
        state.remaining_ms = max(0, state.duration_ms - (now - state.started_at))
        if state.remaining_ms > 0:
            return False
        state.status = TimerStatus.COMPLETED
        state.ended_at = now
        logger.info(
            f"Timer {state.session_id} completed with "
            f"{len(state.accumulated_text)} chars collected")
        return True

    def stop(self, now: int) -> bool:
        """End a running timer early; returns True when text awaits generation."""
        state = self.state
        if not self.is_running:
            return False
        state.status = TimerStatus.STOPPED
        state.remaining_ms = 0
        state.ended_at = now
        logger.info(f"Timer {state.session_id} stopped by request")
        return bool(state.accumulated_text.strip())

    def claim_generation(self, session_id: Optional[str]) -> Optional[str]:
        """Fire-once guard for question generation.

        Returns the text to send, or None when generation already happened for
        this session, the session is no longer current, or nothing was said.
        The flag is set in every case where the session is current.
        """
        state = self.state
        if session_id is None or session_id != state.session_id:
            return None
        if state.status not in (TimerStatus.COMPLETED, TimerStatus.STOPPED):
            return None
        if state.questions_generated:
            logger.debug(f"Questions already generated for {session_id}")
            return None
        state.questions_generated = True
        text = state.accumulated_text.strip()
        if not text:
            logger.warning(f"Timer {session_id} ended without any transcript")
            return None
        return text

    def reset(self) -> None:
        """Return to idle defaults; refused while running."""
        if self.is_running:
            raise TimerRunning("Stop the timer before resetting it")
        defaults = TimerState()
        for item in fields(defaults):
            setattr(self.state, item.name, getattr(defaults, item.name))
