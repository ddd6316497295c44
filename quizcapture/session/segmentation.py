"""Pause-based transcript segmentation.

The engine watches finalized lines. A segment closes once speech has been
silent for `threshold_ms`; the same threshold drives the countdown shown to
the user. Detection and commit are separate steps: `on_tick` hands out a
`SegmentClose`, and only `commit()` (called once the lines are saved) moves
`segment_count`.
"""

import logging
from dataclasses import dataclass, fields
from typing import List, Optional

from ..models.session import SegmentationState
from ..models.transcript import TranscriptLine
from ..transcription.normalizer import comparison_key, is_duplicate, similarity

logger = logging.getLogger(__name__)

DEFAULT_MIN_SEGMENT_CHARS = 20


@dataclass
class SegmentClose:
    """A closed segment awaiting persistence and, maybe, question generation."""
    close_number: int
    lines: List[TranscriptLine]
    text: str
    is_duplicate: bool
    long_enough: bool

    @property
    def forwardable(self) -> bool:
        return self.long_enough and not self.is_duplicate


class SegmentationEngine:
    """Operates on the segmentation slice of the session state."""

    def __init__(self, state: SegmentationState,
                 min_segment_chars: int = DEFAULT_MIN_SEGMENT_CHARS):
        self.state = state
        self.min_segment_chars = min_segment_chars
        self._default_enabled = state.enabled
        self._default_threshold_ms = state.threshold_ms
        self._speech_since_tick = False

    @property
    def threshold_ms(self) -> int:
        return self.state.threshold_ms

    def on_final_line(self, line: TranscriptLine, now: int) -> None:
        """Record speech; a pause in progress is cancelled. Ignored while disabled."""
        state = self.state
        if not state.enabled:
            return
        state.pending_lines.append(line)
        state.last_speech_at = now
        state.remaining_ms = state.threshold_ms
        self._speech_since_tick = True
        if state.is_paused:
            logger.debug(f"Speech resumed after pause at {state.pause_started_at}")
            state.is_paused = False
            state.pause_started_at = None

    def on_tick(self, now: int) -> Optional[SegmentClose]:
        """Evaluate silence; returns a close when the threshold has elapsed."""
        state = self.state
        speech_since_tick = self._speech_since_tick
        self._speech_since_tick = False
        if not state.enabled or state.muted_at is not None:
            return None
        if not state.pending_lines or state.last_speech_at is None:
            return None

        silence_ms = now - state.last_speech_at
        state.remaining_ms = max(0, state.threshold_ms - silence_ms)

        if not state.is_paused and not speech_since_tick and silence_ms > 0:
            state.is_paused = True
            state.pause_started_at = now
            logger.debug(f"Pause detected at {now} ({silence_ms}ms of silence)")

        if silence_ms >= state.threshold_ms:
            return self._close(now)
        return None

    def _close(self, now: int) -> SegmentClose:
        state = self.state
        lines = state.pending_lines
        state.pending_lines = []
        state.is_paused = False
        state.pause_started_at = None
        state.last_speech_at = None
        state.remaining_ms = state.threshold_ms
        state.closed_count += 1

        kept = []
        previous = None
        for line in lines:
            text = " ".join(line.text.split())
            if previous is not None and is_duplicate(text, previous):
                logger.debug(f"Dropping repeated line within segment: '{text[:50]}'")
                continue
            kept.append(text)
            previous = text
        joined = " ".join(kept)

        duplicate = False
        if state.last_committed_text is not None:
            duplicate = is_duplicate(joined, state.last_committed_text)
            logger.debug(
                f"Segment similarity to previous: "
                f"{similarity(joined, state.last_committed_text):.0%}")
        long_enough = len(comparison_key(joined)) >= self.min_segment_chars

        logger.info(
            f"Segment close #{state.closed_count} at {now}: {len(lines)} lines, "
            f"{len(joined)} chars, duplicate={duplicate}, long_enough={long_enough}")
        return SegmentClose(
            close_number=state.closed_count,
            lines=lines,
            text=joined,
            is_duplicate=duplicate,
            long_enough=long_enough,
        )

    def commit(self, close: SegmentClose) -> Optional[int]:
        """Count a saved segment; returns its index or None when suppressed."""
        if not close.forwardable:
            return None
        self.state.segment_count += 1
        self.state.last_committed_text = close.text
        return self.state.segment_count

    def mute(self, now: int) -> None:
        if self.state.muted_at is None:
            self.state.muted_at = now

    def unmute(self, now: int) -> None:
        """Resume the pause clock; muted time does not count as silence."""
        state = self.state
        if state.muted_at is None:
            return
        muted_for = max(0, now - state.muted_at)
        state.muted_at = None
        if state.last_speech_at is not None:
            state.last_speech_at += muted_for
        if state.pause_started_at is not None:
            state.pause_started_at += muted_for
        self._speech_since_tick = True

    def set_enabled(self, enabled: bool) -> None:
        self.state.enabled = enabled
        if not enabled:
            self.state.is_paused = False
            self.state.pause_started_at = None

    def drain_pending(self) -> List[TranscriptLine]:
        """Take lines not yet part of a closed segment."""
        lines = self.state.pending_lines
        self.state.pending_lines = []
        return lines

    def reset(self) -> None:
        """Return the slice to its idle defaults in place."""
        defaults = SegmentationState(
            enabled=self._default_enabled,
            threshold_ms=self._default_threshold_ms,
            remaining_ms=self._default_threshold_ms,
        )
        for item in fields(defaults):
            setattr(self.state, item.name, getattr(defaults, item.name))
        self._speech_since_tick = False
