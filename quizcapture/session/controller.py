"""Recording session controller: the single writer of the session state.

All mutation happens under one lock. Scheduled ticks and async completions
call `dispatch(event)`, which queues the event and drains the queue in
arrival order; public commands run under the same lock. Async calls capture a
token when they are submitted and their results are dropped if the token no
longer matches the live session.
"""

import logging
import threading
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Tuple

from ..config import SessionSettings
from ..models.events import (
    ConnectTimeout,
    ErrorNotification,
    GenerationNotification,
    LinesSaved,
    LinesSaveFailed,
    QuestionsFailed,
    QuestionsReady,
    SegmentationNotification,
    SegmentationTick,
    StatusNotification,
    TimerAutoReset,
    TimerGraceElapsed,
    TimerNotification,
    TimerTick,
)
from ..models.session import RecordingStatus, SessionState
from ..models.transcript import TranscriptLine
from ..services.generation import GenerationContext, QuestionGenerator
from ..services.persistence import TranscriptStore
from ..services.workers import AsyncCallRunner
from ..transcription.normalizer import is_system_message
from .clock import ScheduledHandle, Scheduler, ThreadingScheduler
from .errors import AlreadyRunning, SessionError, SourceUnavailable
from .publisher import SessionPublisher
from .segmentation import SegmentClose, SegmentationEngine
from .timer import TimerEngine, new_session_id

logger = logging.getLogger(__name__)


class RecordingSessionController:
    """Coordinates the audio source, transcript buffer, segmentation and timer."""

    def __init__(self,
                 source,
                 generator: QuestionGenerator,
                 store: Optional[TranscriptStore] = None,
                 settings: Optional[SessionSettings] = None,
                 scheduler: Optional[Scheduler] = None,
                 runner=None,
                 publisher: Optional[SessionPublisher] = None):
        """Initialize the controller.

        Args:
            source: Audio/ASR source (see services.source.AudioSource)
            generator: Question generation service
            store: Transcript persistence service; segments count as saved
                immediately when omitted
            settings: Session knobs, defaults when omitted
            scheduler: Clock used for ticks and delays
            runner: Executes async calls (AsyncCallRunner or InlineCallRunner)
            publisher: Notification publisher for UI subscribers
        """
        self.settings = settings or SessionSettings()
        self.source = source
        self.generator = generator
        self.store = store
        self.scheduler = scheduler or ThreadingScheduler()
        self.runner = runner or AsyncCallRunner("session")
        self.publisher = publisher or SessionPublisher()

        self.state = self._idle_state()
        self.segmentation = SegmentationEngine(self.state.segmentation,
                                               self.settings.min_segment_chars)
        self.timer = TimerEngine(self.state.timer)

        self._lock = threading.RLock()
        self._events: Deque[Any] = deque()
        self._draining = False
        self._epoch = 0
        self._connect_attempt = 0
        self._flush_count = 0
        self._pending_closes: Dict[Tuple, SegmentClose] = {}
        # (duration_ms, session_id) of a timer waiting for the source to connect
        self._pending_timer: Optional[Tuple[int, str]] = None
        self._recording_id: Optional[str] = None

        self._segmentation_handle: Optional[ScheduledHandle] = None
        self._timer_handle: Optional[ScheduledHandle] = None
        self._timer_delay_handle: Optional[ScheduledHandle] = None
        self._connect_handle: Optional[ScheduledHandle] = None

        logger.info(
            f"RecordingSessionController initialized: threshold={self.settings.threshold_ms}ms, "
            f"min_segment_chars={self.settings.min_segment_chars}, grace={self.settings.grace_ms}ms")

    def _idle_state(self) -> SessionState:
        return SessionState.idle(self.settings.threshold_ms, self.settings.segmentation_enabled)

    def _context(self, segment_index: Optional[int] = None) -> GenerationContext:
        return GenerationContext(
            room_id=self.settings.room_id,
            host_id=self.settings.host_id,
            segment_index=segment_index,
            recording_id=self._recording_id,
        )

    def _timer_context(self, session_id: str) -> GenerationContext:
        timer = self.state.timer
        return GenerationContext(
            room_id=self.settings.room_id,
            host_id=self.settings.host_id,
            session_id=session_id,
            recording_id=self._recording_id,
            duration_ms=timer.duration_ms,
            started_at=timer.started_at,
            ended_at=timer.ended_at,
            timer_status=timer.status.value,
            segment_count=self.state.segmentation.segment_count,
        )

    # ------------------------------------------------------------------
    # Serialized dispatch
    # ------------------------------------------------------------------

    def dispatch(self, event: Any) -> None:
        """Queue an event and apply queued events one at a time."""
        with self._lock:
            self._events.append(event)
            if self._draining:
                return
            self._draining = True
            try:
                while self._events:
                    pending = self._events.popleft()
                    try:
                        self._apply(pending)
                    except Exception as e:
                        logger.error(f"Error applying {type(pending).__name__}: {e}", exc_info=True)
            finally:
                self._draining = False

    def _apply(self, event: Any) -> None:
        if isinstance(event, SegmentationTick):
            self._on_segmentation_tick()
        elif isinstance(event, TimerTick):
            self._on_timer_tick()
        elif isinstance(event, TimerGraceElapsed):
            self._generate_for_timer(event.session_id)
        elif isinstance(event, TimerAutoReset):
            self._on_timer_auto_reset(event.session_id)
        elif isinstance(event, ConnectTimeout):
            self._on_connect_timeout(event.attempt)
        elif isinstance(event, LinesSaved):
            self._on_lines_saved(event)
        elif isinstance(event, LinesSaveFailed):
            self._on_lines_save_failed(event)
        elif isinstance(event, QuestionsReady):
            self._on_questions_ready(event)
        elif isinstance(event, QuestionsFailed):
            self._on_questions_failed(event)
        else:
            logger.warning(f"Ignoring unknown event: {event!r}")

    # ------------------------------------------------------------------
    # Recording lifecycle
    # ------------------------------------------------------------------

    @property
    def recording_status(self) -> RecordingStatus:
        return self.state.recording_status

    def start(self) -> bool:
        """Connect the audio source.

        Returns:
            True if recording is live, False while still connecting or after
            the source failed (status is then `error`).

        Raises:
            AlreadyRunning: If connecting or already recording
            SessionError: If the session is in the error state
        """
        with self._lock:
            status = self.state.recording_status
            if status in (RecordingStatus.CONNECTING, RecordingStatus.RECORDING):
                raise AlreadyRunning(f"Recording already {status.value}")
            if status == RecordingStatus.ERROR:
                raise SessionError("Session is in error state; reset() before starting again")

            self._set_status(RecordingStatus.CONNECTING)
            self.state.last_error = None
            self._recording_id = new_session_id(self.scheduler.now(), prefix="recording")
            self._connect_attempt += 1
            attempt = self._connect_attempt
            self._connect_handle = self.scheduler.call_later(
                self.settings.connect_timeout_ms, lambda: self.dispatch(ConnectTimeout(attempt)))

            try:
                ready = self.source.start()
            except Exception as e:
                logger.error(f"Audio source failed to start: {e}")
                self._fail(SourceUnavailable(str(e)))
                return False

            if ready:
                self._on_source_ready()
            return self.state.recording_status == RecordingStatus.RECORDING

    def source_ready(self) -> None:
        """Called by the source when it becomes ready after `start()`."""
        with self._lock:
            if self.state.recording_status != RecordingStatus.CONNECTING:
                logger.debug(f"Ignoring source ready while {self.state.recording_status.value}")
                return
            self._on_source_ready()

    def _on_source_ready(self) -> None:
        self._cancel(self._connect_handle)
        self._connect_handle = None
        self._set_status(RecordingStatus.RECORDING)
        self._cancel(self._segmentation_handle)
        self._segmentation_handle = self.scheduler.call_every(
            self.settings.segmentation_tick_ms, lambda: self.dispatch(SegmentationTick()))
        logger.info("Recording started")

        if self._pending_timer is not None:
            duration_ms, session_id = self._pending_timer
            self._pending_timer = None
            self._begin_timer(duration_ms, session_id)

    def _on_connect_timeout(self, attempt: int) -> None:
        if attempt != self._connect_attempt:
            return
        if self.state.recording_status != RecordingStatus.CONNECTING:
            return
        self._connect_handle = None
        try:
            self.source.stop()
        except Exception as e:
            logger.warning(f"Error stopping audio source after connect timeout: {e}")
        self._fail(SourceUnavailable(
            f"Audio source not ready after {self.settings.connect_timeout_ms}ms"))

    def _drop_pending_timer(self, reason: str) -> None:
        if self._pending_timer is None:
            return
        logger.warning(f"Timer {self._pending_timer[1]} not started: {reason}")
        self._pending_timer = None

    def source_disconnected(self) -> None:
        """The source stopped emitting without an explicit error."""
        with self._lock:
            if self.state.recording_status not in (RecordingStatus.RECORDING,
                                                   RecordingStatus.CONNECTING):
                return
            logger.warning("Audio source disconnected")
            self._drop_pending_timer("audio source disconnected")
            self._cancel_recording_schedules()
            self._set_status(RecordingStatus.DISCONNECTED)
            self._end_timer_with_recording()
            self.publisher.publish_error(ErrorNotification(
                error_type="Disconnected", message="Audio source disconnected", fatal=False))

    def source_error(self, message: str) -> None:
        """The source reported an unrecoverable error."""
        with self._lock:
            if self.state.recording_status == RecordingStatus.STOPPED:
                logger.warning(f"Ignoring source error while stopped: {message}")
                return
            self._fail(SourceUnavailable(message))

    def _fail(self, error: SessionError) -> None:
        logger.error(f"Session error ({type(error).__name__}): {error}")
        self._drop_pending_timer(str(error))
        self._cancel_recording_schedules()
        self.state.last_error = str(error)
        self._set_status(RecordingStatus.ERROR)
        self._end_timer_with_recording()
        self.publisher.publish_error(ErrorNotification(
            error_type=type(error).__name__, message=str(error), fatal=True))

    def stop(self) -> bool:
        """Stop recording; converges on the full session reset."""
        return self.reset()

    def reset(self) -> bool:
        """Full session teardown; safe to call any number of times.

        Order: stop the source, flush unsaved final lines, clear the buffer,
        reset segmentation, reset the timer, clear the error.
        """
        with self._lock:
            if self._is_idle():
                logger.debug("Reset requested on idle session; nothing to do")
                return True

            logger.info("Resetting recording session")
            if self.state.recording_status != RecordingStatus.STOPPED:
                try:
                    self.source.stop()
                except Exception as e:
                    logger.warning(f"Error stopping audio source: {e}")

            self._cancel_recording_schedules()
            self._cancel(self._connect_handle)
            self._connect_handle = None
            self._cancel(self._timer_handle)
            self._timer_handle = None
            self._cancel(self._timer_delay_handle)
            self._timer_delay_handle = None
            self._pending_timer = None
            self._recording_id = None

            # Results of calls made before this point belong to the old epoch.
            previous_epoch = self._epoch
            self._epoch += 1
            self._pending_closes.clear()

            unsaved = self.state.unsaved_lines + self.segmentation.drain_pending()
            self.state.unsaved_lines = []
            if unsaved:
                self._flush_count += 1
                self._save(("flush", previous_epoch, self._flush_count), unsaved, self._context())

            self.state.buffer.clear()
            self.segmentation.reset()
            if self.timer.is_running:
                self.timer.stop(self.scheduler.now())
            self.timer.reset()
            self.state.last_error = None
            self.state.muted = False

            self._set_status(RecordingStatus.STOPPED)
            self._notify_segmentation("reset")
            self._notify_timer("reset")
            return True

    def _is_idle(self) -> bool:
        handles = (self._segmentation_handle, self._timer_handle,
                   self._timer_delay_handle, self._connect_handle)
        return (self.state == self._idle_state() and all(h is None for h in handles)
                and self._pending_timer is None and self._recording_id is None)

    def shutdown(self, timeout: float = 10.0) -> None:
        """Reset the session and release the runner and scheduler."""
        self.reset()
        self.runner.shutdown(timeout=timeout)
        self.scheduler.shutdown()

    # ------------------------------------------------------------------
    # Mute
    # ------------------------------------------------------------------

    def mute(self) -> None:
        with self._lock:
            if self.state.muted:
                return
            if self.state.recording_status != RecordingStatus.RECORDING:
                logger.warning("Mute ignored: not recording")
                return
            self.source.pause()
            self.state.muted = True
            self.segmentation.mute(self.scheduler.now())
            self._notify_status()

    def unmute(self) -> None:
        with self._lock:
            if not self.state.muted:
                return
            self.state.muted = False
            self.source.resume()
            self.segmentation.unmute(self.scheduler.now())
            self._notify_status()

    def toggle_mute(self) -> bool:
        """Flip the muted flag; returns the new value."""
        with self._lock:
            if self.state.muted:
                self.unmute()
            else:
                self.mute()
            return self.state.muted

    # ------------------------------------------------------------------
    # Transcript intake
    # ------------------------------------------------------------------

    def on_transcript(self, line: TranscriptLine) -> None:
        """Accept a transcript line from the source."""
        with self._lock:
            if self.state.muted:
                return
            if self.state.recording_status != RecordingStatus.RECORDING:
                logger.debug(f"Dropping transcript while {self.state.recording_status.value}")
                return
            if is_system_message(line.text):
                logger.debug(f"Filtered out system message: '{line.text}'")
                return

            self.state.buffer.append(line)
            if not line.is_final:
                return

            now = self.scheduler.now()
            was_paused = self.state.segmentation.is_paused
            self.segmentation.on_final_line(line, now)
            if was_paused:
                self._notify_segmentation("resumed")
            if self.timer.is_running:
                self.timer.on_final_text(line.text)
            logger.debug(f"Final transcript accepted: '{line.text[:50]}'")

    def set_segmentation_enabled(self, enabled: bool) -> None:
        with self._lock:
            self.segmentation.set_enabled(enabled)
            logger.info(f"Segmentation {'enabled' if enabled else 'disabled'}")

    # ------------------------------------------------------------------
    # Segmentation
    # ------------------------------------------------------------------

    def _on_segmentation_tick(self) -> None:
        if self.state.recording_status != RecordingStatus.RECORDING or self.state.muted:
            return
        was_paused = self.state.segmentation.is_paused
        close = self.segmentation.on_tick(self.scheduler.now())
        if close is not None:
            self._handle_close(close)
        elif self.state.segmentation.is_paused and not was_paused:
            self._notify_segmentation("paused")

    def _handle_close(self, close: SegmentClose) -> None:
        token = ("segment", self._epoch, close.close_number)
        self._pending_closes[token] = close
        if self.store is None:
            self.dispatch(LinesSaved(token, close.lines))
            return
        self._save(token, close.lines, self._context())

    def _save(self, token: Tuple, lines: List[TranscriptLine], context: GenerationContext) -> None:
        store = self.store
        if store is None:
            return
        self.runner.submit(
            f"save {token[0]} {token[2]}",
            lambda: store.save_lines(lines, context),
            on_success=lambda _: self.dispatch(LinesSaved(token, lines)),
            on_failure=lambda e: self.dispatch(LinesSaveFailed(token, lines, str(e))),
        )

    def _on_lines_saved(self, event: LinesSaved) -> None:
        close = self._pending_closes.pop(event.token, None)
        if close is None:
            logger.info(f"Saved {len(event.lines)} lines ({event.token[0]})")
            return
        if event.token[1] != self._epoch:
            logger.info(f"Discarding save result for stale segment {event.token}")
            return

        segment_index = self.segmentation.commit(close)
        if segment_index is None:
            reason = "duplicate" if close.is_duplicate else "too short"
            logger.info(f"Segment close #{close.close_number} not forwarded ({reason})")
            self._notify_segmentation("suppressed", text=close.text)
            return

        self._notify_segmentation("committed", segment_index=segment_index, text=close.text)
        self._request_questions("segment", ("segment", self._epoch, segment_index),
                                close.text, self._context(segment_index=segment_index))

    def _on_lines_save_failed(self, event: LinesSaveFailed) -> None:
        self._pending_closes.pop(event.token, None)
        logger.error(f"Failed to save {len(event.lines)} transcript lines: {event.error}")
        self.publisher.publish_error(ErrorNotification(
            error_type="PersistenceFailed", message=event.error, fatal=False))
        if event.token[1] != self._epoch:
            logger.error(f"Dropping {len(event.lines)} lines of a session that was reset")
            return
        self.state.unsaved_lines.extend(event.lines)
        self.state.last_error = event.error

    def retry_persistence(self) -> int:
        """Re-send lines whose save failed; returns how many were sent."""
        with self._lock:
            lines = self.state.unsaved_lines
            if not lines or self.store is None:
                return 0
            self.state.unsaved_lines = []
            self._flush_count += 1
            self._save(("retry", self._epoch, self._flush_count), lines, self._context())
            return len(lines)

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def start_timer(self, duration_ms: int) -> str:
        """Start a timer session, starting recording first when needed.

        While the source is still connecting the request is held and the timer
        starts once the source reports ready. If connecting fails instead, the
        request is dropped and the timer never leaves idle.

        Returns:
            The timer session id, assigned up front even when the start is held

        Raises:
            InvalidDuration: If duration_ms is not positive
            AlreadyRunning: If a timer is running or already waiting to start
            SessionError: If the session is in the error state
            SourceUnavailable: If the source failed while starting
        """
        with self._lock:
            self.timer.validate_start(duration_ms)
            if self._pending_timer is not None:
                raise AlreadyRunning(
                    f"Timer session {self._pending_timer[1]} is waiting for recording to start")

            session_id = new_session_id(self.scheduler.now())
            status = self.state.recording_status
            if status == RecordingStatus.RECORDING:
                self._begin_timer(duration_ms, session_id)
                return session_id

            self._pending_timer = (duration_ms, session_id)
            if status != RecordingStatus.CONNECTING:
                try:
                    self.start()
                except SessionError:
                    self._pending_timer = None
                    raise

            if self.state.recording_status not in (RecordingStatus.CONNECTING,
                                                   RecordingStatus.RECORDING):
                raise SourceUnavailable(
                    f"Recording did not start: {self.state.last_error or 'source unavailable'}")
            if self._pending_timer is not None:
                logger.info(f"Timer {session_id} will start once recording is live")
            return session_id

    def _begin_timer(self, duration_ms: int, session_id: str) -> None:
        self._cancel(self._timer_delay_handle)
        self._timer_delay_handle = None
        self.timer.start(duration_ms, self.scheduler.now(), session_id=session_id)
        self._cancel(self._timer_handle)
        self._timer_handle = self.scheduler.call_every(
            self.settings.timer_tick_ms, lambda: self.dispatch(TimerTick()))
        self._notify_timer("started")

    def stop_timer(self) -> bool:
        """End the running timer now; generation runs without the grace delay.

        A timer still waiting for recording to start is cancelled instead.
        Returns True when a running timer was stopped.
        """
        with self._lock:
            if self._pending_timer is not None:
                self._drop_pending_timer("cancelled before recording started")
                return False
            if not self.timer.is_running:
                return False
            self.timer.stop(self.scheduler.now())
            self._cancel(self._timer_handle)
            self._timer_handle = None
            self._notify_timer("stopped")
            self._generate_for_timer(self.state.timer.session_id)
            return True

    def reset_timer(self) -> None:
        """Return the timer to idle; raises TimerRunning while it runs."""
        with self._lock:
            self.timer.reset()
            self._cancel(self._timer_delay_handle)
            self._timer_delay_handle = None
            self._notify_timer("reset")

    def _on_timer_tick(self) -> None:
        if not self.timer.on_tick(self.scheduler.now()):
            return
        self._cancel(self._timer_handle)
        self._timer_handle = None
        self._notify_timer("completed")
        session_id = self.state.timer.session_id
        self._timer_delay_handle = self.scheduler.call_later(
            self.settings.grace_ms, lambda: self.dispatch(TimerGraceElapsed(session_id)))

    def _end_timer_with_recording(self) -> None:
        """Recording went away while a timer ran: end it like a manual stop."""
        if not self.timer.is_running:
            return
        self.timer.stop(self.scheduler.now())
        self._cancel(self._timer_handle)
        self._timer_handle = None
        self._notify_timer("stopped")
        self._generate_for_timer(self.state.timer.session_id)

    def _generate_for_timer(self, session_id: Optional[str]) -> None:
        if session_id is None or session_id != self.state.timer.session_id:
            logger.debug(f"Ignoring generation request for stale timer {session_id}")
            return
        self._cancel(self._timer_delay_handle)
        self._timer_delay_handle = None
        if self.state.timer.questions_generated:
            logger.debug(f"Questions already requested for timer {session_id}")
            return
        text = self.timer.claim_generation(session_id)
        if not self.state.timer.questions_generated:
            return
        self._notify_timer("generation_claimed")
        if text:
            self._request_questions("timer", session_id, text, self._timer_context(session_id))
        else:
            self._schedule_auto_reset(session_id)

    def _schedule_auto_reset(self, session_id: str) -> None:
        """Return a finished timer to idle `auto_reset_ms` after its outcome is known."""
        if self.settings.auto_reset_ms is None:
            return
        self._cancel(self._timer_delay_handle)
        self._timer_delay_handle = self.scheduler.call_later(
            self.settings.auto_reset_ms, lambda: self.dispatch(TimerAutoReset(session_id)))

    def _on_timer_auto_reset(self, session_id: str) -> None:
        if self.state.timer.session_id != session_id or self.timer.is_running:
            return
        self._timer_delay_handle = None
        self.timer.reset()
        logger.info(f"Timer {session_id} reset after completion")
        self._notify_timer("reset")

    # ------------------------------------------------------------------
    # Question generation
    # ------------------------------------------------------------------

    def _request_questions(self, source: str, token: Any, text: str,
                           context: GenerationContext) -> None:
        logger.info(f"Requesting questions for {source} {token} ({len(text)} chars)")
        self.publisher.publish_generation(GenerationNotification(
            event_type="dispatched", source=source, token=token))
        generator = self.generator
        self.runner.submit(
            f"generate {source}",
            lambda: generator.generate(text, context),
            on_success=lambda questions: self.dispatch(QuestionsReady(token, list(questions or []))),
            on_failure=lambda e: self.dispatch(QuestionsFailed(token, str(e))),
        )

    def _is_live_token(self, token: Any) -> bool:
        if isinstance(token, tuple):
            return token[1] == self._epoch
        return token is not None and token == self.state.timer.session_id

    def _on_questions_ready(self, event: QuestionsReady) -> None:
        if not self._is_live_token(event.token):
            logger.info(f"Discarding questions for stale token {event.token}")
            return
        logger.info(f"Received {len(event.questions)} questions for {event.token}")
        source = "segment" if isinstance(event.token, tuple) else "timer"
        self.publisher.publish_generation(GenerationNotification(
            event_type="succeeded", source=source, token=event.token, questions=event.questions))
        if source == "timer":
            self._schedule_auto_reset(event.token)

    def _on_questions_failed(self, event: QuestionsFailed) -> None:
        if not self._is_live_token(event.token):
            logger.info(f"Discarding generation failure for stale token {event.token}")
            return
        source = "segment" if isinstance(event.token, tuple) else "timer"
        self.state.last_error = event.error
        self.publisher.publish_generation(GenerationNotification(
            event_type="failed", source=source, token=event.token, error=event.error))
        self.publisher.publish_error(ErrorNotification(
            error_type="GenerationFailed", message=event.error, fatal=False))
        if source == "timer":
            self._schedule_auto_reset(event.token)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def snapshot(self) -> SessionState:
        with self._lock:
            return self.state.snapshot()

    def export_transcripts(self) -> str:
        with self._lock:
            return self.state.buffer.export_text()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _cancel(handle: Optional[ScheduledHandle]) -> None:
        if handle is not None:
            handle.cancel()

    def _cancel_recording_schedules(self) -> None:
        self._cancel(self._segmentation_handle)
        self._segmentation_handle = None
        self._cancel(self._connect_handle)
        self._connect_handle = None

    def _set_status(self, status: RecordingStatus) -> None:
        if self.state.recording_status == status:
            return
        logger.info(f"Recording status: {self.state.recording_status.value} -> {status.value}")
        self.state.recording_status = status
        self._notify_status()

    def _notify_status(self) -> None:
        self.publisher.publish_status(StatusNotification(
            recording_status=self.state.recording_status.value, muted=self.state.muted))

    def _notify_segmentation(self, event_type: str, segment_index: Optional[int] = None,
                             text: Optional[str] = None) -> None:
        seg = self.state.segmentation
        self.publisher.publish_segmentation(SegmentationNotification(
            event_type=event_type,
            segment_count=seg.segment_count,
            is_paused=seg.is_paused,
            remaining_ms=seg.remaining_ms,
            segment_index=segment_index,
            text=text,
        ))

    def _notify_timer(self, event_type: str) -> None:
        timer = self.state.timer
        self.publisher.publish_timer(TimerNotification(
            event_type=event_type,
            status=timer.status.value,
            session_id=timer.session_id,
            remaining_ms=timer.remaining_ms,
            accumulated_chars=len(timer.accumulated_text),
            questions_generated=timer.questions_generated,
        ))
