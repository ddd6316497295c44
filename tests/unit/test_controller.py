"""Tests for the recording session controller on a fake clock."""

import pytest

from quizcapture.models.events import TimerGraceElapsed, TimerTick
from quizcapture.models.session import RecordingStatus, SessionState, TimerStatus
from quizcapture.models.transcript import Role, TranscriptLine
from quizcapture.session.errors import (
    AlreadyRunning,
    InvalidDuration,
    SessionError,
    SourceUnavailable,
    TimerRunning,
)


def final(text, line_id, timestamp=0):
    return TranscriptLine(id=line_id, role=Role.HOST, text=text, timestamp=timestamp, is_final=True)


def interim(text, line_id, timestamp=0):
    return TranscriptLine(id=line_id, role=Role.HOST, text=text, timestamp=timestamp, is_final=False)


@pytest.mark.unit
class TestRecordingLifecycle:

    def test_start_with_ready_source(self, controller, recorder, source):
        assert controller.start()

        assert controller.recording_status == RecordingStatus.RECORDING
        assert source.calls == ["start"]
        assert [event.recording_status for event in recorder.status] == ["connecting", "recording"]

    def test_start_twice_raises(self, controller):
        controller.start()
        with pytest.raises(AlreadyRunning):
            controller.start()

    def test_delayed_readiness(self, controller, source, scheduler):
        source.ready = False

        assert not controller.start()
        assert controller.recording_status == RecordingStatus.CONNECTING

        controller.source_ready()
        scheduler.advance(20000)
        assert controller.recording_status == RecordingStatus.RECORDING

    def test_connect_timeout_moves_to_error(self, controller, recorder, source, scheduler):
        source.ready = False
        controller.start()

        scheduler.advance(10000)

        assert controller.recording_status == RecordingStatus.ERROR
        assert controller.state.last_error is not None
        assert recorder.errors[-1].error_type == "SourceUnavailable"
        assert recorder.errors[-1].fatal
        with pytest.raises(SessionError):
            controller.start()

        controller.reset()
        source.ready = True
        assert controller.start()

    def test_source_exception_moves_to_error(self, controller, source):
        source.ready = RuntimeError("microphone permission denied")

        assert not controller.start()
        assert controller.recording_status == RecordingStatus.ERROR
        assert "microphone permission denied" in controller.state.last_error

    def test_source_error_while_recording(self, controller, scheduler):
        controller.start()
        controller.source_error("websocket closed unexpectedly")

        assert controller.recording_status == RecordingStatus.ERROR
        assert controller.state.last_error == "websocket closed unexpectedly"

    def test_stop_resets_session(self, controller, source):
        controller.start()
        controller.on_transcript(final("Cells divide by mitosis in most tissues", "l1"))

        assert controller.stop()

        assert source.calls == ["start", "stop"]
        assert controller.snapshot() == SessionState.idle(10000, True)


@pytest.mark.unit
class TestTranscriptIntake:

    def test_lines_ignored_before_start(self, controller):
        controller.on_transcript(final("Cells divide by mitosis in most tissues", "l1"))
        assert len(controller.state.buffer) == 0

    def test_system_messages_filtered(self, controller):
        controller.start()
        controller.on_transcript(final("[Speech detected]", "s1"))
        controller.on_transcript(final("ASR system connected", "s2"))

        assert len(controller.state.buffer) == 0
        assert controller.state.segmentation.pending_lines == []

    def test_interim_then_final_keeps_one_line(self, controller):
        controller.start()
        controller.on_transcript(interim("the sky", "x"))
        controller.on_transcript(final("the sky is blue today", "x"))

        lines = [line for line in controller.state.buffer if line.id == "x"]
        assert len(lines) == 1 and lines[0].is_final
        assert [line.text for line in controller.state.segmentation.pending_lines] == [
            "the sky is blue today"]

    def test_interim_lines_do_not_feed_segmentation(self, controller):
        controller.start()
        controller.on_transcript(interim("the sky is blue", "x"))

        assert controller.state.segmentation.pending_lines == []

    def test_mute_drops_transcripts(self, controller, source):
        controller.start()

        assert controller.toggle_mute() is True
        controller.on_transcript(final("spoken while the microphone is muted", "m1"))
        assert controller.toggle_mute() is False

        assert len(controller.state.buffer) == 0
        assert source.calls == ["start", "pause", "resume"]

    def test_failed_pause_leaves_session_unmuted(self, controller, source, monkeypatch):
        controller.start()

        def pause():
            raise RuntimeError("audio device busy")

        monkeypatch.setattr(source, "pause", pause)

        with pytest.raises(RuntimeError):
            controller.mute()

        assert not controller.state.muted
        assert controller.state.segmentation.muted_at is None

    def test_export_transcripts(self, controller):
        controller.start()
        controller.on_transcript(final("Cells divide by mitosis", "l1", timestamp=1_700_000_000_000))

        assert controller.export_transcripts().endswith("HOST: Cells divide by mitosis")


@pytest.mark.unit
class TestSegmentation:

    def test_segment_saved_then_forwarded(self, controller, recorder, scheduler, generator, store):
        controller.start()
        controller.on_transcript(final("Photosynthesis turns light into energy", "l1"))

        scheduler.advance(9750)
        assert controller.state.segmentation.segment_count == 0
        assert generator.calls == []

        scheduler.advance(250)
        assert controller.state.segmentation.segment_count == 1
        assert [[line.id for line in batch] for batch in store.batches] == [["l1"]]
        text, context = generator.calls[0]
        assert text == "Photosynthesis turns light into energy"
        assert context.segment_index == 1
        assert context.room_id == "room-1"
        assert [e.event_type for e in recorder.generation] == ["dispatched", "succeeded"]
        assert recorder.generation[-1].questions == generator.questions

    def test_pause_notifications(self, controller, recorder, scheduler):
        controller.start()
        controller.on_transcript(final("Photosynthesis turns light into energy", "l1"))
        scheduler.advance(1000)
        controller.on_transcript(final("inside the chloroplasts of plant cells", "l2"))

        assert [e.event_type for e in recorder.segmentation] == ["paused", "resumed"]

    def test_segment_count_matches_number_of_closes(self, controller, scheduler, generator):
        controller.start()
        texts = [
            "Photosynthesis turns light into energy",
            "The Calvin cycle fixes carbon dioxide",
            "Chlorophyll absorbs red and blue light",
        ]
        for index, text in enumerate(texts):
            controller.on_transcript(final(text, f"l{index}"))
            scheduler.advance(10000)

        assert controller.state.segmentation.segment_count == 3
        assert [call[0] for call in generator.segment_calls] == texts
        assert [call[1].segment_index for call in generator.segment_calls] == [1, 2, 3]

    def test_lines_below_threshold_make_one_segment(self, controller, scheduler, generator):
        controller.start()
        for index, text in enumerate(["Photosynthesis turns light", "into chemical energy",
                                      "inside the chloroplasts"]):
            controller.on_transcript(final(text, f"l{index}"))
            scheduler.advance(3000)

        scheduler.advance(20000)

        assert controller.state.segmentation.segment_count == 1
        assert generator.calls[0][0] == (
            "Photosynthesis turns light into chemical energy inside the chloroplasts")

    def test_duplicate_segment_not_forwarded_or_counted(self, controller, recorder, scheduler,
                                                        generator, store):
        controller.start()
        controller.on_transcript(final("we discussed photosynthesis today", "l1"))
        scheduler.advance(10000)
        controller.on_transcript(final("We discussed photosynthesis today!", "l2"))
        scheduler.advance(10000)

        assert controller.state.segmentation.segment_count == 1
        assert len(generator.calls) == 1
        assert len(store.batches) == 2
        assert [e.event_type for e in recorder.segmentation
                if e.event_type in ("committed", "suppressed")] == ["committed", "suppressed"]

    def test_short_segment_persisted_but_not_forwarded(self, controller, scheduler, generator, store):
        controller.start()
        controller.on_transcript(final("Okay.", "l1"))
        scheduler.advance(10000)

        assert controller.state.segmentation.segment_count == 0
        assert generator.calls == []
        assert len(store.batches) == 1

    def test_mute_freezes_segmentation_clock(self, controller, scheduler):
        controller.start()
        controller.on_transcript(final("Photosynthesis turns light into energy", "l1"))
        scheduler.advance(2000)
        controller.mute()
        scheduler.advance(13000)
        controller.unmute()

        assert controller.state.segmentation.segment_count == 0
        assert len(controller.state.segmentation.pending_lines) == 1

        scheduler.advance(7750)
        assert controller.state.segmentation.segment_count == 0
        scheduler.advance(250)
        assert controller.state.segmentation.segment_count == 1

    def test_disabled_segmentation(self, controller, scheduler, generator):
        controller.start()
        controller.set_segmentation_enabled(False)
        controller.on_transcript(final("Photosynthesis turns light into energy", "l1"))
        scheduler.advance(30000)

        assert controller.state.segmentation.segment_count == 0
        assert generator.calls == []

    def test_speech_while_disabled_is_not_segmented_after_reenabling(self, controller, scheduler,
                                                                     generator):
        controller.start()
        controller.set_segmentation_enabled(False)
        controller.on_transcript(final("spoken while segmentation was switched off", "l1"))
        controller.set_segmentation_enabled(True)

        scheduler.advance(20000)

        assert generator.segment_calls == []
        assert controller.state.segmentation.segment_count == 0
        assert [line.text for line in controller.state.buffer] == [
            "spoken while segmentation was switched off"]

    def test_without_store_segments_commit_immediately(self, make_controller, scheduler, generator):
        controller = make_controller(store=None)
        controller.start()
        controller.on_transcript(final("Photosynthesis turns light into energy", "l1"))
        scheduler.advance(10000)

        assert controller.state.segmentation.segment_count == 1
        assert len(generator.calls) == 1


@pytest.mark.unit
class TestPersistenceFailures:

    def test_failed_save_retains_lines_and_does_not_count(self, controller, recorder, scheduler,
                                                          generator, store):
        store.fail = True
        controller.start()
        controller.on_transcript(final("Photosynthesis turns light into energy", "l1"))
        scheduler.advance(10000)

        assert controller.state.segmentation.segment_count == 0
        assert generator.calls == []
        assert [line.id for line in controller.state.unsaved_lines] == ["l1"]
        assert controller.state.last_error == "store unavailable"
        assert recorder.errors[-1].error_type == "PersistenceFailed"
        assert not recorder.errors[-1].fatal
        assert controller.recording_status == RecordingStatus.RECORDING

    def test_retry_persistence(self, controller, scheduler, store):
        store.fail = True
        controller.start()
        controller.on_transcript(final("Photosynthesis turns light into energy", "l1"))
        scheduler.advance(10000)

        store.fail = False
        assert controller.retry_persistence() == 1

        assert controller.state.unsaved_lines == []
        assert [[line.id for line in batch] for batch in store.batches] == [["l1"]]
        assert controller.retry_persistence() == 0

    def test_reset_flushes_pending_lines(self, controller, store):
        controller.start()
        controller.on_transcript(final("Photosynthesis turns light into energy", "l1"))

        controller.reset()

        assert [[line.id for line in batch] for batch in store.batches] == [["l1"]]


@pytest.mark.unit
class TestStaleResults:

    def test_save_completing_after_reset_is_discarded(self, make_controller, deferred_runner,
                                                      scheduler, generator):
        controller = make_controller(runner=deferred_runner)
        controller.start()
        controller.on_transcript(final("Photosynthesis turns light into energy", "l1"))
        scheduler.advance(10000)
        assert len(deferred_runner.pending) == 1

        controller.reset()
        deferred_runner.run_pending()

        assert controller.state.segmentation.segment_count == 0
        assert generator.calls == []
        assert deferred_runner.pending == []

    def test_questions_arriving_after_reset_are_discarded(self, make_controller, make_recorder,
                                                          deferred_runner, scheduler, generator):
        controller = make_controller(runner=deferred_runner)
        recorder = make_recorder(controller.publisher)
        controller.start()
        controller.on_transcript(final("Photosynthesis turns light into energy", "l1"))
        scheduler.advance(10000)
        deferred_runner.run_pending()
        assert controller.state.segmentation.segment_count == 1
        assert len(deferred_runner.pending) == 1

        controller.reset()
        deferred_runner.run_pending()

        assert len(generator.calls) == 1
        assert [e.event_type for e in recorder.generation] == ["dispatched"]

    def test_generation_failure_is_reported_not_retried(self, controller, recorder, scheduler,
                                                        generator):
        generator.fail = True
        controller.start()
        controller.on_transcript(final("Photosynthesis turns light into energy", "l1"))
        scheduler.advance(30000)

        assert len(generator.calls) == 1
        assert controller.state.segmentation.segment_count == 1
        assert recorder.generation[-1].event_type == "failed"
        assert recorder.errors[-1].error_type == "GenerationFailed"


@pytest.mark.unit
class TestTimer:

    def test_basic_timer_lifecycle(self, controller, recorder, scheduler, generator):
        session_id = controller.start_timer(5000)
        assert controller.state.timer.status == TimerStatus.RUNNING
        assert controller.recording_status == RecordingStatus.RECORDING

        scheduler.advance(100)
        controller.on_transcript(final("the sky is blue today", "l1", timestamp=100))
        scheduler.advance_to(5000)
        assert controller.state.timer.status == TimerStatus.COMPLETED
        assert generator.timer_calls == []

        scheduler.advance_to(7000)

        assert len(generator.timer_calls) == 1
        text, context = generator.timer_calls[0]
        assert text == "the sky is blue today"
        assert context.session_id == session_id
        assert controller.state.timer.questions_generated
        assert recorder.timer_event_types()[:2] == ["started", "completed"]

    def test_generation_fires_once(self, controller, scheduler, generator):
        session_id = controller.start_timer(5000)
        controller.on_transcript(final("the sky is blue today", "l1"))
        scheduler.advance_to(7000)
        assert controller.state.timer.questions_generated

        controller.dispatch(TimerTick())
        controller.dispatch(TimerGraceElapsed(session_id))
        controller.dispatch(TimerGraceElapsed(session_id))

        assert len(generator.timer_calls) == 1

    def test_timer_counts_down_while_muted(self, controller, scheduler):
        controller.start_timer(5000)
        controller.mute()
        scheduler.advance(5000)

        assert controller.state.timer.status == TimerStatus.COMPLETED

    def test_repeated_text_accumulated_once(self, controller, scheduler):
        controller.start_timer(60000)
        controller.on_transcript(final("the sky is blue today", "l1"))
        controller.on_transcript(final("The sky is blue today.", "l2"))

        assert controller.state.timer.accumulated_text == "the sky is blue today"

    def test_stop_timer_generates_without_grace(self, controller, recorder, generator):
        controller.start_timer(60000)
        controller.on_transcript(final("Mitochondria produce most of the energy", "l1"))

        assert controller.stop_timer()

        assert controller.state.timer.status == TimerStatus.STOPPED
        assert [call[0] for call in generator.timer_calls] == [
            "Mitochondria produce most of the energy"]
        assert not controller.stop_timer()

    def test_stop_timer_without_speech_skips_generation(self, controller, generator):
        controller.start_timer(60000)
        controller.stop_timer()

        assert generator.calls == []
        assert controller.state.timer.questions_generated

    def test_invalid_duration(self, controller, source):
        with pytest.raises(InvalidDuration):
            controller.start_timer(0)
        assert source.calls == []
        assert controller.recording_status == RecordingStatus.STOPPED

    def test_second_timer_rejected(self, controller):
        controller.start_timer(60000)
        with pytest.raises(AlreadyRunning):
            controller.start_timer(60000)

    def test_timer_starts_once_source_becomes_ready(self, controller, recorder, source):
        source.ready = False

        session_id = controller.start_timer(60000)

        assert controller.recording_status == RecordingStatus.CONNECTING
        assert controller.state.timer.status == TimerStatus.IDLE
        assert controller.state.timer.session_id is None
        assert recorder.timer_event_types() == []

        controller.source_ready()

        assert controller.recording_status == RecordingStatus.RECORDING
        assert controller.state.timer.status == TimerStatus.RUNNING
        assert controller.state.timer.session_id == session_id
        assert recorder.timer_event_types() == ["started"]

    def test_timer_requested_while_already_connecting(self, controller, source):
        source.ready = False
        controller.start()

        session_id = controller.start_timer(60000)
        with pytest.raises(AlreadyRunning):
            controller.start_timer(60000)

        controller.source_ready()
        assert controller.state.timer.session_id == session_id

    def test_waiting_timer_dropped_when_connect_times_out(self, controller, source, scheduler):
        source.ready = False
        controller.start_timer(60000)

        scheduler.advance(10000)

        assert controller.recording_status == RecordingStatus.ERROR
        assert controller.state.timer.status == TimerStatus.IDLE
        assert controller.state.timer.session_id is None
        assert source.calls == ["start", "stop"]

        controller.source_ready()
        assert controller.state.timer.status == TimerStatus.IDLE

    def test_waiting_timer_dropped_on_source_error(self, controller, source):
        source.ready = False
        controller.start_timer(60000)

        controller.source_error("ASR quota exceeded")

        assert controller.recording_status == RecordingStatus.ERROR
        assert controller.state.timer.status == TimerStatus.IDLE

        controller.reset()
        source.ready = True
        controller.start()
        assert controller.state.timer.status == TimerStatus.IDLE

    def test_stop_timer_cancels_waiting_timer(self, controller, source):
        source.ready = False
        controller.start_timer(60000)

        assert controller.stop_timer() is False
        controller.source_ready()

        assert controller.recording_status == RecordingStatus.RECORDING
        assert controller.state.timer.status == TimerStatus.IDLE

    def test_start_is_atomic_when_source_fails(self, controller, source):
        source.ready = RuntimeError("no microphone")

        with pytest.raises(SourceUnavailable):
            controller.start_timer(60000)

        assert controller.state.timer.status == TimerStatus.IDLE
        assert controller.recording_status == RecordingStatus.ERROR

    def test_reset_timer_refused_while_running(self, controller, scheduler):
        controller.start_timer(5000)
        with pytest.raises(TimerRunning):
            controller.reset_timer()

        scheduler.advance(7000)
        controller.reset_timer()
        assert controller.state.timer.status == TimerStatus.IDLE

    def test_disconnect_stops_timer_and_generates(self, controller, recorder, generator):
        session_id = controller.start_timer(60000)
        controller.on_transcript(final("Mitochondria produce most of the energy", "l1"))

        controller.source_disconnected()

        assert controller.recording_status == RecordingStatus.DISCONNECTED
        assert controller.state.timer.status == TimerStatus.STOPPED
        assert [call[1].session_id for call in generator.timer_calls] == [session_id]
        assert controller.state.last_error is None

    def test_auto_reset_after_generation(self, make_controller, scheduler):
        controller = make_controller(auto_reset_ms=5000)
        controller.start_timer(5000)
        controller.on_transcript(final("the sky is blue today", "l1"))
        scheduler.advance_to(7000)
        assert controller.state.timer.status == TimerStatus.COMPLETED

        scheduler.advance_to(12000)
        assert controller.state.timer.status == TimerStatus.IDLE

    def test_auto_reset_waits_for_slow_generation(self, make_controller, make_recorder,
                                                  deferred_runner, scheduler):
        controller = make_controller(runner=deferred_runner, store=None, auto_reset_ms=5000)
        recorder = make_recorder(controller.publisher)
        session_id = controller.start_timer(5000)
        controller.on_transcript(final("the sky is blue today", "l1"))
        scheduler.advance_to(12500)
        assert controller.state.timer.status == TimerStatus.COMPLETED

        deferred_runner.run_pending()

        timer_events = [(e.event_type, e.token) for e in recorder.generation if e.source == "timer"]
        assert timer_events == [("dispatched", session_id), ("succeeded", session_id)]
        scheduler.advance_to(17000)
        assert controller.state.timer.status == TimerStatus.COMPLETED
        scheduler.advance_to(17500)
        assert controller.state.timer.status == TimerStatus.IDLE

    def test_auto_reset_after_failed_generation(self, make_controller, generator, scheduler):
        generator.fail = True
        controller = make_controller(auto_reset_ms=5000)
        controller.start_timer(5000)
        controller.on_transcript(final("the sky is blue today", "l1"))

        scheduler.advance_to(11000)
        assert controller.state.timer.status == TimerStatus.COMPLETED
        scheduler.advance_to(12000)
        assert controller.state.timer.status == TimerStatus.IDLE

    def test_late_timer_questions_discarded_after_reset(self, make_controller, make_recorder,
                                                        deferred_runner, scheduler):
        controller = make_controller(runner=deferred_runner)
        recorder = make_recorder(controller.publisher)
        controller.start_timer(5000)
        controller.on_transcript(final("the sky is blue today", "l1"))
        scheduler.advance_to(7000)

        controller.reset()
        deferred_runner.run_pending()

        assert [e.event_type for e in recorder.generation] == ["dispatched"]


@pytest.mark.unit
class TestReset:

    def test_reset_after_activity_equals_idle_state(self, controller, scheduler, store):
        controller.start_timer(5000)
        controller.on_transcript(final("Photosynthesis turns light into energy", "l1"))
        scheduler.advance(10000)
        controller.on_transcript(final("The Calvin cycle fixes carbon dioxide", "l2"))
        controller.mute()
        store.fail = True
        scheduler.advance(1000)

        controller.reset()

        assert controller.snapshot() == SessionState.idle(10000, True)
        assert controller.recording_status == RecordingStatus.STOPPED

    def test_reset_with_running_timer_skips_generation(self, controller, generator):
        controller.start_timer(60000)
        controller.on_transcript(final("the sky is blue today", "l1"))

        controller.reset()

        assert generator.timer_calls == []
        assert controller.snapshot() == SessionState.idle(10000, True)

    def test_reset_is_idempotent(self, controller, recorder, source):
        assert controller.reset()
        assert recorder.status == []
        assert source.calls == []

        controller.start()
        controller.reset()
        first = controller.snapshot()
        controller.reset()

        assert controller.snapshot() == first
        assert source.calls == ["start", "stop"]

    def test_reset_cancels_scheduled_work(self, controller, scheduler):
        controller.start_timer(5000)
        controller.reset()

        assert scheduler.pending() == 0
