"""Pytest configuration and fixtures for QuizCapture tests."""

import itertools
import logging
from typing import Any, List, Optional

import pytest

from quizcapture.config import SessionSettings
from quizcapture.models.transcript import TranscriptLine
from quizcapture.services.generation import GenerationContext
from quizcapture.services.workers import CallTask, InlineCallRunner
from quizcapture.session.clock import ManualScheduler
from quizcapture.session.controller import RecordingSessionController
from quizcapture.session.publisher import (
    ERROR_TOPIC,
    GENERATION_TOPIC,
    SEGMENTATION_TOPIC,
    STATUS_TOPIC,
    TIMER_TOPIC,
    SessionPublisher,
)


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_topic_prefixes = itertools.count(1)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests with a fake clock")
    config.addinivalue_line("markers", "integration: tests using threads or a local HTTP server")


class FakeSource:
    """Audio source double; `ready` may be True, False or an exception to raise."""

    def __init__(self, ready: Any = True):
        self.ready = ready
        self.calls: List[str] = []

    def start(self) -> bool:
        self.calls.append("start")
        if isinstance(self.ready, Exception):
            raise self.ready
        return self.ready

    def stop(self) -> None:
        self.calls.append("stop")

    def pause(self) -> None:
        self.calls.append("pause")

    def resume(self) -> None:
        self.calls.append("resume")


class RecordingGenerator:
    """Question generator double that remembers every request."""

    def __init__(self):
        self.calls: List[Any] = []
        self.fail = False
        self.questions = [{"question": "What did we discuss?"}]

    async def generate(self, text: str, context: GenerationContext) -> List[Any]:
        self.calls.append((text, context))
        if self.fail:
            raise RuntimeError("generation backend unavailable")
        return list(self.questions)

    @property
    def timer_calls(self):
        return [call for call in self.calls if call[1].session_id is not None]

    @property
    def segment_calls(self):
        return [call for call in self.calls if call[1].segment_index is not None]


class RecordingStore:
    """Transcript store double; set `fail` to make saves raise."""

    def __init__(self):
        self.batches: List[List[TranscriptLine]] = []
        self.fail = False

    async def save_lines(self, lines: List[TranscriptLine], context: GenerationContext) -> None:
        if self.fail:
            raise RuntimeError("store unavailable")
        self.batches.append(list(lines))


class DeferredCallRunner:
    """Holds submitted calls until `run_pending()` so tests control completion order."""

    def __init__(self):
        self.pending: List[CallTask] = []
        self._inline = InlineCallRunner()

    def submit(self, name, call, on_success, on_failure) -> None:
        self.pending.append(CallTask(name, call, on_success, on_failure))

    def run_pending(self) -> int:
        tasks, self.pending = self.pending, []
        for task in tasks:
            self._inline.submit(*task)
        return len(tasks)

    def shutdown(self, timeout: float = 0.0) -> bool:
        return True


class NotificationRecorder:
    """Subscribes to every session topic of one publisher.

    pypubsub keeps weak references to listeners, so tests must hold on to the
    recorder for as long as they expect notifications.
    """

    def __init__(self, publisher: SessionPublisher):
        self.publisher = publisher
        self.status = []
        self.segmentation = []
        self.timer = []
        self.generation = []
        self.errors = []
        publisher.subscribe(self.on_status, STATUS_TOPIC)
        publisher.subscribe(self.on_segmentation, SEGMENTATION_TOPIC)
        publisher.subscribe(self.on_timer, TIMER_TOPIC)
        publisher.subscribe(self.on_generation, GENERATION_TOPIC)
        publisher.subscribe(self.on_error, ERROR_TOPIC)

    def on_status(self, event):
        self.status.append(event)

    def on_segmentation(self, event):
        self.segmentation.append(event)

    def on_timer(self, event):
        self.timer.append(event)

    def on_generation(self, event):
        self.generation.append(event)

    def on_error(self, event):
        self.errors.append(event)

    def timer_event_types(self) -> List[str]:
        return [event.event_type for event in self.timer]


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def generator():
    return RecordingGenerator()


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def make_controller(scheduler, source, generator, store):
    """Factory building controllers on the fake clock with an isolated topic prefix."""

    def factory(runner=None, store: Optional[RecordingStore] = store, source=source,
                **overrides) -> RecordingSessionController:
        settings = SessionSettings(**{
            "threshold_ms": 10000,
            "segmentation_tick_ms": 250,
            "min_segment_chars": 20,
            "timer_tick_ms": 1000,
            "grace_ms": 2000,
            "connect_timeout_ms": 10000,
            "room_id": "room-1",
            "host_id": "host-1",
            **overrides,
        })
        publisher = SessionPublisher(prefix=f"test{next(_topic_prefixes)}")
        return RecordingSessionController(
            source, generator, store=store, settings=settings, scheduler=scheduler,
            runner=runner or InlineCallRunner(), publisher=publisher)

    return factory


@pytest.fixture
def controller(make_controller):
    return make_controller()


@pytest.fixture
def recorder(controller):
    return NotificationRecorder(controller.publisher)


@pytest.fixture
def deferred_runner():
    return DeferredCallRunner()


@pytest.fixture
def make_recorder():
    return NotificationRecorder
