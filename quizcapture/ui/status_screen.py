"""Console summary of a recording session rendered with rich."""

import logging
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models.events import (
    ErrorNotification,
    GenerationNotification,
    SegmentationNotification,
    StatusNotification,
    TimerNotification,
)
from ..models.session import RecordingStatus, SessionState
from ..session.publisher import (
    ERROR_TOPIC,
    GENERATION_TOPIC,
    SEGMENTATION_TOPIC,
    STATUS_TOPIC,
    TIMER_TOPIC,
    SessionPublisher,
)

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    RecordingStatus.STOPPED.value: "bold yellow",
    RecordingStatus.CONNECTING.value: "bold blue",
    RecordingStatus.RECORDING.value: "bold red",
    RecordingStatus.ERROR.value: "bold magenta",
    RecordingStatus.DISCONNECTED.value: "bold magenta",
}


class SessionStatusScreen:
    """Collects session notifications and prints a summary on demand."""

    def __init__(self, publisher: SessionPublisher, console: Optional[Console] = None):
        self.console = console or Console()
        self.publisher = publisher
        self.status_events: List[StatusNotification] = []
        self.segments: List[SegmentationNotification] = []
        self.timer_events: List[TimerNotification] = []
        self.generation_events: List[GenerationNotification] = []
        self.errors: List[ErrorNotification] = []

        publisher.subscribe(self.on_status, STATUS_TOPIC)
        publisher.subscribe(self.on_segmentation, SEGMENTATION_TOPIC)
        publisher.subscribe(self.on_timer, TIMER_TOPIC)
        publisher.subscribe(self.on_generation, GENERATION_TOPIC)
        publisher.subscribe(self.on_error, ERROR_TOPIC)

    def on_status(self, event: StatusNotification) -> None:
        self.status_events.append(event)

    def on_segmentation(self, event: SegmentationNotification) -> None:
        if event.event_type in ("committed", "suppressed"):
            self.segments.append(event)

    def on_timer(self, event: TimerNotification) -> None:
        self.timer_events.append(event)

    def on_generation(self, event: GenerationNotification) -> None:
        self.generation_events.append(event)

    def on_error(self, event: ErrorNotification) -> None:
        self.errors.append(event)
        style = "bold red" if event.fatal else "yellow"
        self.console.print(f"⚠️  {event.error_type}: {event.message}", style=style)

    def render(self, state: SessionState) -> None:
        """Print the final session summary."""
        status = state.recording_status.value
        self.console.print(Panel(
            f"Recording: [{STATUS_STYLES.get(status, 'bold')}]{status.upper()}[/]"
            f"{'  (muted)' if state.muted else ''}\n"
            f"Segments committed: {state.segmentation.segment_count}\n"
            f"Timer: {state.timer.status.value}",
            title="🎙️  QuizCapture session",
        ))

        if self.segments:
            table = Table(title="Segments")
            table.add_column("#", justify="right")
            table.add_column("Result")
            table.add_column("Text")
            for event in self.segments:
                index = str(event.segment_index) if event.segment_index is not None else "-"
                table.add_row(index, event.event_type, (event.text or "")[:80])
            self.console.print(table)

        finished = [e for e in self.generation_events if e.event_type != "dispatched"]
        if finished:
            table = Table(title="Question generation")
            table.add_column("Source")
            table.add_column("Token")
            table.add_column("Result")
            for event in finished:
                result = (f"{len(event.questions)} questions" if event.event_type == "succeeded"
                          else f"failed: {event.error}")
                table.add_row(event.source, str(event.token), result)
            self.console.print(table)

        if self.errors:
            self.console.print(f"{len(self.errors)} error(s) reported", style="red")

    def close(self) -> None:
        self.publisher.unsubscribe(self.on_status, STATUS_TOPIC)
        self.publisher.unsubscribe(self.on_segmentation, SEGMENTATION_TOPIC)
        self.publisher.unsubscribe(self.on_timer, TIMER_TOPIC)
        self.publisher.unsubscribe(self.on_generation, GENERATION_TOPIC)
        self.publisher.unsubscribe(self.on_error, ERROR_TOPIC)
