"""Audio/ASR source interface and a scripted source for replays."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import yaml

from ..models.transcript import Role, TranscriptLine
from ..session.clock import Scheduler

logger = logging.getLogger(__name__)


class AudioSource(Protocol):
    """What the controller needs from an audio capture + recognition source."""

    def start(self) -> bool:
        """Begin capture. True when ready now, False when readiness comes later."""
        ...

    def stop(self) -> None:
        ...

    def pause(self) -> None:
        """Stop delivering recognition results without closing the connection."""
        ...

    def resume(self) -> None:
        ...


class ScriptedSource:
    """Replays transcript events from a YAML script on a scheduler.

    Script format::

        events:
          - {at: 0, id: l1, text: "the sky is", final: false}
          - {at: 400, id: l1, text: "the sky is blue today", final: true}
          - {at: 2000, action: mute}
          - {at: 9000, action: unmute}
    """

    def __init__(self, events: List[Dict[str, Any]], scheduler: Scheduler,
                 role: Role = Role.HOST):
        self.events = sorted(events, key=lambda item: int(item.get("at", 0)))
        self.scheduler = scheduler
        self.role = role
        self.controller = None
        self._handles = []
        self._paused = False

    @classmethod
    def from_file(cls, path: str, scheduler: Scheduler) -> "ScriptedSource":
        script_path = Path(path)
        if not script_path.exists():
            raise FileNotFoundError(f"Transcript script not found: {script_path}")
        with open(script_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        events = data.get("events", [])
        role = Role(data.get("role", "host"))
        logger.info(f"Loaded {len(events)} scripted events from {script_path}")
        return cls(events, scheduler, role)

    @property
    def duration_ms(self) -> int:
        return max((int(item.get("at", 0)) for item in self.events), default=0)

    def attach(self, controller) -> None:
        self.controller = controller

    def start(self) -> bool:
        if self.controller is None:
            raise RuntimeError("ScriptedSource must be attached to a controller before start")
        self._paused = False
        origin = self.scheduler.now()
        for index, item in enumerate(self.events):
            delay = int(item.get("at", 0))
            self._handles.append(self.scheduler.call_later(
                delay, lambda item=item, index=index, origin=origin: self._emit(item, index, origin)))
        return True

    def _emit(self, item: Dict[str, Any], index: int, origin: int) -> None:
        action: Optional[str] = item.get("action")
        controller = self.controller
        if action == "mute":
            controller.mute()
        elif action == "unmute":
            controller.unmute()
        elif action == "disconnect":
            controller.source_disconnected()
        elif action == "error":
            controller.source_error(item.get("message", "Scripted source error"))
        elif action is not None:
            logger.warning(f"Unknown scripted action: {action}")
        elif not self._paused:
            now = self.scheduler.now()
            controller.on_transcript(TranscriptLine(
                id=str(item.get("id", f"line-{index}")),
                role=Role(item.get("role", self.role.value)),
                text=str(item.get("text", "")),
                timestamp=now,
                is_final=bool(item.get("final", True)),
                start_time=int(item.get("start", now - origin)),
                end_time=int(item.get("end", now - origin)),
            ))

    def stop(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self._handles = []

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False
