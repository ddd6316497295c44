"""Transcript-related data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(Enum):
    """Who produced a transcript line."""
    HOST = "host"
    PARTICIPANT = "participant"
    GUEST = "guest"

    @property
    def label(self) -> str:
        return self.name


@dataclass(frozen=True)
class TranscriptLine:
    """A single recognized utterance, interim or final."""
    id: str
    role: Role
    text: str
    timestamp: int  # ms at which the line was received
    is_final: bool
    start_time: int = 0  # ms bounds the ASR attributes to the utterance
    end_time: int = 0
    display_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role.value,
            "text": self.text,
            "timestamp": self.timestamp,
            "isFinal": self.is_final,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "displayName": self.display_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TranscriptLine":
        return cls(
            id=str(data["id"]),
            role=Role(data.get("role", "host")),
            text=data.get("text", ""),
            timestamp=int(data.get("timestamp", 0)),
            is_final=bool(data.get("isFinal", data.get("is_final", True))),
            start_time=int(data.get("startTime", data.get("start_time", 0))),
            end_time=int(data.get("endTime", data.get("end_time", 0))),
            display_name=data.get("displayName", data.get("display_name")),
        )
