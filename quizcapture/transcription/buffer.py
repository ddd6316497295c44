"""Ordered transcript buffer holding interim and final lines."""

import logging
from datetime import datetime
from typing import Iterator, List

from ..models.transcript import TranscriptLine

logger = logging.getLogger(__name__)


class TranscriptBuffer:
    """Append-only buffer where a final line supersedes its own interim line.

    Lines keep insertion order; consumers sort by timestamp when they need to.
    At most one non-final line exists per id and it is replaced wholesale by
    whatever arrives next with the same id.
    """

    def __init__(self):
        self.lines: List[TranscriptLine] = []

    def append(self, line: TranscriptLine) -> None:
        """Add a line, replacing an interim line with the same id if present."""
        before = len(self.lines)
        self.lines = [
            existing for existing in self.lines
            if existing.is_final or existing.id != line.id
        ]
        if len(self.lines) != before:
            logger.debug(f"Superseded interim line {line.id} (final={line.is_final})")
        self.lines.append(line)

    def final_lines(self) -> Iterator[TranscriptLine]:
        """Lazily yield finalized lines in insertion order."""
        return (line for line in self.lines if line.is_final)

    def clear(self) -> None:
        self.lines = []

    def export_text(self) -> str:
        """Render final lines as a plain-text transcript, oldest first."""
        final = sorted(self.final_lines(), key=lambda line: line.timestamp)
        entries = []
        for line in final:
            when = datetime.fromtimestamp(line.timestamp / 1000).strftime("%Y-%m-%d %H:%M:%S")
            entries.append(f"[{when}] {line.role.label}: {line.text}")
        return "\n\n".join(entries)

    def copy(self) -> "TranscriptBuffer":
        clone = TranscriptBuffer()
        clone.lines = list(self.lines)
        return clone

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self) -> Iterator[TranscriptLine]:
        return iter(self.lines)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TranscriptBuffer):
            return NotImplemented
        return self.lines == other.lines

    def __repr__(self) -> str:
        return f"TranscriptBuffer({len(self.lines)} lines)"
