"""Transcript persistence collaborators."""

import logging
from typing import Any, Dict, List, Optional, Protocol

import aiohttp

from ..models.transcript import Role, TranscriptLine
from .generation import GenerationContext

logger = logging.getLogger(__name__)


class TranscriptStore(Protocol):
    """Protocol for durable storage of finalized transcript lines."""

    async def save_lines(self, lines: List[TranscriptLine], context: GenerationContext) -> None:
        """Persist a batch of final lines."""
        ...


class MemoryTranscriptStore:
    """Keeps saved batches in memory; used by the replay command."""

    def __init__(self):
        self.batches: List[List[TranscriptLine]] = []

    async def save_lines(self, lines: List[TranscriptLine], context: GenerationContext) -> None:
        self.batches.append(list(lines))
        logger.debug(f"Stored batch of {len(lines)} lines for room {context.room_id}")

    @property
    def saved_lines(self) -> List[TranscriptLine]:
        return [line for batch in self.batches for line in batch]


class HttpTranscriptStore:
    """Posts finalized lines to the host backend's bulk transcript endpoint."""

    def __init__(self, base_url: str, path: str = "/transcripts",
                 timeout_seconds: float = 30.0, auth_token: Optional[str] = None):
        self.base_url = base_url.rstrip("/")
        self.path = path
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.auth_token = auth_token
        logger.info(f"HttpTranscriptStore initialized for {self.base_url}{self.path}")

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    async def save_lines(self, lines: List[TranscriptLine], context: GenerationContext) -> None:
        """Save lines; raises on any non-2xx response."""
        role = lines[0].role.value if lines else Role.HOST.value
        payload: Dict[str, Any] = {
            "meetingId": context.room_id,
            "role": role,
            "participantId": context.host_id,
            "transcripts": [{
                "type": "final",
                "meetingId": context.room_id,
                "participantId": context.host_id,
                **line.to_dict(),
            } for line in lines],
        }

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.post(f"{self.base_url}{self.path}", headers=self._headers(),
                                    json=payload) as response:
                if response.status >= 300:
                    error_text = await response.text()
                    raise Exception(f"Transcript save error: {response.status} - {error_text}")

        logger.info(f"Saved {len(lines)} transcript lines for room {context.room_id}")
