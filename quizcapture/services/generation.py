"""Question generation collaborators."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

import aiohttp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationContext:
    """Where a transcript came from: a segment of a recording or a timer session."""
    room_id: str
    host_id: str
    segment_index: Optional[int] = None
    session_id: Optional[str] = None  # timer session
    recording_id: Optional[str] = None  # recording session the lines belong to
    # Timer sessions only
    duration_ms: Optional[int] = None
    started_at: Optional[int] = None
    ended_at: Optional[int] = None
    timer_status: Optional[str] = None
    segment_count: int = 0

    @property
    def segment_id(self) -> Optional[str]:
        if self.segment_index is None:
            return None
        return f"{self.recording_id}_segment_{self.segment_index}"


class QuestionGenerator(Protocol):
    """Protocol for services that turn transcript text into quiz questions."""

    async def generate(self, text: str, context: GenerationContext) -> List[Any]:
        """Generate questions for the given text."""
        ...


class HttpQuestionGenerator:
    """Requests question generation from the host backend over HTTP.

    Timer sessions are saved first (`POST /timer-transcripts/save`) and the
    returned transcript id is then sent to `/timer-transcripts/generate-questions`,
    which answers with the questions. Segments go to
    `/rag-questions/segment/generate`; the backend accepts them with 202 and
    generates in the background, so no questions come back for a segment.
    """

    def __init__(self, base_url: str,
                 segment_path: str = "/rag-questions/segment/generate",
                 timer_save_path: str = "/timer-transcripts/save",
                 timer_generate_path: str = "/timer-transcripts/generate-questions",
                 ai_provider: str = "gemini", question_count: int = 5,
                 timeout_seconds: float = 60.0, auth_token: Optional[str] = None):
        """Initialize the HTTP question generator.

        Args:
            base_url: Backend root, e.g. http://localhost:8000/api
            segment_path: Endpoint for segment-based generation
            timer_save_path: Endpoint storing a timer session's combined transcript
            timer_generate_path: Endpoint generating questions for a saved timer transcript
            ai_provider: Provider name forwarded to the backend ("gemini", "ollama")
            question_count: Number of questions to request
            timeout_seconds: Total timeout for each request
            auth_token: Optional bearer token
        """
        self.base_url = base_url.rstrip("/")
        self.segment_path = segment_path
        self.timer_save_path = timer_save_path
        self.timer_generate_path = timer_generate_path
        self.ai_provider = ai_provider
        self.question_count = question_count
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.auth_token = auth_token

        logger.info(f"HttpQuestionGenerator initialized for {self.base_url} ({ai_provider})")

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    async def generate(self, text: str, context: GenerationContext) -> List[Any]:
        """Send text to the backend and return the generated questions.

        Raises:
            Exception: If the backend answers with an error status or the
                timer transcript save returns no id
        """
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            if context.session_id is not None:
                return await self._generate_for_timer(session, text, context)
            return await self._generate_for_segment(session, text, context)

    async def _post(self, session: aiohttp.ClientSession, path: str,
                    payload: Dict[str, Any]) -> Dict[str, Any]:
        async with session.post(f"{self.base_url}{path}", headers=self._headers(),
                                json=payload) as response:
            if response.status >= 300:
                error_text = await response.text()
                raise Exception(f"Backend error on {path}: {response.status} - {error_text}")
            return await response.json()

    async def _generate_for_timer(self, session: aiohttp.ClientSession, text: str,
                                  context: GenerationContext) -> List[Any]:
        saved = await self._post(session, self.timer_save_path, {
            "sessionId": context.session_id,
            "hostId": context.host_id,
            "roomId": context.room_id,
            "startTime": context.started_at,
            "endTime": context.ended_at,
            "durationSelected": context.duration_ms,
            "combinedTranscript": text,
            "status": context.timer_status,
            "segmentCount": context.segment_count,
        })
        record = saved.get("data") or {}
        transcript_id = record.get("id") or record.get("_id")
        if not transcript_id:
            raise Exception(f"Timer transcript save for {context.session_id} returned no id")
        logger.info(f"Saved timer transcript {transcript_id} for {context.session_id}")

        result = await self._post(session, self.timer_generate_path, {
            "timerTranscriptId": transcript_id,
            "aiProvider": self.ai_provider,
            "questionCount": self.question_count,
        })
        questions = (result.get("data") or {}).get("questions", [])
        logger.info(f"Generated {len(questions)} questions for timer {context.session_id}")
        return questions

    async def _generate_for_segment(self, session: aiohttp.ClientSession, text: str,
                                    context: GenerationContext) -> List[Any]:
        segment_id = context.segment_id
        await self._post(session, self.segment_path, {
            "transcriptText": text,
            "transcriptId": segment_id,
            "segmentId": segment_id,
            "sessionId": context.recording_id,
            "roomId": context.room_id,
            "hostId": context.host_id,
            "questionCount": self.question_count,
        })
        logger.info(f"Question generation accepted for segment {segment_id}")
        return []
