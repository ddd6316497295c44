"""External collaborators of the session core."""

from .generation import GenerationContext, HttpQuestionGenerator, QuestionGenerator
from .persistence import HttpTranscriptStore, MemoryTranscriptStore, TranscriptStore
from .workers import AsyncCallRunner, InlineCallRunner

__all__ = [
    "GenerationContext",
    "QuestionGenerator",
    "HttpQuestionGenerator",
    "TranscriptStore",
    "MemoryTranscriptStore",
    "HttpTranscriptStore",
    "AsyncCallRunner",
    "InlineCallRunner",
]
