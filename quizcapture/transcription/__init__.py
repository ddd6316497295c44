"""Transcript text handling: normalization, duplicate checks and buffering."""

from .normalizer import comparison_key, is_duplicate, is_system_message, normalize, similarity
from .buffer import TranscriptBuffer

__all__ = [
    "normalize",
    "comparison_key",
    "similarity",
    "is_duplicate",
    "is_system_message",
    "TranscriptBuffer",
]
