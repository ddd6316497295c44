"""Text normalization and duplicate detection for transcript lines.

Duplicate detection is exact-match only: two texts are duplicates when their
normalized comparison keys are identical and non-empty. Word-overlap similarity
is computed for logging, never for exclusion, because a threshold flags
distinct utterances that merely share a topic.
"""

import re

_DISALLOWED = re.compile(r"[^\w\s.,;:!?]")
_PUNCTUATION = re.compile(r"[.,;:!?]")
_WHITESPACE = re.compile(r"\s+")
_BRACKETED = re.compile(r"^\[.*\]$", re.DOTALL)

SYSTEM_MARKERS = (
    "ASR system connected",
    "[Speech detected",
    "[Speech recognition",
    "[Speech Error:",
    "[Fallback]",
)


def normalize(text: str) -> str:
    """Lowercase, strip unsupported characters, collapse whitespace, trim."""
    if not text:
        return ""
    cleaned = _DISALLOWED.sub("", text.lower())
    return _WHITESPACE.sub(" ", cleaned).strip()


def comparison_key(text: str) -> str:
    """Normalized text with punctuation removed, used for equality checks."""
    without_punctuation = _PUNCTUATION.sub(" ", normalize(text))
    return _WHITESPACE.sub(" ", without_punctuation).strip()


def similarity(a: str, b: str) -> float:
    """Position-aligned word overlap in [0, 1].

    Words of the normalized texts are compared index by index up to the
    shorter length and the match count is divided by the longer length, so
    re-ordered phrasing scores low. Punctuation stays attached to its word.
    """
    words_a = normalize(a).split()
    words_b = normalize(b).split()
    if not words_a or not words_b:
        return 0.0
    matches = sum(1 for left, right in zip(words_a, words_b) if left == right)
    return matches / max(len(words_a), len(words_b))


def is_duplicate(a: str, b: str) -> bool:
    key = comparison_key(a)
    return bool(key) and key == comparison_key(b)


def is_system_message(text: str) -> bool:
    """True for recognizer housekeeping strings that are not speech."""
    if not text or len(text.strip()) < 3:
        return True
    if any(marker in text for marker in SYSTEM_MARKERS):
        return True
    return bool(_BRACKETED.match(text.strip()))
