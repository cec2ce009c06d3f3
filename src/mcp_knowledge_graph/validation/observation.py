"""
Observation shape checks: length bounds and sentence count.

Sentence counting masks technical substrings that contain periods (URLs,
IP addresses, file paths, version numbers, abbreviations, hostnames) before
splitting on sentence terminators, so "Upgraded to v2.4.1 on api.example.com."
counts as one sentence.
"""

import re

from ..config import ValidationSettings, settings
from ..models.responses import CheckResult

_PLACEHOLDER = "PLACEHOLDER"

# Path segments may contain periods but never end with one
_WINDOWS_SEGMENT = r"(?:[^\s<>:\"|?*.]|\.(?=[^\s<>:\"|?*.]))+"
_UNIX_SEGMENT = r"(?:[\w\-]|\.(?=[\w\-]))+"

# Order matters: multi-letter abbreviations before single ones, hostnames last
_TECHNICAL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"https?://[^\s]+"),
    re.compile(r"\b\d+\.\d+\.\d+\.\d+\b"),
    re.compile(rf"\b[A-Za-z]:[\\/](?:{_WINDOWS_SEGMENT}(?:\s+{_WINDOWS_SEGMENT})*)"),
    re.compile(rf"(?<!\S)/(?:{_UNIX_SEGMENT}/)*{_UNIX_SEGMENT}"),
    re.compile(r"\b[vV]?\d+\.\d+(?:\.\d+)*\b"),
    re.compile(r"\b(?:[A-Z]\.){2,}"),
    re.compile(r"\b[A-Z][a-z]{0,3}\."),
    re.compile(
        r"\b[a-zA-Z0-9](?:[a-zA-Z0-9\-]*[a-zA-Z0-9])?"
        r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9\-]*[a-zA-Z0-9])?){2,}\b"
    ),
)
_SENTENCE_TERMINATORS = re.compile(r"[.!?]")


def count_sentences(text: str) -> int:
    """Number of sentences in ``text``, ignoring periods inside technical content."""
    cleaned = text
    for pattern in _TECHNICAL_PATTERNS:
        cleaned = pattern.sub(_PLACEHOLDER, cleaned)
    return sum(1 for part in _SENTENCE_TERMINATORS.split(cleaned) if part.strip())


def validate_observation(observation: str, config: ValidationSettings | None = None) -> CheckResult:
    """Check one observation against the length and sentence limits."""
    cfg = config or settings.validation
    length = len(observation)

    if length < cfg.min_observation_length:
        return CheckResult.fail(
            f"Observation too short ({length} chars). Min {cfg.min_observation_length}.",
            "Provide more meaningful content.",
        )
    if length > cfg.max_observation_length:
        return CheckResult.fail(
            f"Observation too long ({length} chars). Max {cfg.max_observation_length}.",
            "Split into atomic facts.",
        )

    sentences = count_sentences(observation)
    if sentences > cfg.max_sentences:
        return CheckResult.fail(
            f"Too many sentences ({sentences}). Max {cfg.max_sentences}.",
            f"One fact per observation. Split this into {sentences} separate observations.",
        )
    return CheckResult.ok()
