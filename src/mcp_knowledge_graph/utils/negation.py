"""Negation word detection for contradiction heuristics."""

import re

NEGATION_WORDS = frozenset({"not", "no", "never", "neither", "none", "doesn't", "don't", "isn't", "aren't"})

_WORD = re.compile(r"\b[\w']+\b")


def extract_words(content: str) -> set[str]:
    """Lower-cased words of ``content``, keeping apostrophes in contractions."""
    return set(_WORD.findall(content.lower()))


def has_negation(content: str) -> bool:
    return any(word in NEGATION_WORDS for word in _WORD.findall(content.lower()))
