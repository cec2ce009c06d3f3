"""Entity type normalization (style warnings, never errors)."""

import re

_WHITESPACE = re.compile(r"\s+")


def _capitalize_first(word: str) -> str:
    return word[:1].upper() + word[1:]


def normalize_entity_type(entity_type: str) -> tuple[str, list[str]]:
    """
    Canonicalize an entity type.

    The first letter is upper-cased. Types containing whitespace are kept
    (after capitalization) but produce a warning suggesting a PascalCase form.

    Returns:
        Tuple of (normalized type, warnings)
    """
    warnings: list[str] = []
    normalized = entity_type

    if entity_type and entity_type[0] != entity_type[0].upper():
        normalized = _capitalize_first(entity_type)
        warnings.append(f"EntityType '{entity_type}' should start with capital letter. Normalized to '{normalized}'.")

    if _WHITESPACE.search(entity_type):
        words = _WHITESPACE.sub(" ", entity_type).strip().split(" ")
        suggested = "".join(_capitalize_first(word) for word in words if word)
        warnings.append(f"EntityType '{entity_type}' contains spaces. Consider using '{suggested}' instead.")

    return normalized, warnings
