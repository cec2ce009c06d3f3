"""
Relation inverse registry.

Every relation declared through save_memory is stored twice: the forward
edge and its inverse from target back to source. ``RelationInverter`` maps
a relation type to that inverse. Lookups are case-insensitive; unknown types
fall back to a heuristic:

    "tested by" -> "tested"          (strip a trailing " by")
    "foo"       -> "foo (inverse)"   (otherwise append " (inverse)")

One registry is constructed at startup and passed to the components that
need it; ``register()`` extends it at runtime (there is no removal).
"""

import logging
from collections.abc import Iterable

logger = logging.getLogger(__name__)

DEFAULT_INVERSE_PAIRS: tuple[tuple[str, str], ...] = (
    ("created", "created by"),
    ("contains", "contained in"),
    ("uses", "used by"),
    ("manages", "managed by"),
    ("owns", "owned by"),
    ("modifies", "modified by"),
    ("updates", "updated by"),
)

_PASSIVE_SUFFIX = " by"
_INVERSE_SUFFIX = " (inverse)"


class RelationInverter:
    """Bidirectional relation-type lookup table with a fallback heuristic."""

    def __init__(self, pairs: Iterable[tuple[str, str]] = DEFAULT_INVERSE_PAIRS):
        self._inverses: dict[str, str] = {}
        for relation_type, inverse in pairs:
            self.register(relation_type, inverse)

    def get_inverse(self, relation_type: str) -> str:
        """Return the inverse relation type for ``relation_type``."""
        normalized = relation_type.lower()
        known = self._inverses.get(normalized)
        if known is not None:
            return known
        if normalized.endswith(_PASSIVE_SUFFIX):
            return relation_type[: -len(_PASSIVE_SUFFIX)].strip()
        return f"{relation_type}{_INVERSE_SUFFIX}"

    def has_known_inverse(self, relation_type: str) -> bool:
        return relation_type.lower() in self._inverses

    def register(self, relation_type: str, inverse: str) -> None:
        """Insert both directions of a relation pair into the table."""
        self._inverses[relation_type.lower()] = inverse
        self._inverses[inverse.lower()] = relation_type
        logger.debug(f"Registered inverse relation pair: {relation_type!r} <-> {inverse!r}")

    def __contains__(self, relation_type: str) -> bool:
        return self.has_known_inverse(relation_type)

    def __len__(self) -> int:
        return len(self._inverses)
