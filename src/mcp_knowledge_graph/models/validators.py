"""Shared Pydantic types and validators for reuse across models.

Centralises range-clamped floats, name/type length constraints and the
archival status literal so every model speaks the same language.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field

# ---------------------------------------------------------------------------
# Numeric types
# ---------------------------------------------------------------------------

UnitFloat = Annotated[float, Field(ge=0.0, le=1.0)]
"""Float clamped to [0.0, 1.0]: confidence and importance."""

NonNegativeInt = Annotated[int, Field(ge=0)]
"""Integer ≥ 0: counts."""

PositiveInt = Annotated[int, Field(ge=1)]
"""Integer ≥ 1: versions and depths."""


# ---------------------------------------------------------------------------
# String constraints
# ---------------------------------------------------------------------------

MIN_ENTITY_NAME_LENGTH = 1
MAX_ENTITY_NAME_LENGTH = 100
MIN_ENTITY_TYPE_LENGTH = 1
MAX_ENTITY_TYPE_LENGTH = 50
MAX_RELATION_TYPE_LENGTH = 50

EntityName = Annotated[str, Field(min_length=MIN_ENTITY_NAME_LENGTH, max_length=MAX_ENTITY_NAME_LENGTH)]
"""Entity name as accepted at the request edge (1-100 chars)."""

EntityTypeName = Annotated[str, Field(min_length=MIN_ENTITY_TYPE_LENGTH, max_length=MAX_ENTITY_TYPE_LENGTH)]
"""Entity type as accepted at the request edge (1-50 chars)."""

RelationTypeName = Annotated[str, Field(min_length=1, max_length=MAX_RELATION_TYPE_LENGTH)]

# Thread ids become shard file names, so path separators are rejected
ThreadId = Annotated[str, Field(min_length=1, pattern=r"^[^/\\]+$")]
"""Non-empty agent thread identifier."""

NonEmptyStr = Annotated[str, Field(min_length=1)]


# ---------------------------------------------------------------------------
# Literal enums
# ---------------------------------------------------------------------------

ARCHIVED: Literal["ARCHIVED"] = "ARCHIVED"
ArchiveStatus = Literal["ARCHIVED"]
OrphanReason = Literal["no_relations", "broken_relation"]
ChangeType = Literal["created", "updated"]
