"""Request models consumed by the knowledge graph manager.

These are the typed arguments of the manager operations. The tool layer
(``mcp_inputs.py``) wraps them with thread ids and other call-level fields.
"""

from __future__ import annotations

from datetime import datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .graph import Relation
from .validators import (
    EntityName,
    EntityTypeName,
    NonEmptyStr,
    NonNegativeInt,
    RelationTypeName,
    ThreadId,
    UnitFloat,
)


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# save_memory
# ---------------------------------------------------------------------------


class SaveMemoryRelation(_Request):
    """A relation declared on an entity inside a save_memory request."""

    target_entity: NonEmptyStr = Field(alias="targetEntity")
    relation_type: RelationTypeName = Field(alias="relationType")
    importance: UnitFloat | None = None


class SaveMemoryEntity(_Request):
    """An entity as submitted to save_memory (observations are plain strings).

    Observation length, sentence count and the mandatory-relation rule are
    checked by the validation engine, not here, so that every problem in the
    request is reported together.
    """

    name: EntityName
    entity_type: EntityTypeName = Field(alias="entityType")
    observations: list[str] = Field(min_length=1)
    relations: list[SaveMemoryRelation] = Field(default_factory=list)
    confidence: UnitFloat | None = None
    importance: UnitFloat | None = None


# ---------------------------------------------------------------------------
# Observations
# ---------------------------------------------------------------------------


class ObservationAddition(_Request):
    """Observations to append to one entity."""

    entity_name: NonEmptyStr = Field(alias="entityName")
    contents: list[str]
    # Default to the calling thread / current time when omitted
    agent_thread_id: ThreadId | None = Field(default=None, alias="agentThreadId")
    timestamp: str | None = None
    confidence: UnitFloat
    importance: UnitFloat


class ObservationDeletion(_Request):
    """Observations (matched by content or by id) to remove from one entity."""

    entity_name: NonEmptyStr = Field(alias="entityName")
    observations: list[str]


class ObservationUpdate(_Request):
    """Replace the head observation of a chain with new content."""

    entity_name: NonEmptyStr = Field(alias="entityName")
    observation_id: NonEmptyStr = Field(alias="observationId")
    new_content: NonEmptyStr = Field(alias="newContent")
    agent_thread_id: ThreadId = Field(alias="agentThreadId")
    timestamp: str | None = None
    confidence: UnitFloat | None = None
    importance: UnitFloat | None = None


# ---------------------------------------------------------------------------
# Relations
# ---------------------------------------------------------------------------


class RelationRef(_Request):
    """Identifies relations by (from, to, relationType) for deletion."""

    from_: NonEmptyStr = Field(alias="from")
    to: NonEmptyStr
    relation_type: NonEmptyStr = Field(alias="relationType")

    def matches(self, relation: Relation) -> bool:
        return relation.key == (self.from_, self.to, self.relation_type)


class RelationInput(RelationRef):
    """A relation submitted directly (outside save_memory)."""

    agent_thread_id: ThreadId | None = Field(default=None, alias="agentThreadId")
    timestamp: str | None = None
    confidence: UnitFloat = 1.0
    importance: UnitFloat = 0.7

    def to_relation(self, thread_id: str, timestamp: str) -> Relation:
        return Relation(
            from_=self.from_,
            to=self.to,
            relation_type=self.relation_type,
            agent_thread_id=self.agent_thread_id or thread_id,
            timestamp=self.timestamp or timestamp,
            confidence=self.confidence,
            importance=self.importance,
        )


# ---------------------------------------------------------------------------
# Queries and maintenance
# ---------------------------------------------------------------------------


class NodeFilters(_Request):
    """Inclusive range filters for query_nodes (all optional)."""

    timestamp_start: str | None = Field(default=None, alias="timestampStart")
    timestamp_end: str | None = Field(default=None, alias="timestampEnd")
    confidence_min: UnitFloat | None = Field(default=None, alias="confidenceMin")
    confidence_max: UnitFloat | None = Field(default=None, alias="confidenceMax")
    importance_min: UnitFloat | None = Field(default=None, alias="importanceMin")
    importance_max: UnitFloat | None = Field(default=None, alias="importanceMax")

    @model_validator(mode="after")
    def check_ranges(self) -> Self:
        for low, high, label in (
            (self.confidence_min, self.confidence_max, "confidence"),
            (self.importance_min, self.importance_max, "importance"),
        ):
            if low is not None and high is not None and low > high:
                raise ValueError(f"{label} minimum must not exceed maximum")
        return self


class PruneOptions(_Request):
    """Retention policy for prune_memory."""

    older_than: str | None = Field(default=None, alias="olderThan")
    importance_less_than: UnitFloat | None = Field(default=None, alias="importanceLessThan")
    keep_min_entities: NonNegativeInt | None = Field(default=None, alias="keepMinEntities")

    @field_validator("older_than")
    @classmethod
    def check_older_than(cls, v: str | None) -> str | None:
        """Reject cutoffs that are not ISO-8601 timestamps."""
        if v is not None:
            datetime.fromisoformat(v)
        return v


class BulkUpdateItem(_Request):
    """One entity's changes in a bulk_update call."""

    entity_name: NonEmptyStr = Field(alias="entityName")
    confidence: UnitFloat | None = None
    importance: UnitFloat | None = None
    add_observations: list[str] | None = Field(default=None, alias="addObservations")
