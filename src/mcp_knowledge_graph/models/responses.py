"""Service-layer response models.

Typed Pydantic models returned by ``KnowledgeGraphManager``. Field names
follow the wire format consumers already know (``quality_score``,
``removedEntities``, ``agentThreadId``); use ``model_dump(by_alias=True)``
when serialising for the tool layer.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .graph import Entity, Observation, Relation
from .requests import SaveMemoryEntity
from .validators import ChangeType, NonNegativeInt, OrphanReason

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


class ServiceResult(BaseModel):
    """Common base for operation results."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    error: str | None = None


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class CheckResult(_Payload):
    """Outcome of a single validation rule."""

    valid: bool
    error: str | None = None
    suggestion: str | None = None

    @classmethod
    def ok(cls) -> CheckResult:
        return cls(valid=True)

    @classmethod
    def fail(cls, error: str, suggestion: str | None = None) -> CheckResult:
        return cls(valid=False, error=error, suggestion=suggestion)


class ValidationIssue(_Payload):
    """One request-level validation error, tagged with the offending entity."""

    entity_index: NonNegativeInt
    entity_name: str
    entity_type: str
    error: str
    suggestion: str | None = None
    observation_preview: str | None = None

    def message(self) -> str:
        if self.suggestion:
            return f"{self.error} Suggestion: {self.suggestion}"
        return self.error


class RequestValidationResult(_Payload):
    """Aggregate result of validating a save_memory request.

    ``entities`` holds normalized copies of the request entities (entity
    types canonicalized); the caller's objects are left untouched.
    """

    valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    entities: list[SaveMemoryEntity] = Field(default_factory=list)


class EntityValidationReport(_Payload):
    """Validation errors grouped per entity, as returned by save_memory."""

    entity_index: NonNegativeInt
    entity_name: str
    entity_type: str
    errors: list[str] = Field(default_factory=list)
    observations: list[str] | None = None


# ---------------------------------------------------------------------------
# save_memory
# ---------------------------------------------------------------------------


class CreatedCounts(_Payload):
    entities: NonNegativeInt = 0
    relations: NonNegativeInt = 0
    entity_names: list[str] | None = None


class SaveMemoryResult(ServiceResult):
    """Result of a save_memory transaction."""

    created: CreatedCounts = Field(default_factory=CreatedCounts)
    warnings: list[str] = Field(default_factory=list)
    quality_score: float = Field(default=0.0, ge=0.0, le=1.0)
    validation_errors: list[EntityValidationReport] | None = None


# ---------------------------------------------------------------------------
# Observations
# ---------------------------------------------------------------------------


class AddedObservations(_Payload):
    """Observations actually appended to one entity (duplicates excluded)."""

    entity_name: str = Field(alias="entityName")
    added_observations: list[Observation] = Field(default_factory=list, alias="addedObservations")


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------


class PruneResult(_Payload):
    removed_entities: NonNegativeInt = Field(default=0, alias="removedEntities")
    removed_relations: NonNegativeInt = Field(default=0, alias="removedRelations")


class BulkUpdateResult(_Payload):
    updated: NonNegativeInt = 0
    not_found: list[str] = Field(default_factory=list, alias="notFound")


# ---------------------------------------------------------------------------
# Collaboration
# ---------------------------------------------------------------------------


class ConversationSummary(_Payload):
    """Per-thread activity summary."""

    agent_thread_id: str = Field(alias="agentThreadId")
    entity_count: NonNegativeInt = Field(default=0, alias="entityCount")
    relation_count: NonNegativeInt = Field(default=0, alias="relationCount")
    first_created: str = Field(default="", alias="firstCreated")
    last_updated: str = Field(default="", alias="lastUpdated")


# ---------------------------------------------------------------------------
# Queries and analysis
# ---------------------------------------------------------------------------


class EntitySummary(_Payload):
    name: str
    entity_type: str = Field(alias="entityType")


class DailyActivity(_Payload):
    timestamp: str
    entity_count: NonNegativeInt = Field(alias="entityCount")


class MemoryStats(_Payload):
    """Thread-scoped statistics (``thread_count`` is global)."""

    entity_count: NonNegativeInt = Field(default=0, alias="entityCount")
    relation_count: NonNegativeInt = Field(default=0, alias="relationCount")
    thread_count: NonNegativeInt = Field(default=0, alias="threadCount")
    entity_types: dict[str, int] = Field(default_factory=dict, alias="entityTypes")
    avg_confidence: float = Field(default=0.0, alias="avgConfidence")
    avg_importance: float = Field(default=0.0, alias="avgImportance")
    recent_activity: list[DailyActivity] = Field(default_factory=list, alias="recentActivity")


class RecentChanges(_Payload):
    entities: list[Entity] = Field(default_factory=list)
    relations: list[Relation] = Field(default_factory=list)


class RelationPath(_Payload):
    found: bool
    path: list[str] = Field(default_factory=list)
    relations: list[Relation] = Field(default_factory=list)


class ObservationConflict(_Payload):
    observation1: str
    observation2: str
    reason: str


class EntityConflicts(_Payload):
    entity_name: str = Field(alias="entityName")
    conflicts: list[ObservationConflict] = Field(default_factory=list)


class RecentChange(_Payload):
    entity_name: str = Field(alias="entityName")
    entity_type: str = Field(alias="entityType")
    last_modified: str = Field(alias="lastModified")
    change_type: ChangeType = Field(alias="changeType")


class ImportantEntity(_Payload):
    entity_name: str = Field(alias="entityName")
    entity_type: str = Field(alias="entityType")
    importance: float
    observation_count: NonNegativeInt = Field(alias="observationCount")


class ConnectedEntity(_Payload):
    entity_name: str = Field(alias="entityName")
    entity_type: str = Field(alias="entityType")
    relation_count: NonNegativeInt = Field(alias="relationCount")
    connected_to: list[str] = Field(default_factory=list, alias="connectedTo")


class OrphanedEntity(_Payload):
    entity_name: str = Field(alias="entityName")
    entity_type: str = Field(alias="entityType")
    reason: OrphanReason


class GraphAnalytics(_Payload):
    recent_changes: list[RecentChange] = Field(default_factory=list)
    top_important: list[ImportantEntity] = Field(default_factory=list)
    most_connected: list[ConnectedEntity] = Field(default_factory=list)
    orphaned_entities: list[OrphanedEntity] = Field(default_factory=list)
