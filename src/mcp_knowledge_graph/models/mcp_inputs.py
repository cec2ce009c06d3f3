"""MCP tool input models.

Each MCP tool validates its arguments by constructing the corresponding
model; range clamping and required-field logic live here as declarative
constraints so the tool handlers stay thin.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .requests import (
    BulkUpdateItem,
    NodeFilters,
    ObservationAddition,
    ObservationDeletion,
    ObservationUpdate,
    PruneOptions,
    RelationInput,
    RelationRef,
    SaveMemoryEntity,
)
from .validators import NonEmptyStr, PositiveInt, ThreadId, UnitFloat


class _ToolParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SaveMemoryParams(_ToolParams):
    """Validated input for the ``save_memory`` MCP tool."""

    thread_id: ThreadId = Field(alias="threadId")
    entities: list[SaveMemoryEntity] = Field(min_length=1)


class AddObservationsParams(_ToolParams):
    """Validated input for the ``add_observations`` MCP tool."""

    thread_id: ThreadId = Field(alias="threadId")
    observations: list[ObservationAddition] = Field(min_length=1)


class DeleteEntitiesParams(_ToolParams):
    """Validated input for the ``delete_entities`` MCP tool."""

    thread_id: ThreadId = Field(alias="threadId")
    entity_names: list[NonEmptyStr] = Field(min_length=1, alias="entityNames")


class DeleteObservationsParams(_ToolParams):
    """Validated input for the ``delete_observations`` MCP tool."""

    thread_id: ThreadId = Field(alias="threadId")
    deletions: list[ObservationDeletion] = Field(min_length=1)


class UpdateObservationParams(ObservationUpdate):
    """Validated input for the ``update_observation`` MCP tool."""


class CreateRelationsParams(_ToolParams):
    """Validated input for the ``create_relations`` MCP tool."""

    thread_id: ThreadId = Field(alias="threadId")
    relations: list[RelationInput] = Field(min_length=1)


class DeleteRelationsParams(_ToolParams):
    """Validated input for the ``delete_relations`` MCP tool.

    Without ``thread_id`` relations are matched across every thread.
    """

    thread_id: ThreadId | None = Field(default=None, alias="threadId")
    relations: list[RelationRef] = Field(min_length=1)


class SearchNodesParams(_ToolParams):
    query: str


class OpenNodesParams(_ToolParams):
    names: list[str]


class QueryNodesParams(NodeFilters):
    """Validated input for the ``query_nodes`` MCP tool."""


class ReadGraphParams(_ToolParams):
    """Validated input for the ``read_graph`` MCP tool."""

    thread_id: ThreadId = Field(alias="threadId")
    min_importance: UnitFloat = Field(default=0.1, alias="minImportance")


class PruneMemoryParams(PruneOptions):
    """Validated input for the ``prune_memory`` MCP tool."""


class BulkUpdateParams(_ToolParams):
    updates: list[BulkUpdateItem] = Field(min_length=1)


class FlagForReviewParams(_ToolParams):
    entity_name: NonEmptyStr = Field(alias="entityName")
    reason: NonEmptyStr
    reviewer: str | None = None


class ObservationHistoryParams(_ToolParams):
    entity_name: NonEmptyStr = Field(alias="entityName")
    observation_id: NonEmptyStr = Field(alias="observationId")


class ThreadParams(_ToolParams):
    """Input for tools scoped to a single thread (stats, analytics)."""

    thread_id: ThreadId = Field(alias="threadId")


class RecentChangesParams(ThreadParams):
    since: NonEmptyStr


class RelationPathParams(_ToolParams):
    from_: NonEmptyStr = Field(alias="from")
    to: NonEmptyStr
    max_depth: PositiveInt = Field(default=5, le=20, alias="maxDepth")


class ContextParams(ThreadParams):
    entity_names: list[NonEmptyStr] = Field(min_length=1, alias="entityNames")
    depth: PositiveInt = Field(default=1, le=5)


class ListEntitiesParams(_ToolParams):
    thread_id: ThreadId | None = Field(default=None, alias="threadId")
    entity_type: str | None = Field(default=None, alias="entityType")
    name_pattern: str | None = Field(default=None, alias="namePattern")
