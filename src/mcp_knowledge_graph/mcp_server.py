#!/usr/bin/env python3
"""FastMCP server for the knowledge graph memory service.

Native MCP protocol implementation using FastMCP with Pydantic-validated
tool inputs. Each tool handler constructs an input model for validation and
delegates to ``KnowledgeGraphManager``; operation errors come back as
``{"success": False, "error": ...}``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from fastmcp import Context, FastMCP
from pydantic import BaseModel, ValidationError

from . import __version__
from .config import settings
from .errors import KnowledgeGraphError
from .graph.relation_inverter import RelationInverter
from .models.graph import KnowledgeGraph
from .models.mcp_inputs import (
    AddObservationsParams,
    BulkUpdateParams,
    ContextParams,
    CreateRelationsParams,
    DeleteEntitiesParams,
    DeleteObservationsParams,
    DeleteRelationsParams,
    FlagForReviewParams,
    ListEntitiesParams,
    ObservationHistoryParams,
    OpenNodesParams,
    PruneMemoryParams,
    QueryNodesParams,
    ReadGraphParams,
    RecentChangesParams,
    RelationPathParams,
    SaveMemoryParams,
    SearchNodesParams,
    ThreadParams,
    UpdateObservationParams,
)
from .services.knowledge_graph import KnowledgeGraphManager
from .storage.base import GraphStorage
from .utils.timestamps import now_iso

# Configure logging
logging.basicConfig(level=settings.server.log_level)
logger = logging.getLogger(__name__)


@dataclass
class MCPServerContext:
    """Application context for the MCP server."""

    storage: GraphStorage
    manager: KnowledgeGraphManager


@asynccontextmanager
async def mcp_server_lifespan(server: FastMCP) -> AsyncIterator[MCPServerContext]:
    """Create storage and the graph manager before accepting requests."""
    from .storage.factory import create_storage_instance

    storage = await create_storage_instance()
    manager = KnowledgeGraphManager(storage, inverter=RelationInverter())
    await manager.initialize()
    logger.info(f"Knowledge graph ready (storage: {settings.storage.memory_dir})")
    yield MCPServerContext(storage=storage, manager=manager)


# Create FastMCP server instance
mcp = FastMCP(settings.server.server_name, lifespan=mcp_server_lifespan)


def _manager(ctx: Context) -> KnowledgeGraphManager:
    return ctx.request_context.lifespan_context.manager


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_none=True)


def _graph(graph: KnowledgeGraph) -> dict[str, Any]:
    return graph.to_dict()


def _error(e: Exception) -> dict[str, Any]:
    return {"success": False, "error": str(e)}


# =============================================================================
# SAVE TRANSACTION
# =============================================================================


@mcp.tool()
async def save_memory(threadId: str, entities: list[dict[str, Any]], ctx: Context) -> dict[str, Any]:
    """Save entities with their observations and relations in one transaction.

    Every entity needs at least one relation; each relation is stored together
    with its inverse. Nothing is saved if any entity fails validation.

    Args:
        threadId: Agent thread saving the memory
        entities: [{name, entityType, observations: [str], relations: [{targetEntity, relationType,
            importance?}], confidence?, importance?}]. Observations: 5-150 chars, at most 3 sentences.

    Returns:
        {success, created: {entities, relations, entity_names}, warnings, quality_score} or
        {success: false, validation_errors: [{entity_index, entity_name, entity_type, errors, observations?}]}
    """
    try:
        params = SaveMemoryParams(thread_id=threadId, entities=entities)
    except ValidationError as e:
        return _error(e)

    result = await _manager(ctx).save_memory(params.thread_id, params.entities)
    return _dump(result)


# =============================================================================
# ENTITY AND OBSERVATION OPERATIONS
# =============================================================================


@mcp.tool()
async def add_observations(threadId: str, observations: list[dict[str, Any]], ctx: Context) -> dict[str, Any]:
    """Add observations to existing entities of a thread.

    Content identical to a current observation is skipped. Entity confidence
    and importance are raised to the given values, never lowered.

    Args:
        threadId: Thread owning the entities
        observations: [{entityName, contents: [str], confidence, importance, timestamp?, agentThreadId?}]
    """
    try:
        params = AddObservationsParams(thread_id=threadId, observations=observations)
    except ValidationError as e:
        return _error(e)

    try:
        results = await _manager(ctx).add_observations(params.thread_id, params.observations)
    except KnowledgeGraphError as e:
        return _error(e)
    return {"success": True, "results": [_dump(result) for result in results]}


@mcp.tool()
async def delete_entities(threadId: str, entityNames: list[str], ctx: Context) -> dict[str, Any]:
    """Delete a thread's entities by name together with every relation touching them."""
    try:
        params = DeleteEntitiesParams(thread_id=threadId, entity_names=entityNames)
    except ValidationError as e:
        return _error(e)

    await _manager(ctx).delete_entities(params.thread_id, params.entity_names)
    return {"success": True, "message": "Entities deleted successfully"}


@mcp.tool()
async def delete_observations(threadId: str, deletions: list[dict[str, Any]], ctx: Context) -> dict[str, Any]:
    """Delete observations by content or id.

    Args:
        threadId: Thread owning the entities
        deletions: [{entityName, observations: [content or observation id]}]
    """
    try:
        params = DeleteObservationsParams(thread_id=threadId, deletions=deletions)
    except ValidationError as e:
        return _error(e)

    await _manager(ctx).delete_observations(params.thread_id, params.deletions)
    return {"success": True, "message": "Observations deleted successfully"}


@mcp.tool()
async def update_observation(
    entityName: str,
    observationId: str,
    newContent: str,
    agentThreadId: str,
    ctx: Context,
    timestamp: str | None = None,
    confidence: float | None = None,
    importance: float | None = None,
) -> dict[str, Any]:
    """Update an observation by superseding it with a new version.

    Only the latest version of a chain can be updated. Confidence and
    importance are inherited from the previous version when omitted.
    """
    try:
        params = UpdateObservationParams(
            entity_name=entityName,
            observation_id=observationId,
            new_content=newContent,
            agent_thread_id=agentThreadId,
            timestamp=timestamp,
            confidence=confidence,
            importance=importance,
        )
    except ValidationError as e:
        return _error(e)

    try:
        observation = await _manager(ctx).update_observation(params)
    except KnowledgeGraphError as e:
        return _error(e)
    return {"success": True, "updatedObservation": _dump(observation)}


@mcp.tool()
async def get_observation_history(entityName: str, observationId: str, ctx: Context) -> dict[str, Any]:
    """Return every version of an observation, oldest first."""
    try:
        params = ObservationHistoryParams(entity_name=entityName, observation_id=observationId)
    except ValidationError as e:
        return _error(e)

    try:
        history = await _manager(ctx).get_observation_history(params.entity_name, params.observation_id)
    except KnowledgeGraphError as e:
        return _error(e)
    return {"success": True, "history": [_dump(obs) for obs in history]}


# =============================================================================
# RELATION OPERATIONS
# =============================================================================


@mcp.tool()
async def create_relations(threadId: str, relations: list[dict[str, Any]], ctx: Context) -> dict[str, Any]:
    """Create relations between existing entities (no inverse is added).

    Args:
        threadId: Thread recorded on the new relations
        relations: [{from, to, relationType, confidence?, importance?, timestamp?, agentThreadId?}]
    """
    try:
        params = CreateRelationsParams(thread_id=threadId, relations=relations)
    except ValidationError as e:
        return _error(e)

    timestamp = now_iso()
    records = [relation.to_relation(params.thread_id, timestamp) for relation in params.relations]
    try:
        created = await _manager(ctx).create_relations(params.thread_id, records)
    except KnowledgeGraphError as e:
        return _error(e)
    return {"success": True, "relations": [_dump(relation) for relation in created]}


@mcp.tool()
async def delete_relations(
    relations: list[dict[str, Any]], ctx: Context, threadId: str | None = None
) -> dict[str, Any]:
    """Delete relations by (from, to, relationType).

    With ``threadId`` only that thread's relations are deleted; without it
    matching relations are deleted from every thread.
    """
    try:
        params = DeleteRelationsParams(thread_id=threadId, relations=relations)
    except ValidationError as e:
        return _error(e)

    manager = _manager(ctx)
    if params.thread_id is None:
        removed = await manager.delete_relations_global(params.relations)
    else:
        removed = await manager.delete_relations_in_thread(params.thread_id, params.relations)
    return {"success": True, "removed": removed}


# =============================================================================
# QUERIES
# =============================================================================


@mcp.tool()
async def read_graph(threadId: str, ctx: Context, minImportance: float = 0.1) -> dict[str, Any]:
    """Read a thread's graph; items below importance 0.1 are marked ARCHIVED."""
    try:
        params = ReadGraphParams(thread_id=threadId, min_importance=minImportance)
    except ValidationError as e:
        return _error(e)
    return _graph(await _manager(ctx).read_graph(params.thread_id, params.min_importance))


@mcp.tool()
async def search_nodes(query: str, ctx: Context) -> dict[str, Any]:
    """Find entities whose name, type or observations contain the query (case-insensitive)."""
    try:
        params = SearchNodesParams(query=query)
    except ValidationError as e:
        return _error(e)
    return _graph(await _manager(ctx).search_nodes(params.query))


@mcp.tool()
async def open_nodes(names: list[str], ctx: Context) -> dict[str, Any]:
    """Return the named entities and the relations among them."""
    try:
        params = OpenNodesParams(names=names)
    except ValidationError as e:
        return _error(e)
    return _graph(await _manager(ctx).open_nodes(params.names))


@mcp.tool()
async def query_nodes(
    ctx: Context,
    timestampStart: str | None = None,
    timestampEnd: str | None = None,
    confidenceMin: float | None = None,
    confidenceMax: float | None = None,
    importanceMin: float | None = None,
    importanceMax: float | None = None,
) -> dict[str, Any]:
    """Filter entities and relations by inclusive timestamp, confidence and importance ranges."""
    try:
        params = QueryNodesParams(
            timestamp_start=timestampStart,
            timestamp_end=timestampEnd,
            confidence_min=confidenceMin,
            confidence_max=confidenceMax,
            importance_min=importanceMin,
            importance_max=importanceMax,
        )
    except ValidationError as e:
        return _error(e)
    return _graph(await _manager(ctx).query_nodes(params))


@mcp.tool()
async def list_entities(
    ctx: Context,
    threadId: str | None = None,
    entityType: str | None = None,
    namePattern: str | None = None,
) -> dict[str, Any]:
    """List entity names and types, optionally by thread, exact type or name substring."""
    try:
        params = ListEntitiesParams(thread_id=threadId, entity_type=entityType, name_pattern=namePattern)
    except ValidationError as e:
        return _error(e)
    entities = await _manager(ctx).list_entities(params.thread_id, params.entity_type, params.name_pattern)
    return {"entities": [_dump(entity) for entity in entities]}


# =============================================================================
# MAINTENANCE AND COLLABORATION
# =============================================================================


@mcp.tool()
async def prune_memory(
    ctx: Context,
    olderThan: str | None = None,
    importanceLessThan: float | None = None,
    keepMinEntities: int | None = None,
) -> dict[str, Any]:
    """Remove old or unimportant entities (and their relations) across all threads.

    Args:
        olderThan: ISO timestamp; entities last modified before it are removed
        importanceLessThan: Entities below this importance are removed
        keepMinEntities: Keep at least this many of the surviving entities
    """
    try:
        params = PruneMemoryParams(
            older_than=olderThan,
            importance_less_than=importanceLessThan,
            keep_min_entities=keepMinEntities,
        )
    except ValidationError as e:
        return _error(e)

    result = await _manager(ctx).prune_memory(params)
    return {"success": True, **_dump(result)}


@mcp.tool()
async def bulk_update(updates: list[dict[str, Any]], ctx: Context) -> dict[str, Any]:
    """Update confidence, importance or observations of many entities at once.

    Args:
        updates: [{entityName, confidence?, importance?, addObservations?: [str]}]
    """
    try:
        params = BulkUpdateParams(updates=updates)
    except ValidationError as e:
        return _error(e)

    result = await _manager(ctx).bulk_update(params.updates)
    return {"success": True, **_dump(result)}


@mcp.tool()
async def flag_for_review(entityName: str, reason: str, ctx: Context, reviewer: str | None = None) -> dict[str, Any]:
    """Flag an entity for human review."""
    try:
        params = FlagForReviewParams(entity_name=entityName, reason=reason, reviewer=reviewer)
    except ValidationError as e:
        return _error(e)

    try:
        await _manager(ctx).flag_for_review(params.entity_name, params.reason, params.reviewer)
    except KnowledgeGraphError as e:
        return _error(e)
    return {"success": True, "message": f"Entity '{params.entity_name}' flagged for review"}


@mcp.tool()
async def get_flagged_entities(ctx: Context) -> dict[str, Any]:
    """List all entities carrying a review flag."""
    entities = await _manager(ctx).get_flagged_entities()
    return {"entities": [entity.to_dict() for entity in entities]}


@mcp.tool()
async def list_conversations(ctx: Context) -> dict[str, Any]:
    """Summarize every agent thread: counts and first/last activity."""
    conversations = await _manager(ctx).list_conversations()
    return {"conversations": [_dump(summary) for summary in conversations]}


# =============================================================================
# ANALYSIS
# =============================================================================


@mcp.tool()
async def get_memory_stats(threadId: str, ctx: Context) -> dict[str, Any]:
    """Entity/relation counts, type breakdown, averages and 7-day activity for a thread."""
    try:
        params = ThreadParams(thread_id=threadId)
    except ValidationError as e:
        return _error(e)
    return _dump(await _manager(ctx).get_memory_stats(params.thread_id))


@mcp.tool()
async def get_recent_changes(threadId: str, since: str, ctx: Context) -> dict[str, Any]:
    """Entities and relations of a thread changed at or after ``since`` (ISO timestamp)."""
    try:
        params = RecentChangesParams(thread_id=threadId, since=since)
    except ValidationError as e:
        return _error(e)
    return _dump(await _manager(ctx).get_recent_changes(params.thread_id, params.since))


@mcp.tool()
async def find_relation_path(fromEntity: str, toEntity: str, ctx: Context, maxDepth: int = 5) -> dict[str, Any]:
    """Shortest path between two entities, following relations in either direction."""
    try:
        params = RelationPathParams(from_=fromEntity, to=toEntity, max_depth=maxDepth)
    except ValidationError as e:
        return _error(e)
    return _dump(await _manager(ctx).find_relation_path(params.from_, params.to, params.max_depth))


@mcp.tool()
async def detect_conflicts(ctx: Context) -> dict[str, Any]:
    """Find observation pairs that may contradict each other."""
    conflicts = await _manager(ctx).detect_conflicts()
    return {"conflicts": [_dump(entry) for entry in conflicts]}


@mcp.tool()
async def get_context(threadId: str, entityNames: list[str], ctx: Context, depth: int = 1) -> dict[str, Any]:
    """Entities related to the given ones (up to ``depth`` hops) within a thread."""
    try:
        params = ContextParams(thread_id=threadId, entity_names=entityNames, depth=depth)
    except ValidationError as e:
        return _error(e)
    return _graph(await _manager(ctx).get_context(params.thread_id, params.entity_names, params.depth))


@mcp.tool()
async def get_analytics(threadId: str, ctx: Context) -> dict[str, Any]:
    """Recent changes, most important, most connected and orphaned entities of a thread."""
    try:
        params = ThreadParams(thread_id=threadId)
    except ValidationError as e:
        return _error(e)
    return _dump(await _manager(ctx).get_analytics(params.thread_id))


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


def main():
    """Main entry point for the knowledge graph MCP server."""
    server = settings.server
    logger.info(f"Starting knowledge graph MCP server v{__version__} ({server.transport})")

    if server.transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(transport="http", host=server.host, port=server.port)


if __name__ == "__main__":
    main()
