"""
Knowledge Graph Manager - single entry point for graph operations.

Every write runs a load -> mutate -> save cycle under one manager-wide
writer lock. ``save_graph`` rewrites every shard of the graph it is given,
so the lock cannot be narrowed to a single thread id without losing
concurrent updates to other threads. Reads load a fresh snapshot and take no
lock.

A write whose body raises (for example an unknown entity half-way through a
batch) saves nothing.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager
from datetime import datetime

from ..config import Settings, settings
from ..graph.relation_inverter import RelationInverter
from ..graph.versioning import get_entity_observation_history
from ..models.graph import Entity, KnowledgeGraph, Observation, Relation
from ..models.requests import (
    BulkUpdateItem,
    NodeFilters,
    ObservationAddition,
    ObservationDeletion,
    ObservationUpdate,
    PruneOptions,
    RelationRef,
    SaveMemoryEntity,
)
from ..models.responses import (
    AddedObservations,
    BulkUpdateResult,
    ConversationSummary,
    CreatedCounts,
    EntityConflicts,
    EntitySummary,
    GraphAnalytics,
    MemoryStats,
    PruneResult,
    RecentChanges,
    RelationPath,
    SaveMemoryResult,
)
from ..storage.base import GraphStorage
from ..utils.timestamps import now_iso
from ..validation import calculate_quality_score, validate_save_memory_request
from . import analysis, collaboration, maintenance, operations, queries
from .save_memory import build_entities, build_relations, transaction_failure, validation_failure

logger = logging.getLogger(__name__)


class KnowledgeGraphManager:
    """
    Orchestrates entity, observation and relation operations over a storage backend.

    Entity names and relation keys are unique across the whole graph, not
    per thread: any thread may reference or extend another thread's
    entities. Deletes and reads are thread-scoped where noted.
    """

    def __init__(
        self,
        storage: GraphStorage,
        inverter: RelationInverter | None = None,
        config: Settings | None = None,
    ):
        self.storage = storage
        self.inverter = inverter or RelationInverter()
        self.config = config or settings
        self._write_lock = asyncio.Lock()
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize the storage backend (once)."""
        if self._initialized:
            return
        await self.storage.initialize()
        self._initialized = True

    async def load_graph(self) -> KnowledgeGraph:
        await self.initialize()
        return await self.storage.load_graph()

    @asynccontextmanager
    async def _mutation(self) -> AsyncIterator[KnowledgeGraph]:
        async with self._write_lock:
            graph = await self.load_graph()
            yield graph
            await self.storage.save_graph(graph)

    # =========================================================================
    # Entities
    # =========================================================================

    async def create_entities(self, thread_id: str, entities: Sequence[Entity]) -> list[Entity]:
        """Add entities whose names are new; returns only those actually created."""
        async with self._mutation() as graph:
            created = operations.create_entities(graph, entities)
        logger.debug(f"Thread {thread_id}: created {len(created)} of {len(entities)} entities")
        return created

    async def delete_entities(self, thread_id: str, entity_names: Iterable[str]) -> None:
        """Delete the thread's entities by name, cascading to their relations."""
        async with self._mutation() as graph:
            removed_entities, removed_relations = operations.delete_entities(graph, thread_id, entity_names)
        logger.info(
            f"Thread {thread_id}: deleted {removed_entities} entities and {removed_relations} relations"
        )

    # =========================================================================
    # Observations
    # =========================================================================

    async def add_observations(
        self, thread_id: str, additions: Sequence[ObservationAddition]
    ) -> list[AddedObservations]:
        """
        Append observations to entities of ``thread_id``.

        Raises:
            EntityNotFoundError: any target entity is missing from the thread
        """
        async with self._mutation() as graph:
            return operations.add_observations(graph, thread_id, additions, now_iso())

    async def delete_observations(self, thread_id: str, deletions: Sequence[ObservationDeletion]) -> None:
        async with self._mutation() as graph:
            removed = operations.delete_observations(graph, thread_id, deletions)
        logger.debug(f"Thread {thread_id}: deleted {removed} observations")

    async def update_observation(self, update: ObservationUpdate) -> Observation:
        """
        Replace the head of an observation's version chain.

        Raises:
            EntityNotFoundError, ObservationNotFoundError, ObservationSupersededError
        """
        async with self._mutation() as graph:
            return operations.update_observation(graph, update, now_iso())

    async def get_observation_history(self, entity_name: str, observation_id: str) -> list[Observation]:
        """Full version lineage of an observation, oldest first."""
        graph = await self.load_graph()
        return get_entity_observation_history(graph, entity_name, observation_id)

    # =========================================================================
    # Relations
    # =========================================================================

    async def create_relations(self, thread_id: str, relations: Sequence[Relation]) -> list[Relation]:
        """Add relations between existing entities; duplicates by key are skipped."""
        async with self._mutation() as graph:
            created = operations.create_relations(graph, relations)
        logger.debug(f"Thread {thread_id}: created {len(created)} of {len(relations)} relations")
        return created

    async def delete_relations_global(self, relations: Sequence[RelationRef]) -> int:
        """Delete matching relations in every thread."""
        async with self._mutation() as graph:
            return operations.delete_relations_global(graph, relations)

    async def delete_relations_in_thread(self, thread_id: str, relations: Sequence[RelationRef]) -> int:
        """Delete matching relations owned by ``thread_id`` only."""
        async with self._mutation() as graph:
            return operations.delete_relations_in_thread(graph, thread_id, relations)

    # =========================================================================
    # save_memory
    # =========================================================================

    async def save_memory(self, thread_id: str, entities: Sequence[SaveMemoryEntity]) -> SaveMemoryResult:
        """
        Validate and atomically save entities with their relations.

        Every declared relation is stored with its inverse. Entities and
        relations are staged on one snapshot and persisted with a single
        save, so either everything new is stored or nothing is.
        """
        cfg = self.config.validation
        async with self._write_lock:
            graph = await self.load_graph()
            validation = validate_save_memory_request(entities, graph.entity_names(), cfg)
            if not validation.valid:
                logger.info(f"save_memory rejected for thread {thread_id}: {len(validation.errors)} validation errors")
                return validation_failure(validation.errors)

            normalized = validation.entities
            timestamp = now_iso()
            warnings = list(validation.warnings)

            created_entities = operations.create_entities(graph, build_entities(thread_id, normalized, timestamp, cfg))
            created_names = {entity.name for entity in created_entities}
            warnings.extend(
                f"Entity '{entity.name}' already exists; its new observations were not saved. "
                "Use add_observations to extend it."
                for entity in normalized
                if entity.name not in created_names
            )
            created_relations = operations.create_relations(
                graph, build_relations(thread_id, normalized, self.inverter, timestamp, cfg)
            )

            try:
                await self.storage.save_graph(graph)
            except OSError as e:
                logger.error(f"save_memory transaction failed for thread {thread_id}: {e}")
                return transaction_failure(e)

        logger.info(
            f"save_memory stored {len(created_entities)} entities and {len(created_relations)} relations "
            f"for thread {thread_id}"
        )
        return SaveMemoryResult(
            created=CreatedCounts(
                entities=len(created_entities),
                relations=len(created_relations),
                entity_names=[entity.name for entity in created_entities],
            ),
            warnings=warnings,
            quality_score=calculate_quality_score(normalized, cfg),
        )

    # =========================================================================
    # Queries
    # =========================================================================

    async def read_graph(self, thread_id: str, min_importance: float | None = None) -> KnowledgeGraph:
        """The thread's graph above ``min_importance``, low-importance items marked ARCHIVED."""
        graph_cfg = self.config.graph
        floor = graph_cfg.default_min_importance if min_importance is None else min_importance
        return queries.read_graph(await self.load_graph(), thread_id, floor, graph_cfg.archive_threshold)

    async def search_nodes(self, query: str) -> KnowledgeGraph:
        return queries.search_nodes(await self.load_graph(), query)

    async def open_nodes(self, names: Iterable[str]) -> KnowledgeGraph:
        return queries.open_nodes(await self.load_graph(), names)

    async def query_nodes(self, filters: NodeFilters | None = None) -> KnowledgeGraph:
        return queries.query_nodes(await self.load_graph(), filters)

    async def get_all_entity_names(self) -> set[str]:
        return queries.get_all_entity_names(await self.load_graph())

    async def list_entities(
        self,
        thread_id: str | None = None,
        entity_type: str | None = None,
        name_pattern: str | None = None,
    ) -> list[EntitySummary]:
        return queries.list_entities(await self.load_graph(), thread_id, entity_type, name_pattern)

    # =========================================================================
    # Maintenance
    # =========================================================================

    async def prune_memory(self, options: PruneOptions) -> PruneResult:
        async with self._mutation() as graph:
            return maintenance.prune_memory(graph, options)

    async def bulk_update(self, updates: Sequence[BulkUpdateItem]) -> BulkUpdateResult:
        async with self._mutation() as graph:
            return maintenance.bulk_update(graph, updates, now_iso())

    # =========================================================================
    # Collaboration
    # =========================================================================

    async def flag_for_review(self, entity_name: str, reason: str, reviewer: str | None = None) -> None:
        """
        Mark an entity for review with a flag observation.

        Raises:
            EntityNotFoundError: no such entity
        """
        async with self._write_lock:
            graph = await self.load_graph()
            if collaboration.flag_for_review(graph, entity_name, reason, reviewer, now_iso()):
                await self.storage.save_graph(graph)

    async def get_flagged_entities(self) -> list[Entity]:
        return collaboration.get_flagged_entities(await self.load_graph())

    async def list_conversations(self) -> list[ConversationSummary]:
        return collaboration.list_conversations(await self.load_graph())

    # =========================================================================
    # Analysis
    # =========================================================================

    async def get_memory_stats(self, thread_id: str, now: datetime | None = None) -> MemoryStats:
        return analysis.get_memory_stats(
            await self.load_graph(), thread_id, activity_days=self.config.graph.recent_activity_days, now=now
        )

    async def get_recent_changes(self, thread_id: str, since: str) -> RecentChanges:
        return analysis.get_recent_changes(await self.load_graph(), thread_id, since)

    async def find_relation_path(self, source: str, target: str, max_depth: int | None = None) -> RelationPath:
        depth = self.config.graph.default_path_depth if max_depth is None else max_depth
        return analysis.find_relation_path(await self.load_graph(), source, target, depth)

    async def detect_conflicts(self) -> list[EntityConflicts]:
        return analysis.detect_conflicts(await self.load_graph())

    async def get_context(self, thread_id: str, entity_names: list[str], depth: int = 1) -> KnowledgeGraph:
        return analysis.get_context(await self.load_graph(), thread_id, entity_names, depth)

    async def get_analytics(self, thread_id: str) -> GraphAnalytics:
        return analysis.get_analytics(await self.load_graph(), thread_id, self.config.graph.analytics_limit)
