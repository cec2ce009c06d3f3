"""Retention pruning and bulk entity updates."""

import logging
from collections.abc import Sequence

from ..models.graph import KnowledgeGraph, Observation
from ..models.requests import BulkUpdateItem, PruneOptions
from ..models.responses import BulkUpdateResult, PruneResult
from ..utils.timestamps import parse_iso

logger = logging.getLogger(__name__)


def prune_memory(graph: KnowledgeGraph, options: PruneOptions) -> PruneResult:
    """Drop entities that are too old or too unimportant, in place.

    An entity survives when ``timestamp >= older_than`` and
    ``importance >= importance_less_than`` (each test only when given). When
    ``keep_min_entities`` is set and fewer survive, entities that passed the
    age cut are ranked by importance then recency and kept up to that floor;
    entities older than ``older_than`` are never brought back. Relations
    survive only when both endpoints do.
    """
    candidates = list(graph.entities)

    if options.older_than is not None:
        cutoff = parse_iso(options.older_than)
        if cutoff is not None:
            kept = []
            for entity in candidates:
                stamp = parse_iso(entity.timestamp)
                # Unparseable timestamps count as older than any cutoff
                if stamp is not None and stamp >= cutoff:
                    kept.append(entity)
            candidates = kept

    survivors = candidates
    if options.importance_less_than is not None:
        survivors = [e for e in candidates if e.importance >= options.importance_less_than]

    if options.keep_min_entities and len(survivors) < options.keep_min_entities:
        ranked = sorted(candidates, key=lambda e: e.timestamp, reverse=True)
        ranked.sort(key=lambda e: e.importance, reverse=True)
        floor = {e.name for e in ranked[: options.keep_min_entities]}
        survivors = [e for e in candidates if e.name in floor]

    kept_names = {entity.name for entity in survivors}
    relations = [r for r in graph.relations if r.from_ in kept_names and r.to in kept_names]

    result = PruneResult(
        removed_entities=len(graph.entities) - len(survivors),
        removed_relations=len(graph.relations) - len(relations),
    )
    graph.entities = survivors
    graph.relations = relations
    logger.info(f"Pruned {result.removed_entities} entities and {result.removed_relations} relations")
    return result


def bulk_update(graph: KnowledgeGraph, updates: Sequence[BulkUpdateItem], timestamp: str) -> BulkUpdateResult:
    """Apply confidence/importance changes and new observations to entities by name.

    Entities are looked up across all threads; unknown names are reported in
    ``not_found`` rather than raised. New observations belong to the entity's
    own thread, and content already present on the entity is skipped.
    """
    result = BulkUpdateResult()
    for update in updates:
        entity = graph.get_entity(update.entity_name)
        if entity is None:
            result.not_found.append(update.entity_name)
            continue

        if update.confidence is not None:
            entity.confidence = update.confidence
        if update.importance is not None:
            entity.importance = update.importance

        if update.add_observations:
            existing = {obs.content for obs in entity.observations}
            for content in update.add_observations:
                if content in existing:
                    continue
                existing.add(content)
                entity.observations.append(
                    Observation(
                        content=content,
                        timestamp=timestamp,
                        agent_thread_id=entity.agent_thread_id,
                        confidence=entity.confidence,
                        importance=entity.importance,
                    )
                )

        entity.timestamp = timestamp
        result.updated += 1
    return result
