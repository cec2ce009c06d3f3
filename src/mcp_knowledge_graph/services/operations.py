"""
Graph mutations.

Each function mutates a loaded ``KnowledgeGraph`` in place and reports what
changed; persisting is the caller's job. Not-found conditions raise before
anything is modified for that item, so a caller that saves only on success
never persists a partial batch.
"""

import logging
from collections.abc import Iterable, Sequence

from ..errors import EntityNotFoundError
from ..graph.versioning import supersede_observation
from ..models.graph import Entity, KnowledgeGraph, Observation, Relation
from ..models.requests import ObservationAddition, ObservationDeletion, ObservationUpdate, RelationRef
from ..models.responses import AddedObservations

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


def create_entities(graph: KnowledgeGraph, entities: Iterable[Entity]) -> list[Entity]:
    """Append entities whose names are not yet taken (in any thread).

    Returns only the entities actually added. Duplicates, including repeats
    within ``entities``, are dropped silently.
    """
    taken = graph.entity_names()
    created: list[Entity] = []
    skipped = 0
    for entity in entities:
        if entity.name in taken:
            skipped += 1
            continue
        taken.add(entity.name)
        graph.entities.append(entity)
        created.append(entity)

    if skipped:
        logger.debug(f"Skipped {skipped} entities with existing names")
    return created


def delete_entities(graph: KnowledgeGraph, thread_id: str, names: Iterable[str]) -> tuple[int, int]:
    """Remove the thread's entities named in ``names`` and every relation touching them.

    Entities of other threads are left alone. Relations of any thread whose
    endpoint no longer exists afterwards are removed too, so no relation ever
    dangles.

    Returns:
        Tuple of (entities removed, relations removed)
    """
    targets = set(names)
    before_entities = len(graph.entities)
    graph.entities = [e for e in graph.entities if not (e.name in targets and e.agent_thread_id == thread_id)]

    remaining = graph.entity_names()
    before_relations = len(graph.relations)
    graph.relations = [
        r
        for r in graph.relations
        if not (r.agent_thread_id == thread_id and r.touches(targets))
        and r.from_ in remaining
        and r.to in remaining
    ]
    return before_entities - len(graph.entities), before_relations - len(graph.relations)


# ---------------------------------------------------------------------------
# Observations
# ---------------------------------------------------------------------------


def _thread_entity(graph: KnowledgeGraph, name: str, thread_id: str) -> Entity:
    entity = graph.get_entity(name, thread_id)
    if entity is None:
        raise EntityNotFoundError(name, thread_id)
    return entity


def add_observations(
    graph: KnowledgeGraph,
    thread_id: str,
    additions: Sequence[ObservationAddition],
    timestamp: str,
) -> list[AddedObservations]:
    """Append new observations to entities of ``thread_id``.

    Content equal to a current (unsuperseded) observation is skipped. The
    entity's timestamp is refreshed and its confidence and importance are
    raised to the incoming values, never lowered.

    Raises:
        EntityNotFoundError: an addition targets an entity outside the thread
    """
    # Resolve every target first so a miss leaves the graph untouched
    targets = [_thread_entity(graph, addition.entity_name, thread_id) for addition in additions]

    results: list[AddedObservations] = []
    for entity, addition in zip(targets, additions):
        stamp = addition.timestamp or timestamp
        current = entity.current_contents()
        added: list[Observation] = []
        for content in addition.contents:
            if content in current:
                continue
            observation = Observation(
                content=content,
                timestamp=stamp,
                agent_thread_id=addition.agent_thread_id or thread_id,
                confidence=addition.confidence,
                importance=addition.importance,
            )
            entity.observations.append(observation)
            current.add(content)
            added.append(observation)

        entity.timestamp = stamp
        entity.confidence = max(entity.confidence, addition.confidence)
        entity.importance = max(entity.importance, addition.importance)
        results.append(AddedObservations(entity_name=entity.name, added_observations=added))
    return results


def delete_observations(graph: KnowledgeGraph, thread_id: str, deletions: Iterable[ObservationDeletion]) -> int:
    """Remove observations matched by content or by id; unknown entities are ignored.

    Returns:
        Number of observations removed
    """
    removed = 0
    for deletion in deletions:
        entity = graph.get_entity(deletion.entity_name, thread_id)
        if entity is None:
            continue
        doomed = set(deletion.observations)
        kept = [obs for obs in entity.observations if obs.content not in doomed and obs.id not in doomed]
        removed += len(entity.observations) - len(kept)
        entity.observations = kept
    return removed


def update_observation(graph: KnowledgeGraph, update: ObservationUpdate, timestamp: str) -> Observation:
    """Supersede the head observation ``update.observation_id`` with new content.

    The entity is looked up across all threads.

    Raises:
        EntityNotFoundError: no such entity
        ObservationNotFoundError: no such observation on the entity
        ObservationSupersededError: the observation is not the chain head
    """
    entity = graph.get_entity(update.entity_name)
    if entity is None:
        raise EntityNotFoundError(update.entity_name)
    return supersede_observation(
        entity,
        update.observation_id,
        content=update.new_content,
        agent_thread_id=update.agent_thread_id,
        timestamp=update.timestamp or timestamp,
        confidence=update.confidence,
        importance=update.importance,
    )


# ---------------------------------------------------------------------------
# Relations
# ---------------------------------------------------------------------------


def create_relations(graph: KnowledgeGraph, relations: Iterable[Relation]) -> list[Relation]:
    """Append relations whose endpoints exist and whose key is new.

    Relations with a missing endpoint are skipped with a warning.
    """
    names = graph.entity_names()
    keys = graph.relation_keys()
    created: list[Relation] = []
    for relation in relations:
        if relation.from_ not in names or relation.to not in names:
            logger.warning(
                f"Skipping relation {relation.from_} -> {relation.to}: one or both entities do not exist"
            )
            continue
        if relation.key in keys:
            continue
        keys.add(relation.key)
        graph.relations.append(relation)
        created.append(relation)
    return created


def delete_relations_global(graph: KnowledgeGraph, refs: Sequence[RelationRef]) -> int:
    """Remove relations matching any ref by (from, to, relationType), in every thread."""
    doomed = {(ref.from_, ref.to, ref.relation_type) for ref in refs}
    before = len(graph.relations)
    graph.relations = [r for r in graph.relations if r.key not in doomed]
    return before - len(graph.relations)


def delete_relations_in_thread(graph: KnowledgeGraph, thread_id: str, refs: Sequence[RelationRef]) -> int:
    """Remove relations matching any ref that also belong to ``thread_id``."""
    doomed = {(ref.from_, ref.to, ref.relation_type) for ref in refs}
    before = len(graph.relations)
    graph.relations = [r for r in graph.relations if not (r.key in doomed and r.agent_thread_id == thread_id)]
    return before - len(graph.relations)
