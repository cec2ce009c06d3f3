"""
Observation version chains.

An observation update never rewrites content in place. It appends a new
observation and links the pair:

    old.superseded_by = new.id
    new.supersedes    = old.id
    new.version       = old.version + 1

Walking ``supersedes`` backward and ``superseded_by`` forward reconstructs
the lineage. Stored data is not trusted to be acyclic, so every walk carries
a visited-id guard.
"""

import logging

from ..errors import EntityNotFoundError, ObservationNotFoundError, ObservationSupersededError
from ..models.graph import Entity, KnowledgeGraph, Observation, new_observation_id

logger = logging.getLogger(__name__)


def find_observation(entity: Entity, observation_id: str) -> Observation:
    """Return the observation with ``observation_id`` or raise ObservationNotFoundError."""
    observation = entity.find_observation(observation_id)
    if observation is None:
        raise ObservationNotFoundError(observation_id, entity.name)
    return observation


def build_next_version(
    previous: Observation,
    entity: Entity,
    *,
    content: str,
    agent_thread_id: str,
    timestamp: str,
    confidence: float | None = None,
    importance: float | None = None,
) -> Observation:
    """Create the successor of ``previous`` (not yet linked or attached).

    Confidence and importance resolve as: explicit value, then the previous
    version's value, then the entity's value.
    """
    return Observation(
        id=new_observation_id(),
        content=content,
        timestamp=timestamp,
        version=previous.version + 1,
        supersedes=previous.id,
        agent_thread_id=agent_thread_id,
        confidence=_first_set(confidence, previous.confidence, entity.confidence),
        importance=_first_set(importance, previous.importance, entity.importance),
    )


def supersede_observation(
    entity: Entity,
    observation_id: str,
    *,
    content: str,
    agent_thread_id: str,
    timestamp: str,
    confidence: float | None = None,
    importance: float | None = None,
) -> Observation:
    """Replace the head observation ``observation_id`` with a new version.

    Raises:
        ObservationNotFoundError: no such observation on the entity
        ObservationSupersededError: the observation is not the chain head
    """
    previous = find_observation(entity, observation_id)
    if previous.superseded_by:
        raise ObservationSupersededError(previous.id, previous.superseded_by)

    successor = build_next_version(
        previous,
        entity,
        content=content,
        agent_thread_id=agent_thread_id,
        timestamp=timestamp,
        confidence=confidence,
        importance=importance,
    )
    previous.superseded_by = successor.id
    entity.observations.append(successor)
    entity.timestamp = timestamp
    return successor


def get_observation_history(entity: Entity, observation_id: str) -> list[Observation]:
    """Full lineage of ``observation_id``, oldest first.

    Traversal stops at a missing link or at any id already visited, so a
    corrupted (cyclic) chain still terminates.
    """
    start = find_observation(entity, observation_id)
    by_id = {obs.id: obs for obs in entity.observations}
    visited: set[str] = {start.id}

    predecessors: list[Observation] = []
    current = start
    while current.supersedes:
        previous = by_id.get(current.supersedes)
        if previous is None:
            break
        if previous.id in visited:
            logger.warning(f"Cycle detected in version chain of '{entity.name}' at observation {previous.id}")
            break
        visited.add(previous.id)
        predecessors.append(previous)
        current = previous

    successors: list[Observation] = []
    current = start
    while current.superseded_by:
        following = by_id.get(current.superseded_by)
        if following is None:
            break
        if following.id in visited:
            logger.warning(f"Cycle detected in version chain of '{entity.name}' at observation {following.id}")
            break
        visited.add(following.id)
        successors.append(following)
        current = following

    return [*reversed(predecessors), start, *successors]


def get_entity_observation_history(graph: KnowledgeGraph, entity_name: str, observation_id: str) -> list[Observation]:
    """Look up ``entity_name`` globally and return the observation's lineage."""
    entity = graph.get_entity(entity_name)
    if entity is None:
        raise EntityNotFoundError(entity_name)
    return get_observation_history(entity, observation_id)


def _first_set(*values: float | None) -> float | None:
    return next((value for value in values if value is not None), None)
