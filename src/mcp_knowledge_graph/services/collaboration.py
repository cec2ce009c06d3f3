"""Review flags and per-thread conversation summaries."""

from ..errors import EntityNotFoundError
from ..models.graph import Entity, KnowledgeGraph, Observation
from ..models.responses import ConversationSummary

FLAG_MARKER = "[FLAGGED FOR REVIEW:"


def flag_content(reason: str, reviewer: str | None = None) -> str:
    suffix = f" - Reviewer: {reviewer}" if reviewer else ""
    return f"{FLAG_MARKER} {reason}{suffix}]"


def flag_for_review(graph: KnowledgeGraph, entity_name: str, reason: str, reviewer: str | None, timestamp: str) -> bool:
    """Attach a review flag observation to an entity (any thread).

    Returns:
        True if a flag was added, False if an identical flag already exists

    Raises:
        EntityNotFoundError: no such entity
    """
    entity = graph.get_entity(entity_name)
    if entity is None:
        raise EntityNotFoundError(entity_name)

    content = flag_content(reason, reviewer)
    if any(obs.content == content for obs in entity.observations):
        return False

    entity.observations.append(
        Observation(
            content=content,
            timestamp=timestamp,
            agent_thread_id=entity.agent_thread_id,
            confidence=1.0,
            importance=1.0,
        )
    )
    entity.timestamp = timestamp
    return True


def get_flagged_entities(graph: KnowledgeGraph) -> list[Entity]:
    return [
        entity.without_status()
        for entity in graph.entities
        if any(FLAG_MARKER in obs.content for obs in entity.observations)
    ]


def list_conversations(graph: KnowledgeGraph) -> list[ConversationSummary]:
    """One summary per thread that owns any entity or relation, most recently updated first."""
    entity_counts: dict[str, int] = {}
    relation_counts: dict[str, int] = {}
    stamps: dict[str, list[str]] = {}

    for entity in graph.entities:
        entity_counts[entity.agent_thread_id] = entity_counts.get(entity.agent_thread_id, 0) + 1
        stamps.setdefault(entity.agent_thread_id, []).append(entity.timestamp)
    for relation in graph.relations:
        relation_counts[relation.agent_thread_id] = relation_counts.get(relation.agent_thread_id, 0) + 1
        stamps.setdefault(relation.agent_thread_id, []).append(relation.timestamp)

    summaries = [
        ConversationSummary(
            agent_thread_id=thread_id,
            entity_count=entity_counts.get(thread_id, 0),
            relation_count=relation_counts.get(thread_id, 0),
            first_created=min(thread_stamps),
            last_updated=max(thread_stamps),
        )
        for thread_id, thread_stamps in stamps.items()
    ]
    summaries.sort(key=lambda s: s.last_updated, reverse=True)
    return summaries
