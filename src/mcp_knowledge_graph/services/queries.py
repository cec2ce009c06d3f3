"""
Read-only views over a loaded graph.

``read_graph`` is the only view that decorates items with an ``ARCHIVED``
status; every other view strips any status so it can never leak from a
stored record.
"""

from collections.abc import Iterable

from ..models.graph import Entity, KnowledgeGraph, Observation, Relation
from ..models.requests import NodeFilters
from ..models.responses import EntitySummary
from ..models.validators import ARCHIVED, ArchiveStatus


def _stripped(graph: KnowledgeGraph, entities: list[Entity]) -> KnowledgeGraph:
    view = graph.subgraph(entities)
    return KnowledgeGraph(
        entities=[entity.without_status() for entity in view.entities],
        relations=[relation.without_status() for relation in view.relations],
    )


def _archive_status(importance: float, archive_threshold: float) -> ArchiveStatus | None:
    return ARCHIVED if importance < archive_threshold else None


def read_graph(
    graph: KnowledgeGraph,
    thread_id: str,
    min_importance: float = 0.1,
    archive_threshold: float = 0.1,
) -> KnowledgeGraph:
    """The thread's view of the graph above an importance floor.

    Items with importance in ``[min_importance, archive_threshold)`` are
    returned with ``status="ARCHIVED"``. Observations without their own
    importance inherit the entity's.
    """
    entities: list[Entity] = []
    for entity in graph.entities:
        if entity.agent_thread_id != thread_id or entity.importance < min_importance:
            continue
        observations: list[Observation] = []
        for obs in entity.observations:
            importance = obs.importance if obs.importance is not None else entity.importance
            if importance < min_importance:
                continue
            observations.append(obs.model_copy(update={"status": _archive_status(importance, archive_threshold)}))
        entities.append(
            entity.model_copy(
                update={
                    "observations": observations,
                    "status": _archive_status(entity.importance, archive_threshold),
                }
            )
        )

    names = {entity.name for entity in entities}
    relations = [
        relation.model_copy(update={"status": _archive_status(relation.importance, archive_threshold)})
        for relation in graph.relations
        if relation.agent_thread_id == thread_id
        and relation.from_ in names
        and relation.to in names
        and relation.importance >= min_importance
    ]
    return KnowledgeGraph(entities=entities, relations=relations)


def search_nodes(graph: KnowledgeGraph, query: str) -> KnowledgeGraph:
    """Entities whose name, type or any observation contains ``query`` (case-insensitive)."""
    needle = query.lower()
    matches = [
        entity
        for entity in graph.entities
        if needle in entity.name.lower()
        or needle in entity.entity_type.lower()
        or any(needle in obs.content.lower() for obs in entity.observations)
    ]
    return _stripped(graph, matches)


def open_nodes(graph: KnowledgeGraph, names: Iterable[str]) -> KnowledgeGraph:
    """Entities with exactly these names, plus the relations among them."""
    wanted = set(names)
    return _stripped(graph, [entity for entity in graph.entities if entity.name in wanted])


def _in_ranges(item: Entity | Relation, filters: NodeFilters) -> bool:
    # ISO-8601 UTC timestamps compare correctly as strings
    if filters.timestamp_start and item.timestamp < filters.timestamp_start:
        return False
    if filters.timestamp_end and item.timestamp > filters.timestamp_end:
        return False
    if filters.confidence_min is not None and item.confidence < filters.confidence_min:
        return False
    if filters.confidence_max is not None and item.confidence > filters.confidence_max:
        return False
    if filters.importance_min is not None and item.importance < filters.importance_min:
        return False
    if filters.importance_max is not None and item.importance > filters.importance_max:
        return False
    return True


def query_nodes(graph: KnowledgeGraph, filters: NodeFilters | None = None) -> KnowledgeGraph:
    """Inclusive range filters applied to entities and, independently, to relations.

    Relations must also connect two entities that passed the filter.
    """
    if filters is None:
        filters = NodeFilters()
    entities = [entity.without_status() for entity in graph.entities if _in_ranges(entity, filters)]
    names = {entity.name for entity in entities}
    relations = [
        relation.without_status()
        for relation in graph.relations
        if relation.from_ in names and relation.to in names and _in_ranges(relation, filters)
    ]
    return KnowledgeGraph(entities=entities, relations=relations)


def get_all_entity_names(graph: KnowledgeGraph) -> set[str]:
    """Every entity name in the graph; names are unique across threads."""
    return graph.entity_names()


def list_entities(
    graph: KnowledgeGraph,
    thread_id: str | None = None,
    entity_type: str | None = None,
    name_pattern: str | None = None,
) -> list[EntitySummary]:
    """Name and type of entities, optionally filtered by thread, exact type and name substring."""
    pattern = name_pattern.lower() if name_pattern else None
    return [
        EntitySummary(name=entity.name, entity_type=entity.entity_type)
        for entity in graph.entities
        if (not thread_id or entity.agent_thread_id == thread_id)
        and (not entity_type or entity.entity_type == entity_type)
        and (pattern is None or pattern in entity.name.lower())
    ]
