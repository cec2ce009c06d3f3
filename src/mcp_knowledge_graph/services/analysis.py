"""
Graph analysis: statistics, recent changes, paths, conflicts, context and
per-thread analytics. All functions are read-only.
"""

from collections import deque
from datetime import datetime, timedelta, timezone
from itertools import combinations

from ..models.graph import KnowledgeGraph, Observation, Relation
from ..models.responses import (
    ConnectedEntity,
    DailyActivity,
    EntityConflicts,
    GraphAnalytics,
    ImportantEntity,
    MemoryStats,
    ObservationConflict,
    OrphanedEntity,
    RecentChange,
    RecentChanges,
    RelationPath,
)
from ..utils.negation import NEGATION_WORDS, has_negation
from ..utils.timestamps import parse_iso

CONFLICT_REASON = "Potential contradiction with negation"
_MIN_SHARED_WORDS = 2
_MIN_WORD_LENGTH = 4


def get_memory_stats(
    graph: KnowledgeGraph,
    thread_id: str,
    *,
    activity_days: int = 7,
    now: datetime | None = None,
) -> MemoryStats:
    """Statistics for one thread; ``thread_count`` spans the whole graph."""
    entities = [e for e in graph.entities if e.agent_thread_id == thread_id]
    relation_count = sum(1 for r in graph.relations if r.agent_thread_id == thread_id)

    entity_types: dict[str, int] = {}
    for entity in entities:
        entity_types[entity.entity_type] = entity_types.get(entity.entity_type, 0) + 1

    since = (now or datetime.now(timezone.utc)) - timedelta(days=activity_days)
    by_day: dict[str, int] = {}
    for entity in entities:
        stamp = parse_iso(entity.timestamp)
        if stamp is not None and stamp >= since:
            day = entity.timestamp[:10]
            by_day[day] = by_day.get(day, 0) + 1

    count = len(entities)
    return MemoryStats(
        entity_count=count,
        relation_count=relation_count,
        thread_count=len({e.agent_thread_id for e in graph.entities}),
        entity_types=entity_types,
        avg_confidence=sum(e.confidence for e in entities) / count if count else 0.0,
        avg_importance=sum(e.importance for e in entities) / count if count else 0.0,
        recent_activity=[DailyActivity(timestamp=day, entity_count=n) for day, n in sorted(by_day.items())],
    )


def get_recent_changes(graph: KnowledgeGraph, thread_id: str, since: str) -> RecentChanges:
    """The thread's entities and relations stamped at or after ``since``."""
    cutoff = parse_iso(since)
    if cutoff is None:
        return RecentChanges()

    def is_recent(timestamp: str) -> bool:
        stamp = parse_iso(timestamp)
        return stamp is not None and stamp >= cutoff

    return RecentChanges(
        entities=[
            e.without_status() for e in graph.entities if e.agent_thread_id == thread_id and is_recent(e.timestamp)
        ],
        relations=[
            r.without_status() for r in graph.relations if r.agent_thread_id == thread_id and is_recent(r.timestamp)
        ],
    )


def find_relation_path(graph: KnowledgeGraph, source: str, target: str, max_depth: int = 5) -> RelationPath:
    """Shortest path from ``source`` to ``target``, following relations in either direction.

    ``max_depth`` bounds the number of nodes on a path that is still
    expanded.
    """
    if source == target:
        return RelationPath(found=True, path=[source])

    neighbours: dict[str, list[tuple[str, Relation]]] = {}
    for relation in graph.relations:
        neighbours.setdefault(relation.from_, []).append((relation.to, relation))
        neighbours.setdefault(relation.to, []).append((relation.from_, relation))

    queue: deque[tuple[str, list[str], list[Relation]]] = deque([(source, [source], [])])
    visited = {source}
    while queue:
        node, path, edges = queue.popleft()
        if len(path) > max_depth:
            continue
        for neighbour, relation in neighbours.get(node, []):
            if neighbour == target:
                return RelationPath(
                    found=True,
                    path=[*path, neighbour],
                    relations=[edge.without_status() for edge in (*edges, relation)],
                )
            if neighbour not in visited:
                visited.add(neighbour)
                queue.append((neighbour, [*path, neighbour], [*edges, relation]))
    return RelationPath(found=False)


def _chain_linked(a: Observation, b: Observation) -> bool:
    return b.id in (a.supersedes, a.superseded_by) or a.id in (b.supersedes, b.superseded_by)


def _key_words(content: str) -> set[str]:
    return {word for word in content.lower().split() if len(word) >= _MIN_WORD_LENGTH}


def detect_conflicts(graph: KnowledgeGraph) -> list[EntityConflicts]:
    """Observation pairs that look contradictory.

    A pair is flagged when exactly one side contains a negation word and they
    share at least two longer non-negation words. Direct versions of each
    other are skipped.
    """
    results: list[EntityConflicts] = []
    for entity in graph.entities:
        conflicts: list[ObservationConflict] = []
        for first, second in combinations(entity.observations, 2):
            if _chain_linked(first, second):
                continue
            if has_negation(first.content) == has_negation(second.content):
                continue
            shared = (_key_words(first.content) & _key_words(second.content)) - NEGATION_WORDS
            if len(shared) >= _MIN_SHARED_WORDS:
                conflicts.append(
                    ObservationConflict(observation1=first.content, observation2=second.content, reason=CONFLICT_REASON)
                )
        if conflicts:
            results.append(EntityConflicts(entity_name=entity.name, conflicts=conflicts))
    return results


def get_context(graph: KnowledgeGraph, thread_id: str, entity_names: list[str], depth: int = 1) -> KnowledgeGraph:
    """Expand ``entity_names`` along the thread's relations ``depth`` times."""
    thread_relations = [r for r in graph.relations if r.agent_thread_id == thread_id]
    names = set(entity_names)
    for _ in range(depth):
        frontier = set(names)
        for relation in thread_relations:
            if relation.touches(frontier):
                names.update((relation.from_, relation.to))

    return KnowledgeGraph(
        entities=[e.without_status() for e in graph.entities if e.agent_thread_id == thread_id and e.name in names],
        relations=[r.without_status() for r in thread_relations if r.from_ in names and r.to in names],
    )


def get_analytics(graph: KnowledgeGraph, thread_id: str, limit: int = 10) -> GraphAnalytics:
    """Recent, important, connected and orphaned entities of one thread."""
    entities = [e for e in graph.entities if e.agent_thread_id == thread_id]
    relations = [r for r in graph.relations if r.agent_thread_id == thread_id]
    names = {e.name for e in entities}

    connections: dict[str, set[str]] = {e.name: set() for e in entities}
    for relation in relations:
        if relation.from_ in connections:
            connections[relation.from_].add(relation.to)
        if relation.to in connections:
            connections[relation.to].add(relation.from_)

    # Entities carry a single timestamp, so every change reads as a creation
    recent = sorted(entities, key=lambda e: e.timestamp, reverse=True)[:limit]
    important = sorted(entities, key=lambda e: e.importance, reverse=True)[:limit]
    connected = sorted(entities, key=lambda e: len(connections[e.name]), reverse=True)[:limit]

    orphaned: list[OrphanedEntity] = []
    for entity in entities:
        if not connections[entity.name]:
            orphaned.append(
                OrphanedEntity(entity_name=entity.name, entity_type=entity.entity_type, reason="no_relations")
            )
        elif any(
            r.touches({entity.name}) and (r.from_ not in names or r.to not in names) for r in relations
        ):
            orphaned.append(
                OrphanedEntity(entity_name=entity.name, entity_type=entity.entity_type, reason="broken_relation")
            )

    return GraphAnalytics(
        recent_changes=[
            RecentChange(
                entity_name=e.name, entity_type=e.entity_type, last_modified=e.timestamp, change_type="created"
            )
            for e in recent
        ],
        top_important=[
            ImportantEntity(
                entity_name=e.name,
                entity_type=e.entity_type,
                importance=e.importance,
                observation_count=len(e.observations),
            )
            for e in important
        ],
        most_connected=[
            ConnectedEntity(
                entity_name=e.name,
                entity_type=e.entity_type,
                relation_count=len(connections[e.name]),
                connected_to=sorted(connections[e.name]),
            )
            for e in connected
        ],
        orphaned_entities=orphaned,
    )
