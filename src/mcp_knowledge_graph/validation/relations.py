"""Relation rules for save_memory entities."""

from collections.abc import Set

from ..models.requests import SaveMemoryEntity
from ..models.responses import CheckResult


def validate_entity_relations(entity: SaveMemoryEntity) -> CheckResult:
    """Every saved entity must declare at least one relation."""
    if not entity.relations:
        return CheckResult.fail(
            f"Entity '{entity.name}' must have at least 1 relation",
            "Add relations to show connections: e.g., { targetEntity: 'OtherEntity', relationType: 'related to' }",
        )
    return CheckResult.ok()


def validate_relation_targets(
    entity: SaveMemoryEntity,
    request_names: Set[str],
    existing_names: Set[str] | None = None,
) -> CheckResult:
    """
    Every relation target must be in the same request or already persisted.

    ``existing_names`` spans all threads, so cross-thread references are
    allowed. Reports the first missing target only.
    """
    existing = existing_names or frozenset()
    for relation in entity.relations:
        if relation.target_entity not in request_names and relation.target_entity not in existing:
            return CheckResult.fail(
                f"Target entity '{relation.target_entity}' not found in request or existing entities",
                "targetEntity must reference another entity in the same save_memory call or an existing entity",
            )
    return CheckResult.ok()
