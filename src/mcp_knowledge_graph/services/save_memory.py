"""
save_memory transaction helpers.

The manager validates a request, stages the records built here against a
single loaded graph and persists them with one ``save_graph`` call. These
helpers are pure: they build records and shape results, nothing more.
"""

from collections.abc import Sequence

from ..config import ValidationSettings, settings
from ..graph.relation_inverter import RelationInverter
from ..models.graph import Entity, Observation, Relation
from ..models.requests import SaveMemoryEntity
from ..models.responses import EntityValidationReport, SaveMemoryResult, ValidationIssue


def build_entities(
    thread_id: str,
    entities: Sequence[SaveMemoryEntity],
    timestamp: str,
    config: ValidationSettings | None = None,
) -> list[Entity]:
    """Entity records with version-1 observations, defaults applied."""
    cfg = config or settings.validation
    records: list[Entity] = []
    for entity in entities:
        confidence = entity.confidence if entity.confidence is not None else cfg.default_entity_confidence
        importance = entity.importance if entity.importance is not None else cfg.default_entity_importance
        records.append(
            Entity(
                name=entity.name,
                entity_type=entity.entity_type,
                observations=[
                    Observation(
                        content=content,
                        timestamp=timestamp,
                        agent_thread_id=thread_id,
                        confidence=confidence,
                        importance=importance,
                    )
                    for content in entity.observations
                ],
                agent_thread_id=thread_id,
                timestamp=timestamp,
                confidence=confidence,
                importance=importance,
            )
        )
    return records


def build_relations(
    thread_id: str,
    entities: Sequence[SaveMemoryEntity],
    inverter: RelationInverter,
    timestamp: str,
    config: ValidationSettings | None = None,
) -> list[Relation]:
    """Forward and inverse relation records for every declared relation."""
    cfg = config or settings.validation
    records: list[Relation] = []
    for entity in entities:
        for declared in entity.relations:
            importance = declared.importance if declared.importance is not None else cfg.default_relation_importance
            common = {"agent_thread_id": thread_id, "timestamp": timestamp, "confidence": 1.0, "importance": importance}
            records.append(
                Relation(from_=entity.name, to=declared.target_entity, relation_type=declared.relation_type, **common)
            )
            records.append(
                Relation(
                    from_=declared.target_entity,
                    to=entity.name,
                    relation_type=inverter.get_inverse(declared.relation_type),
                    **common,
                )
            )
    return records


def group_validation_errors(issues: Sequence[ValidationIssue]) -> list[EntityValidationReport]:
    """Group issues by entity index, keeping first-seen order."""
    reports: dict[int, EntityValidationReport] = {}
    for issue in issues:
        report = reports.get(issue.entity_index)
        if report is None:
            report = reports[issue.entity_index] = EntityValidationReport(
                entity_index=issue.entity_index,
                entity_name=issue.entity_name,
                entity_type=issue.entity_type,
            )
        report.errors.append(issue.message())
        if issue.observation_preview is not None:
            if report.observations is None:
                report.observations = []
            report.observations.append(issue.observation_preview)
    return list(reports.values())


def validation_failure(issues: Sequence[ValidationIssue]) -> SaveMemoryResult:
    return SaveMemoryResult(
        success=False,
        error="Validation failed",
        validation_errors=group_validation_errors(issues),
    )


def transaction_failure(error: Exception) -> SaveMemoryResult:
    return SaveMemoryResult(success=False, error=f"Transaction failed: {error}")
