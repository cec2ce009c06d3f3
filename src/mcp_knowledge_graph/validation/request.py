"""
Request-level validation for save_memory.

Every entity is checked (one bad entity does not stop validation of the
rest); errors carry the entity index, name and normalized type, and a
content preview for observation problems. The request is valid iff no
errors were collected. Normalized copies of the entities are returned; the
caller's objects are never modified.
"""

from collections.abc import Sequence, Set

from ..config import ValidationSettings, settings
from ..models.requests import SaveMemoryEntity
from ..models.responses import CheckResult, RequestValidationResult, ValidationIssue
from .entity_type import normalize_entity_type
from .observation import validate_observation
from .relations import validate_entity_relations, validate_relation_targets


def observation_preview(content: str, length: int) -> str:
    """First ``length`` characters of ``content``, with an ellipsis if cut."""
    return content[:length] + ("..." if len(content) > length else "")


def _issue(
    index: int, entity: SaveMemoryEntity, result: CheckResult, *, prefix: str = "", preview: str | None = None
) -> ValidationIssue:
    return ValidationIssue(
        entity_index=index,
        entity_name=entity.name,
        entity_type=entity.entity_type,
        error=f"{prefix}{result.error}",
        suggestion=result.suggestion,
        observation_preview=preview,
    )


def validate_entity(
    entity: SaveMemoryEntity,
    index: int,
    request_names: Set[str],
    existing_names: Set[str] | None = None,
    config: ValidationSettings | None = None,
) -> tuple[SaveMemoryEntity, list[ValidationIssue], list[str]]:
    """Validate one entity; returns (normalized copy, errors, warnings)."""
    cfg = config or settings.validation
    normalized_type, warnings = normalize_entity_type(entity.entity_type)
    normalized = entity.model_copy(update={"entity_type": normalized_type})
    errors: list[ValidationIssue] = []

    for i, content in enumerate(normalized.observations):
        result = validate_observation(content, cfg)
        if not result.valid:
            errors.append(
                _issue(
                    index,
                    normalized,
                    result,
                    prefix=f"Observation {i + 1}: ",
                    preview=observation_preview(content, cfg.observation_preview_length),
                )
            )

    for result in (
        validate_entity_relations(normalized),
        validate_relation_targets(normalized, request_names, existing_names),
    ):
        if not result.valid:
            errors.append(_issue(index, normalized, result))

    return normalized, errors, warnings


def validate_save_memory_request(
    entities: Sequence[SaveMemoryEntity],
    existing_names: Set[str] | None = None,
    config: ValidationSettings | None = None,
) -> RequestValidationResult:
    """Validate every entity of a save_memory request."""
    request_names = {entity.name for entity in entities}
    normalized_entities: list[SaveMemoryEntity] = []
    errors: list[ValidationIssue] = []
    warnings: list[str] = []

    for index, entity in enumerate(entities):
        normalized, entity_errors, entity_warnings = validate_entity(
            entity, index, request_names, existing_names, config
        )
        normalized_entities.append(normalized)
        errors.extend(entity_errors)
        warnings.extend(entity_warnings)

    return RequestValidationResult(
        valid=not errors,
        errors=errors,
        warnings=warnings,
        entities=normalized_entities,
    )
