"""Validation and quality scoring for save_memory requests."""

from .entity_type import normalize_entity_type
from .observation import count_sentences, validate_observation
from .quality import calculate_quality_score
from .relations import validate_entity_relations, validate_relation_targets
from .request import validate_save_memory_request

__all__ = [
    "calculate_quality_score",
    "count_sentences",
    "normalize_entity_type",
    "validate_entity_relations",
    "validate_observation",
    "validate_relation_targets",
    "validate_save_memory_request",
]
