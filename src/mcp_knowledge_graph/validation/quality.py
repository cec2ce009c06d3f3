"""Quality score for a save_memory request."""

from collections.abc import Sequence

from ..config import ValidationSettings, settings
from ..models.requests import SaveMemoryEntity


def calculate_quality_score(entities: Sequence[SaveMemoryEntity], config: ValidationSettings | None = None) -> float:
    """
    Score a request in [0, 1] by connectivity and observation atomicity.

        relation_score    = min(avg relations per entity / target, 1)
        observation_score = 1 - avg observation length / max length
        score = 0.7 * relation_score + 0.3 * observation_score

    Only the entities of the request are scored, never the stored graph.
    """
    if not entities:
        return 0.0
    cfg = config or settings.validation

    avg_relations = sum(len(entity.relations) for entity in entities) / len(entities)
    relation_score = min(avg_relations / cfg.target_avg_relations, 1.0)

    lengths = [len(obs) for entity in entities for obs in entity.observations]
    if lengths:
        avg_length = sum(lengths) / len(lengths)
        observation_score = max(0.0, 1.0 - avg_length / cfg.max_observation_length)
    else:
        observation_score = 0.0

    score = relation_score * cfg.relation_score_weight + observation_score * cfg.observation_score_weight
    return min(max(score, 0.0), 1.0)
