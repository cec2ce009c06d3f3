"""Tests for save_memory validation rules and the quality score."""

import pytest

from mcp_knowledge_graph.config import ValidationSettings
from mcp_knowledge_graph.models.requests import SaveMemoryEntity, SaveMemoryRelation
from mcp_knowledge_graph.validation import (
    calculate_quality_score,
    count_sentences,
    normalize_entity_type,
    validate_entity_relations,
    validate_observation,
    validate_relation_targets,
    validate_save_memory_request,
)


def _entity(name="Alpha", entity_type="Service", observations=("Runs on port 8080",), relations=None, **kwargs):
    if relations is None:
        relations = [SaveMemoryRelation(target_entity="Alpha", relation_type="relates to")]
    return SaveMemoryEntity(
        name=name, entity_type=entity_type, observations=list(observations), relations=relations, **kwargs
    )


# =============================================================================
# Sentence counting
# =============================================================================


class TestCountSentences:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("One plain sentence.", 1),
            ("Deployed today. Tested twice. Shipped fast.", 3),
            ("Is it done? Yes! Shipped.", 3),
            ("Upgraded to v2.4.1 last week.", 1),
            ("Docs live at https://example.com/a.b/c.html for now.", 1),
            ("Server bound to 192.168.1.10 today.", 1),
            ("Config sits in C:\\Program Files\\app\\conf.ini now.", 1),
            ("Config sits in /etc/nginx/nginx.conf now.", 1),
            ("Headquartered in the U.S.A. since 1999.", 1),
            ("Dr. Smith approved the design.", 1),
            ("Mirror hosted on cdn.eu.example.org now.", 1),
            ("No terminator at all", 1),
            ("", 0),
        ],
    )
    def test_technical_content_is_not_split(self, text, expected):
        assert count_sentences(text) == expected

    @pytest.mark.parametrize(
        "text",
        [
            "Alpha runs. Beta waits. Gamma sleeps. Delta stops.",
            "Config is in /etc/app. It fails. Then restart. Done now.",
            "Config is in /etc/app/conf.ini. It fails. Then restart. Done now.",
            "Config is in C:\\app\\conf.ini. It fails. Then restart. Done now.",
        ],
    )
    def test_counts_four_sentences(self, text):
        assert count_sentences(text) == 4

    def test_path_at_sentence_end_still_fails_validation(self):
        result = validate_observation("Config is in /etc/app. It fails. Then restart. Done now.")

        assert not result.valid
        assert "Too many sentences (4)" in result.error


# =============================================================================
# Observation rules
# =============================================================================


class TestValidateObservation:
    def test_valid_observation(self):
        result = validate_observation("Uses PostgreSQL 15 for storage")
        assert result.valid
        assert result.error is None

    def test_too_short(self):
        result = validate_observation("abc")
        assert not result.valid
        assert result.error == "Observation too short (3 chars). Min 5."
        assert result.suggestion == "Provide more meaningful content."

    def test_boundaries_are_inclusive(self):
        assert validate_observation("x" * 5).valid
        assert validate_observation("x" * 150).valid

    def test_too_long(self):
        result = validate_observation("x" * 151)
        assert not result.valid
        assert result.error == "Observation too long (151 chars). Max 150."
        assert result.suggestion == "Split into atomic facts."

    def test_too_many_sentences(self):
        result = validate_observation("Alpha runs. Beta waits. Gamma sleeps. Delta stops.")
        assert not result.valid
        assert result.error == "Too many sentences (4). Max 3."
        assert "Split this into 4 separate observations" in result.suggestion

    def test_custom_limits(self):
        config = ValidationSettings(max_observation_length=40, max_sentences=1)
        assert not validate_observation("x" * 41, config).valid
        assert not validate_observation("Ships daily. Runs nightly.", config).valid
        assert validate_observation("Ships daily", config).valid


# =============================================================================
# Entity type normalization
# =============================================================================


class TestNormalizeEntityType:
    def test_already_normalized(self):
        assert normalize_entity_type("Person") == ("Person", [])

    def test_capitalizes_first_letter(self):
        normalized, warnings = normalize_entity_type("person")
        assert normalized == "Person"
        assert warnings == ["EntityType 'person' should start with capital letter. Normalized to 'Person'."]

    def test_spaces_produce_pascal_case_suggestion(self):
        normalized, warnings = normalize_entity_type("Web  service")
        assert normalized == "Web  service"
        assert warnings == ["EntityType 'Web  service' contains spaces. Consider using 'WebService' instead."]

    def test_lowercase_with_spaces_warns_twice(self):
        normalized, warnings = normalize_entity_type("design decision")
        assert normalized == "Design decision"
        assert len(warnings) == 2
        assert "DesignDecision" in warnings[1]


# =============================================================================
# Relation rules
# =============================================================================


class TestRelationRules:
    def test_entity_without_relations_fails(self):
        result = validate_entity_relations(_entity(relations=[]))
        assert not result.valid
        assert result.error == "Entity 'Alpha' must have at least 1 relation"

    def test_target_in_request(self):
        entity = _entity(relations=[SaveMemoryRelation(target_entity="Beta", relation_type="uses")])
        assert validate_relation_targets(entity, {"Alpha", "Beta"}).valid

    def test_target_in_existing_entities(self):
        entity = _entity(relations=[SaveMemoryRelation(target_entity="Legacy", relation_type="uses")])
        assert validate_relation_targets(entity, {"Alpha"}, {"Legacy"}).valid

    def test_missing_target(self):
        entity = _entity(relations=[SaveMemoryRelation(target_entity="Ghost", relation_type="uses")])
        result = validate_relation_targets(entity, {"Alpha"}, set())
        assert not result.valid
        assert result.error == "Target entity 'Ghost' not found in request or existing entities"


# =============================================================================
# Request validation
# =============================================================================


class TestValidateSaveMemoryRequest:
    def test_valid_request(self):
        result = validate_save_memory_request([_entity()])
        assert result.valid
        assert result.errors == []

    def test_collects_errors_from_every_entity(self):
        entities = [
            _entity(name="A", observations=["bad"], relations=[]),
            _entity(name="B", relations=[SaveMemoryRelation(target_entity="Ghost", relation_type="uses")]),
        ]
        result = validate_save_memory_request(entities)

        assert not result.valid
        assert [issue.entity_index for issue in result.errors] == [0, 0, 1]

    def test_observation_error_has_prefix_and_preview(self):
        long_text = "word " * 40
        result = validate_save_memory_request([_entity(observations=["Fine observation", long_text])])

        (issue,) = result.errors
        assert issue.error.startswith("Observation 2: Observation too long")
        assert issue.observation_preview == long_text[:50] + "..."
        assert issue.message().endswith("Suggestion: Split into atomic facts.")

    def test_normalizes_copy_without_mutating_request(self):
        original = _entity(entity_type="service")
        result = validate_save_memory_request([original])

        assert result.valid
        assert result.entities[0].entity_type == "Service"
        assert original.entity_type == "service"
        assert result.warnings

    def test_errors_report_normalized_type(self):
        result = validate_save_memory_request([_entity(entity_type="service", relations=[])])
        assert result.errors[0].entity_type == "Service"


# =============================================================================
# Quality score
# =============================================================================


class TestQualityScore:
    def test_empty_request_scores_zero(self):
        assert calculate_quality_score([]) == 0.0

    def test_formula(self):
        relations = [
            SaveMemoryRelation(target_entity="B", relation_type="uses"),
            SaveMemoryRelation(target_entity="C", relation_type="uses"),
        ]
        entity = _entity(observations=["x" * 75], relations=relations)

        # 0.7 * min(2 / 2, 1) + 0.3 * (1 - 75 / 150)
        assert calculate_quality_score([entity]) == pytest.approx(0.85)

    def test_more_relations_score_higher(self):
        one = _entity(relations=[SaveMemoryRelation(target_entity="B", relation_type="uses")])
        three = _entity(
            relations=[SaveMemoryRelation(target_entity=t, relation_type="uses") for t in ("B", "C", "D")]
        )
        assert calculate_quality_score([three]) > calculate_quality_score([one])

    def test_score_stays_in_unit_range(self):
        entity = _entity(observations=["x" * 300])
        assert 0.0 <= calculate_quality_score([entity]) <= 1.0
