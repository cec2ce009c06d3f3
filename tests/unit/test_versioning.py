"""Tests for observation version chains."""

import pytest

from mcp_knowledge_graph.errors import ObservationNotFoundError, ObservationSupersededError
from mcp_knowledge_graph.graph.versioning import get_observation_history, supersede_observation


def _supersede(entity, observation_id, content, timestamp="2025-01-16T10:00:00.000Z", **kwargs):
    return supersede_observation(
        entity, observation_id, content=content, agent_thread_id="thread-b", timestamp=timestamp, **kwargs
    )


class TestSupersede:
    def test_links_new_version(self, make_entity):
        entity = make_entity("Api", observations=["Runs on port 8080"])
        original = entity.observations[0]

        successor = _supersede(entity, original.id, "Runs on port 9090")

        assert successor.version == 2
        assert successor.supersedes == original.id
        assert original.superseded_by == successor.id
        assert successor.agent_thread_id == "thread-b"
        assert entity.observations[-1] is successor
        assert entity.timestamp == "2025-01-16T10:00:00.000Z"
        assert original.content == "Runs on port 8080"

    def test_ids_are_never_reused(self, make_entity):
        entity = make_entity("Api", observations=["Runs on port 8080"])
        first = entity.observations[0]
        second = _supersede(entity, first.id, "Runs on port 9090")
        third = _supersede(entity, second.id, "Runs on port 7070")

        assert len({first.id, second.id, third.id}) == 3
        assert third.version == 3

    def test_scores_fall_back_to_previous_then_entity(self, make_entity, make_observation):
        scored = make_observation("Scored fact", confidence=0.4, importance=0.3)
        entity = make_entity("Api", observations=[scored, "Unscored fact"])

        from_previous = _supersede(entity, scored.id, "Scored fact v2")
        from_entity = _supersede(entity, entity.observations[1].id, "Unscored fact v2")
        explicit = _supersede(entity, from_previous.id, "Scored fact v3", confidence=0.8)

        assert (from_previous.confidence, from_previous.importance) == (0.4, 0.3)
        assert (from_entity.confidence, from_entity.importance) == (entity.confidence, entity.importance)
        assert (explicit.confidence, explicit.importance) == (0.8, 0.3)

    def test_superseded_observation_cannot_be_updated(self, make_entity):
        entity = make_entity("Api", observations=["Runs on port 8080"])
        original = entity.observations[0]
        successor = _supersede(entity, original.id, "Runs on port 9090")

        with pytest.raises(ObservationSupersededError) as exc_info:
            _supersede(entity, original.id, "Runs on port 7070")

        assert successor.id in str(exc_info.value)
        assert len(entity.observations) == 2

    def test_unknown_observation(self, make_entity):
        entity = make_entity("Api", observations=["Runs on port 8080"])
        with pytest.raises(ObservationNotFoundError):
            _supersede(entity, "obs_missing", "Anything")


class TestHistory:
    def test_full_chain_from_any_member(self, make_entity):
        entity = make_entity("Api", observations=["v1 content"])
        ids = [entity.observations[0].id]
        for n in range(2, 5):
            ids.append(_supersede(entity, ids[-1], f"v{n} content").id)

        for start in ids:
            history = get_observation_history(entity, start)
            assert [obs.id for obs in history] == ids
            assert [obs.version for obs in history] == [1, 2, 3, 4]

    def test_single_observation(self, make_entity):
        entity = make_entity("Api", observations=["Only version"])
        history = get_observation_history(entity, entity.observations[0].id)
        assert [obs.content for obs in history] == ["Only version"]

    def test_cyclic_chain_terminates(self, make_entity, make_observation):
        first = make_observation("Loop one", id="obs_1", supersedes="obs_2", superseded_by="obs_2")
        second = make_observation("Loop two", id="obs_2", version=2, supersedes="obs_1", superseded_by="obs_1")
        entity = make_entity("Api", observations=[first, second])

        history = get_observation_history(entity, "obs_1")

        assert [obs.id for obs in history] == ["obs_2", "obs_1"]

    def test_broken_link_stops_walk(self, make_entity, make_observation):
        orphan = make_observation("Dangling", id="obs_2", version=2, supersedes="obs_gone")
        entity = make_entity("Api", observations=[orphan])

        assert [obs.id for obs in get_observation_history(entity, "obs_2")] == ["obs_2"]

    def test_unknown_start(self, make_entity):
        with pytest.raises(ObservationNotFoundError):
            get_observation_history(make_entity("Api"), "obs_missing")
