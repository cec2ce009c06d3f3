import os
import sys

import pytest

# Add src directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "src"))

from mcp_knowledge_graph.graph.relation_inverter import RelationInverter  # noqa: E402
from mcp_knowledge_graph.models.graph import Entity, KnowledgeGraph, Observation, Relation  # noqa: E402
from mcp_knowledge_graph.services.knowledge_graph import KnowledgeGraphManager  # noqa: E402
from mcp_knowledge_graph.storage.jsonl_storage import JsonlGraphStorage  # noqa: E402

DEFAULT_TIMESTAMP = "2025-01-15T10:00:00.000Z"


@pytest.fixture
def make_observation():
    """Factory for observations with sensible defaults."""

    def _make(content: str = "Observed something useful", **overrides) -> Observation:
        fields = {"content": content, "timestamp": DEFAULT_TIMESTAMP, "agent_thread_id": "thread-a"}
        fields.update(overrides)
        return Observation(**fields)

    return _make


@pytest.fixture
def make_entity(make_observation):
    """Factory for entities; ``observations`` may be plain strings."""

    def _make(name: str, thread: str = "thread-a", observations=(), **overrides) -> Entity:
        fields = {
            "name": name,
            "entity_type": "Concept",
            "observations": [
                obs if isinstance(obs, Observation) else make_observation(obs, agent_thread_id=thread)
                for obs in observations
            ],
            "agent_thread_id": thread,
            "timestamp": DEFAULT_TIMESTAMP,
            "confidence": 0.9,
            "importance": 0.5,
        }
        fields.update(overrides)
        return Entity(**fields)

    return _make


@pytest.fixture
def make_relation():
    """Factory for relations."""

    def _make(source: str, target: str, relation_type: str = "uses", thread: str = "thread-a", **overrides) -> Relation:
        fields = {
            "from_": source,
            "to": target,
            "relation_type": relation_type,
            "agent_thread_id": thread,
            "timestamp": DEFAULT_TIMESTAMP,
            "confidence": 1.0,
            "importance": 0.7,
        }
        fields.update(overrides)
        return Relation(**fields)

    return _make


@pytest.fixture
def empty_graph() -> KnowledgeGraph:
    return KnowledgeGraph()


@pytest.fixture
def storage(tmp_path) -> JsonlGraphStorage:
    """JSONL storage rooted in a fresh temporary directory."""
    return JsonlGraphStorage(tmp_path / "memory")


@pytest.fixture
async def manager(storage) -> KnowledgeGraphManager:
    """Manager over real JSONL storage with the default inverse table."""
    kg = KnowledgeGraphManager(storage, inverter=RelationInverter())
    await kg.initialize()
    return kg
