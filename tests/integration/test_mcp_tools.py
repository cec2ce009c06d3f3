"""
Integration tests for the MCP tools exercised through the FastMCP Client interface.

Tests the full pipeline: MCP tool -> KnowledgeGraphManager -> JsonlGraphStorage
in a temporary directory. No external services required.
"""

import json

import pytest
from fastmcp import Client

from mcp_knowledge_graph.mcp_server import mcp
from mcp_knowledge_graph.storage import factory
from mcp_knowledge_graph.storage.jsonl_storage import JsonlGraphStorage

pytestmark = pytest.mark.integration

EXPECTED_TOOLS = {
    "save_memory",
    "add_observations",
    "delete_entities",
    "delete_observations",
    "update_observation",
    "get_observation_history",
    "create_relations",
    "delete_relations",
    "read_graph",
    "search_nodes",
    "open_nodes",
    "query_nodes",
    "list_entities",
    "prune_memory",
    "bulk_update",
    "flag_for_review",
    "get_flagged_entities",
    "list_conversations",
    "get_memory_stats",
    "get_recent_changes",
    "find_relation_path",
    "detect_conflicts",
    "get_context",
    "get_analytics",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_tool_result(result) -> dict | str:
    """Parse a FastMCP CallToolResult into a dict (JSON) or a raw string (plain text)."""
    text = result.content[0].text
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return text


async def call(client, tool: str, arguments: dict | None = None):
    return parse_tool_result(await client.call_tool(tool, arguments or {}))


def entity(
    name: str, *targets: str, relation_type: str = "relates to", entity_type: str = "Service", observations=None
) -> dict:
    return {
        "name": name,
        "entityType": entity_type,
        "observations": observations or [f"{name} is part of the platform"],
        "relations": [{"targetEntity": target, "relationType": relation_type} for target in targets],
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def graph_storage(tmp_path, monkeypatch):
    """JSONL storage in a temp dir, injected into the server lifespan."""
    storage = JsonlGraphStorage(tmp_path / "memory")
    await storage.initialize()

    async def _create_storage():
        return storage

    monkeypatch.setattr(factory, "create_storage_instance", _create_storage)
    return storage


@pytest.fixture
async def mcp_client(graph_storage):
    """FastMCP in-process client wired to the test storage."""
    async with Client(mcp) as client:
        yield client


@pytest.fixture
async def platform(mcp_client):
    """A small graph: Api uses Db, Api calls Cache, all in thread t1."""
    result = await call(
        mcp_client,
        "save_memory",
        {
            "threadId": "t1",
            "entities": [
                entity("Api", "Db", relation_type="uses"),
                entity("Db", "Api"),
                entity("Cache", "Api", relation_type="serves", entity_type="Component"),
            ],
        },
    )
    assert result["success"] is True
    return mcp_client


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def test_all_tools_registered(mcp_client):
    tools = await mcp_client.list_tools()
    assert EXPECTED_TOOLS <= {tool.name for tool in tools}


async def test_relation_path_arguments_are_camel_case(mcp_client):
    tools = {tool.name: tool for tool in await mcp_client.list_tools()}
    assert set(tools["find_relation_path"].inputSchema["properties"]) == {"fromEntity", "toEntity", "maxDepth"}


# ---------------------------------------------------------------------------
# save_memory
# ---------------------------------------------------------------------------


class TestSaveMemory:
    async def test_self_loop(self, mcp_client):
        result = await call(
            mcp_client,
            "save_memory",
            {"threadId": "t1", "entities": [entity("A", "A", relation_type="self", observations=["x is true"])]},
        )

        assert result["success"] is True
        assert result["created"]["entities"] == 1
        assert result["created"]["relations"] == 2
        assert result["created"]["entity_names"] == ["A"]
        assert 0.0 <= result["quality_score"] <= 1.0

    async def test_validation_errors(self, mcp_client):
        result = await call(
            mcp_client,
            "save_memory",
            {"threadId": "t1", "entities": [entity("A", "A", observations=["x" * 301])]},
        )

        assert result["success"] is False
        (report,) = result["validation_errors"]
        assert report["entity_index"] == 0
        assert len(report["errors"]) == 1
        assert "too long" in report["errors"][0]

    async def test_missing_relation_and_target(self, mcp_client):
        result = await call(
            mcp_client,
            "save_memory",
            {"threadId": "t1", "entities": [entity("Lonely"), entity("Pointer", "Nowhere")]},
        )

        assert result["success"] is False
        reports = {r["entity_name"]: r["errors"] for r in result["validation_errors"]}
        assert "must have at least 1 relation" in reports["Lonely"][0]
        assert "'Nowhere' not found" in reports["Pointer"][0]

    async def test_invalid_arguments(self, mcp_client):
        result = await call(mcp_client, "save_memory", {"threadId": "t1", "entities": []})
        assert result["success"] is False

    async def test_thread_id_cannot_be_a_path(self, mcp_client):
        result = await call(mcp_client, "save_memory", {"threadId": "../escape", "entities": [entity("A", "A")]})
        assert result["success"] is False


# ---------------------------------------------------------------------------
# Entities, observations and relations
# ---------------------------------------------------------------------------


class TestGraphEditing:
    async def test_read_graph_contains_inverse_relations(self, platform):
        graph = await call(platform, "read_graph", {"threadId": "t1"})

        assert {e["name"] for e in graph["entities"]} == {"Api", "Db", "Cache"}
        keys = {(r["from"], r["to"], r["relationType"]) for r in graph["relations"]}
        assert ("Api", "Db", "uses") in keys
        assert ("Db", "Api", "used by") in keys
        assert ("Api", "Cache", "serves (inverse)") in keys

    async def test_add_and_delete_observations(self, platform):
        added = await call(
            platform,
            "add_observations",
            {
                "threadId": "t1",
                "observations": [
                    {"entityName": "Api", "contents": ["Uses TLS 1.3"], "confidence": 0.9, "importance": 0.6}
                ],
            },
        )
        assert added["success"] is True
        assert added["results"][0]["addedObservations"][0]["content"] == "Uses TLS 1.3"

        await call(
            platform,
            "delete_observations",
            {"threadId": "t1", "deletions": [{"entityName": "Api", "observations": ["Uses TLS 1.3"]}]},
        )
        opened = await call(platform, "open_nodes", {"names": ["Api"]})
        assert [o["content"] for o in opened["entities"][0]["observations"]] == ["Api is part of the platform"]

    async def test_add_observations_to_unknown_entity(self, platform):
        result = await call(
            platform,
            "add_observations",
            {
                "threadId": "t1",
                "observations": [{"entityName": "Ghost", "contents": ["Boo"], "confidence": 0.5, "importance": 0.5}],
            },
        )
        assert result["success"] is False
        assert "Ghost" in result["error"]

    async def test_update_observation_and_history(self, platform):
        opened = await call(platform, "open_nodes", {"names": ["Db"]})
        original_id = opened["entities"][0]["observations"][0]["id"]

        updated = await call(
            platform,
            "update_observation",
            {
                "entityName": "Db",
                "observationId": original_id,
                "newContent": "Db runs PostgreSQL 16",
                "agentThreadId": "t2",
            },
        )
        assert updated["success"] is True
        assert updated["updatedObservation"]["version"] == 2

        history = await call(platform, "get_observation_history", {"entityName": "Db", "observationId": original_id})
        assert [o["version"] for o in history["history"]] == [1, 2]

        again = await call(
            platform,
            "update_observation",
            {"entityName": "Db", "observationId": original_id, "newContent": "Db runs MySQL", "agentThreadId": "t2"},
        )
        assert again["success"] is False
        assert "superseded" in again["error"]

    async def test_delete_entities_cascades(self, platform):
        await call(platform, "delete_entities", {"threadId": "t1", "entityNames": ["Api"]})

        graph = await call(platform, "read_graph", {"threadId": "t1"})
        assert {e["name"] for e in graph["entities"]} == {"Db", "Cache"}
        assert graph["relations"] == []

    async def test_create_and_delete_relations(self, platform):
        created = await call(
            platform,
            "create_relations",
            {"threadId": "t1", "relations": [{"from": "Cache", "to": "Db", "relationType": "mirrors"}]},
        )
        assert [r["relationType"] for r in created["relations"]] == ["mirrors"]

        other_thread = await call(
            platform,
            "delete_relations",
            {"threadId": "t2", "relations": [{"from": "Cache", "to": "Db", "relationType": "mirrors"}]},
        )
        assert other_thread["removed"] == 0

        removed = await call(
            platform, "delete_relations", {"relations": [{"from": "Cache", "to": "Db", "relationType": "mirrors"}]}
        )
        assert removed["removed"] == 1

    async def test_create_relations_rejects_unsafe_thread_override(self, platform, graph_storage, tmp_path):
        result = await call(
            platform,
            "create_relations",
            {
                "threadId": "t1",
                "relations": [{"from": "Cache", "to": "Db", "relationType": "mirrors", "agentThreadId": "evil/../x"}],
            },
        )

        assert result["success"] is False
        assert sorted(p.name for p in graph_storage.memory_dir.iterdir()) == ["thread-t1.jsonl"]
        assert not (tmp_path / "x.jsonl").exists()


# ---------------------------------------------------------------------------
# Queries and analysis
# ---------------------------------------------------------------------------


class TestQueries:
    async def test_search_and_list(self, platform):
        found = await call(platform, "search_nodes", {"query": "component"})
        assert [e["name"] for e in found["entities"]] == ["Cache"]

        listed = await call(platform, "list_entities", {"threadId": "t1", "entityType": "Service"})
        assert {e["name"] for e in listed["entities"]} == {"Api", "Db"}

    async def test_query_nodes_ranges(self, platform):
        result = await call(platform, "query_nodes", {"importanceMin": 0.5, "importanceMax": 0.5})
        assert len(result["entities"]) == 3

        invalid = await call(platform, "query_nodes", {"importanceMin": 0.9, "importanceMax": 0.1})
        assert invalid["success"] is False

    async def test_find_relation_path(self, platform):
        result = await call(platform, "find_relation_path", {"fromEntity": "Cache", "toEntity": "Db"})
        assert result["found"] is True
        assert result["path"][0] == "Cache"
        assert result["path"][-1] == "Db"

    async def test_stats_context_and_analytics(self, platform):
        stats = await call(platform, "get_memory_stats", {"threadId": "t1"})
        assert stats["entityCount"] == 3
        assert stats["entityTypes"] == {"Service": 2, "Component": 1}

        context = await call(platform, "get_context", {"threadId": "t1", "entityNames": ["Cache"]})
        assert {e["name"] for e in context["entities"]} == {"Cache", "Api"}

        analytics = await call(platform, "get_analytics", {"threadId": "t1"})
        assert analytics["most_connected"][0]["entityName"] == "Api"
        assert analytics["orphaned_entities"] == []

        changes = await call(platform, "get_recent_changes", {"threadId": "t1", "since": "2000-01-01T00:00:00Z"})
        assert len(changes["entities"]) == 3

    async def test_detect_conflicts(self, mcp_client):
        await call(
            mcp_client,
            "save_memory",
            {
                "threadId": "t1",
                "entities": [
                    entity(
                        "Api",
                        "Api",
                        observations=["Api supports streaming uploads", "Api does not support streaming uploads"],
                    )
                ],
            },
        )

        result = await call(mcp_client, "detect_conflicts")

        assert [c["entityName"] for c in result["conflicts"]] == ["Api"]


# ---------------------------------------------------------------------------
# Maintenance and collaboration
# ---------------------------------------------------------------------------


class TestMaintenance:
    async def test_bulk_update_then_prune(self, platform):
        bulk = await call(
            platform,
            "bulk_update",
            {"updates": [{"entityName": "Cache", "importance": 0.05}, {"entityName": "Ghost", "importance": 0.9}]},
        )
        assert bulk["updated"] == 1
        assert bulk["notFound"] == ["Ghost"]

        pruned = await call(platform, "prune_memory", {"importanceLessThan": 0.1})
        assert pruned["success"] is True
        assert pruned["removedEntities"] == 1
        assert pruned["removedRelations"] == 2

    async def test_invalid_prune_cutoff(self, platform):
        result = await call(platform, "prune_memory", {"olderThan": "last tuesday"})
        assert result["success"] is False

    async def test_flags_and_conversations(self, platform):
        flagged = await call(
            platform, "flag_for_review", {"entityName": "Db", "reason": "Version unclear", "reviewer": "dana"}
        )
        assert flagged["success"] is True

        entities = await call(platform, "get_flagged_entities")
        assert [e["name"] for e in entities["entities"]] == ["Db"]
        assert "Reviewer: dana" in entities["entities"][0]["observations"][-1]["content"]

        conversations = await call(platform, "list_conversations")
        assert conversations["conversations"][0]["agentThreadId"] == "t1"
        assert conversations["conversations"][0]["entityCount"] == 3

    async def test_flag_unknown_entity(self, mcp_client):
        result = await call(mcp_client, "flag_for_review", {"entityName": "Ghost", "reason": "Check"})
        assert result["success"] is False
