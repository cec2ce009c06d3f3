"""Unit tests for configuration settings."""

from pathlib import Path

import pytest

from mcp_knowledge_graph.config import (
    DEFAULT_MEMORY_DIR,
    PACKAGE_ROOT,
    GraphSettings,
    ServerSettings,
    StorageSettings,
    ValidationSettings,
    settings,
)
from mcp_knowledge_graph.storage import factory
from mcp_knowledge_graph.storage.jsonl_storage import JsonlGraphStorage


class TestStorageSettings:
    """Test StorageSettings and memory directory resolution."""

    def test_default_directory(self, monkeypatch):
        """Without MEMORY_DIR_PATH the package-local directory is used."""
        monkeypatch.delenv("MEMORY_DIR_PATH", raising=False)
        assert StorageSettings().memory_dir == DEFAULT_MEMORY_DIR

    def test_absolute_path(self, monkeypatch, tmp_path):
        """Test environment variable MEMORY_DIR_PATH with an absolute path."""
        monkeypatch.setenv("MEMORY_DIR_PATH", str(tmp_path))
        assert StorageSettings().memory_dir == tmp_path

    def test_relative_path_resolves_against_package(self, monkeypatch):
        monkeypatch.setenv("MEMORY_DIR_PATH", "custom-memory")
        assert StorageSettings().memory_dir == PACKAGE_ROOT / Path("custom-memory")


class TestValidationSettings:
    """Test ValidationSettings defaults and constraints."""

    def test_default_values(self):
        settings = ValidationSettings()

        assert settings.min_observation_length == 5
        assert settings.max_observation_length == 150
        assert settings.max_sentences == 3
        assert settings.relation_score_weight == 0.7
        assert settings.observation_score_weight == 0.3

    def test_env_prefix(self, monkeypatch):
        """Test environment variable prefix MCP_KG_VALIDATION_."""
        monkeypatch.setenv("MCP_KG_VALIDATION_MAX_SENTENCES", "5")
        assert ValidationSettings().max_sentences == 5

    def test_validation_constraints(self):
        with pytest.raises(ValueError):
            ValidationSettings(max_sentences=0)
        with pytest.raises(ValueError):
            ValidationSettings(min_observation_length=200, max_observation_length=150)


class TestGraphAndServerSettings:
    def test_graph_defaults(self):
        settings = GraphSettings()
        assert settings.archive_threshold == 0.1
        assert settings.default_path_depth == 5

    def test_server_env(self, monkeypatch):
        """Test environment variable prefix MCP_KG_ for the server."""
        monkeypatch.setenv("MCP_KG_TRANSPORT", "http")
        monkeypatch.setenv("MCP_KG_PORT", "9001")

        settings = ServerSettings()

        assert settings.transport == "http"
        assert settings.port == 9001

    def test_unknown_transport_rejected(self):
        with pytest.raises(ValueError):
            ServerSettings(transport="carrier-pigeon")


class TestStorageFactory:
    @pytest.mark.asyncio
    async def test_creates_initialized_jsonl_storage(self, monkeypatch, tmp_path):
        monkeypatch.setattr(settings.storage, "dir_path", tmp_path / "shards")

        storage = await factory.create_storage_instance()

        assert isinstance(storage, JsonlGraphStorage)
        assert (tmp_path / "shards").is_dir()
