"""
Configuration for the knowledge graph memory service.

Settings are read from the environment via pydantic-settings. Each concern
gets its own settings class and env prefix; ``settings`` aggregates them:

    MEMORY_DIR_PATH                     -> settings.storage.dir_path
    MCP_KG_VALIDATION_MAX_SENTENCES     -> settings.validation.max_sentences
    MCP_KG_GRAPH_ARCHIVE_THRESHOLD      -> settings.graph.archive_threshold
    MCP_KG_LOG_LEVEL                    -> settings.server.log_level
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Relative MEMORY_DIR_PATH values are resolved against the package directory
PACKAGE_ROOT = Path(__file__).resolve().parent
DEFAULT_MEMORY_DIR = PACKAGE_ROOT / "memory-data"


class StorageSettings(BaseSettings):
    """Where and how the graph is persisted."""

    model_config = SettingsConfigDict(env_prefix="MEMORY_", extra="ignore")

    dir_path: Path | None = None
    backend: Literal["jsonl"] = "jsonl"

    @property
    def memory_dir(self) -> Path:
        """Resolved memory directory (absolute)."""
        if self.dir_path is None:
            return DEFAULT_MEMORY_DIR
        if self.dir_path.is_absolute():
            return self.dir_path
        return PACKAGE_ROOT / self.dir_path


class ValidationSettings(BaseSettings):
    """Limits enforced by the save_memory validation engine and quality scorer."""

    model_config = SettingsConfigDict(env_prefix="MCP_KG_VALIDATION_", extra="ignore")

    min_observation_length: int = Field(default=5, ge=1)
    max_observation_length: int = Field(default=150, ge=1)
    max_sentences: int = Field(default=3, ge=1)
    observation_preview_length: int = Field(default=50, ge=1)

    # Quality score: 0.7 * relation score + 0.3 * atomicity score
    target_avg_relations: float = Field(default=2.0, gt=0.0)
    relation_score_weight: float = Field(default=0.7, ge=0.0, le=1.0)
    observation_score_weight: float = Field(default=0.3, ge=0.0, le=1.0)

    default_entity_confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    default_entity_importance: float = Field(default=0.5, ge=0.0, le=1.0)
    default_relation_importance: float = Field(default=0.7, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def check_observation_bounds(self) -> "ValidationSettings":
        if self.min_observation_length > self.max_observation_length:
            raise ValueError("min_observation_length must not exceed max_observation_length")
        return self


class GraphSettings(BaseSettings):
    """Read-path and analysis tuning."""

    model_config = SettingsConfigDict(env_prefix="MCP_KG_GRAPH_", extra="ignore")

    # Items below this importance are decorated ARCHIVED on read
    archive_threshold: float = Field(default=0.1, ge=0.0, le=1.0)
    default_min_importance: float = Field(default=0.1, ge=0.0, le=1.0)
    default_path_depth: int = Field(default=5, ge=1)
    analytics_limit: int = Field(default=10, ge=1)
    recent_activity_days: int = Field(default=7, ge=1)


class ServerSettings(BaseSettings):
    """Tool server settings."""

    model_config = SettingsConfigDict(env_prefix="MCP_KG_", extra="ignore")

    server_name: str = "Knowledge Graph Memory"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    transport: Literal["stdio", "http"] = "stdio"
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)


class Settings(BaseSettings):
    """Aggregate of all settings groups."""

    model_config = SettingsConfigDict(extra="ignore")

    storage: StorageSettings = Field(default_factory=StorageSettings)
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    graph: GraphSettings = Field(default_factory=GraphSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


settings = Settings()
