"""Knowledge graph data models.

Pydantic v2 models for observations, entities, relations and the graph
container. Python attributes are snake_case; the storage and wire format
keeps the camelCase names (``entityType``, ``agentThreadId``, ...) via
aliases.

``status`` is a read-time decoration only: ``to_record()`` never writes it
and ``from_record()`` never trusts it.
"""

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .validators import ArchiveStatus, NonEmptyStr, PositiveInt, ThreadId, UnitFloat

OBSERVATION_ID_PREFIX = "obs_"

# Keys a stored record may carry that are not model fields
_RECORD_ONLY_KEYS = frozenset({"type", "status"})


def new_observation_id() -> str:
    """Generate a fresh, never-reused observation id."""
    return f"{OBSERVATION_ID_PREFIX}{uuid.uuid4()}"


def _strip_record_keys(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k not in _RECORD_ONLY_KEYS}


class _GraphRecord(BaseModel):
    """Common behaviour for persisted graph records."""

    model_config = ConfigDict(populate_by_name=True)

    status: ArchiveStatus | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire-format dictionary (camelCase, includes ``status`` when decorated)."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_record(self) -> dict[str, Any]:
        """Storage dictionary; ``status`` is never persisted."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"status"})

    def without_status(self):
        """Copy with any ``status`` decoration removed."""
        return self.model_copy(update={"status": None})


class Observation(_GraphRecord):
    """A single atomic, versioned fact attached to an entity."""

    id: NonEmptyStr = Field(default_factory=new_observation_id)
    content: str
    timestamp: NonEmptyStr
    version: PositiveInt = 1
    agent_thread_id: ThreadId = Field(alias="agentThreadId")
    # None means "inherit from the owning entity"
    confidence: UnitFloat | None = None
    importance: UnitFloat | None = None
    supersedes: str | None = None
    superseded_by: str | None = None

    @property
    def is_current(self) -> bool:
        """True when no later version replaces this observation."""
        return not self.superseded_by

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Observation":
        return cls.model_validate(_strip_record_keys(data))


class Entity(_GraphRecord):
    """A named node in the graph; names are unique across all threads."""

    name: NonEmptyStr
    entity_type: NonEmptyStr = Field(alias="entityType")
    observations: list[Observation] = Field(default_factory=list)
    agent_thread_id: ThreadId = Field(alias="agentThreadId")
    timestamp: NonEmptyStr
    confidence: UnitFloat
    importance: UnitFloat

    def to_record(self) -> dict[str, Any]:
        data = super().to_record()
        data["observations"] = [obs.to_record() for obs in self.observations]
        return data

    def without_status(self) -> "Entity":
        return self.model_copy(
            update={
                "status": None,
                "observations": [obs.without_status() for obs in self.observations],
            }
        )

    def find_observation(self, observation_id: str) -> Observation | None:
        return next((obs for obs in self.observations if obs.id == observation_id), None)

    def current_contents(self) -> set[str]:
        """Contents of all unsuperseded observations."""
        return {obs.content for obs in self.observations if obs.is_current}

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Entity":
        payload = _strip_record_keys(data)
        observations = payload.get("observations")
        if isinstance(observations, list):
            payload["observations"] = [
                _strip_record_keys(obs) if isinstance(obs, dict) else obs for obs in observations
            ]
        return cls.model_validate(payload)


RelationKey = tuple[str, str, str]


class Relation(_GraphRecord):
    """A typed, directed edge between two entities."""

    from_: NonEmptyStr = Field(alias="from")
    to: NonEmptyStr
    relation_type: NonEmptyStr = Field(alias="relationType")
    agent_thread_id: ThreadId = Field(alias="agentThreadId")
    timestamp: NonEmptyStr
    confidence: UnitFloat
    importance: UnitFloat

    @property
    def key(self) -> RelationKey:
        """Global deduplication key: (from, to, relationType)."""
        return (self.from_, self.to, self.relation_type)

    def touches(self, names: set[str]) -> bool:
        return self.from_ in names or self.to in names

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Relation":
        return cls.model_validate(_strip_record_keys(data))


class KnowledgeGraph(BaseModel):
    """Entities keyed by name and relations keyed by (from, to, relationType)."""

    entities: list[Entity] = Field(default_factory=list)
    relations: list[Relation] = Field(default_factory=list)

    def entity_names(self) -> set[str]:
        return {entity.name for entity in self.entities}

    def relation_keys(self) -> set[RelationKey]:
        return {relation.key for relation in self.relations}

    def get_entity(self, name: str, thread_id: str | None = None) -> Entity | None:
        """First entity named ``name`` (optionally restricted to ``thread_id``)."""
        for entity in self.entities:
            if entity.name == name and (thread_id is None or entity.agent_thread_id == thread_id):
                return entity
        return None

    def subgraph(self, entities: list[Entity]) -> "KnowledgeGraph":
        """Graph of ``entities`` plus the relations whose endpoints both survived."""
        names = {entity.name for entity in entities}
        relations = [r for r in self.relations if r.from_ in names and r.to in names]
        return KnowledgeGraph(entities=entities, relations=relations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entities": [entity.to_dict() for entity in self.entities],
            "relations": [relation.to_dict() for relation in self.relations],
        }
