"""Exceptions raised by knowledge graph operations.

Not-found and superseded conditions are raised at the operation call site;
the tool layer turns them into ``{"success": False, "error": str(e)}``.
Validation problems in save requests are collected, never raised.
"""


class KnowledgeGraphError(Exception):
    """Base class for knowledge graph operation errors."""


class EntityNotFoundError(KnowledgeGraphError, LookupError):
    """The named entity does not exist (or does not belong to the thread)."""

    def __init__(self, entity_name: str, thread_id: str | None = None):
        self.entity_name = entity_name
        self.thread_id = thread_id
        if thread_id is None:
            message = f"Entity '{entity_name}' not found"
        else:
            message = f"Entity '{entity_name}' not found in thread '{thread_id}'"
        super().__init__(message)


class ObservationNotFoundError(KnowledgeGraphError, LookupError):
    """The observation id does not exist on the entity."""

    def __init__(self, observation_id: str, entity_name: str):
        self.observation_id = observation_id
        self.entity_name = entity_name
        super().__init__(f"Observation '{observation_id}' not found in entity '{entity_name}'")


class ObservationSupersededError(KnowledgeGraphError, ValueError):
    """Only the head of a version chain may be updated."""

    def __init__(self, observation_id: str, superseded_by: str):
        self.observation_id = observation_id
        self.superseded_by = superseded_by
        super().__init__(
            f"Observation '{observation_id}' has already been superseded by '{superseded_by}'. "
            "Update the latest version instead."
        )


class InvalidThreadIdError(KnowledgeGraphError, ValueError):
    """The thread id cannot name a shard file inside the memory directory."""

    def __init__(self, thread_id: str):
        self.thread_id = thread_id
        super().__init__(f"Invalid agent thread id '{thread_id}': path separators are not allowed")
