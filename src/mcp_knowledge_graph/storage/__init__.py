"""Storage backends for the knowledge graph."""

from .base import GraphStorage
from .factory import create_storage_instance
from .jsonl_storage import JsonlGraphStorage

__all__ = ["GraphStorage", "JsonlGraphStorage", "create_storage_instance"]
