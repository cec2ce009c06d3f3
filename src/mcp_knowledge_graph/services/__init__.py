"""Graph operations and the manager that persists them."""

from .knowledge_graph import KnowledgeGraphManager

__all__ = ["KnowledgeGraphManager"]
