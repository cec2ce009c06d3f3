"""
Knowledge graph memory service.

A persistent, collaborative knowledge graph of entities, versioned
observations and typed relations, sharded per agent thread and exposed as
MCP tools.
"""

__version__ = "0.1.0"
