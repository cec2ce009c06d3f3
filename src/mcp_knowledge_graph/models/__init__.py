"""Pydantic models for the knowledge graph."""
