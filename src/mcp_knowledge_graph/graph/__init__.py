"""
Graph primitives shared by the knowledge graph services.

- RelationInverter: relation type -> inverse relation type registry
- versioning: observation supersede chains and history traversal
"""

from .relation_inverter import DEFAULT_INVERSE_PAIRS, RelationInverter
from .versioning import get_observation_history, supersede_observation

__all__ = [
    "DEFAULT_INVERSE_PAIRS",
    "RelationInverter",
    "get_observation_history",
    "supersede_observation",
]
