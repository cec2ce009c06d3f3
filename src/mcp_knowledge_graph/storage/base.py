# Copyright 2024 Heinrich Krupp
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Abstract storage interface for the knowledge graph.

Backends persist the whole graph: ``load_graph`` returns every entity and
relation, ``save_graph`` replaces the stored graph with the one given.
"""

from abc import ABC, abstractmethod

from ..models.graph import KnowledgeGraph


class GraphStorage(ABC):
    """Abstract base class for knowledge graph storage backends."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create any backing resources. Safe to call more than once."""

    @abstractmethod
    async def load_graph(self) -> KnowledgeGraph:
        """
        Load the complete graph.

        Malformed stored records are skipped with a warning; a missing store
        loads as an empty graph.
        """

    @abstractmethod
    async def save_graph(self, graph: KnowledgeGraph) -> None:
        """
        Persist ``graph`` as the complete stored state.

        Anything not present in ``graph`` is removed from the store.
        """
