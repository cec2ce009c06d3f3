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
JSONL storage backend for the knowledge graph.

Each agent thread is stored in its own shard ``thread-<agentThreadId>.jsonl``
inside the memory directory. Every non-empty line is one JSON object tagged
with ``"type": "entity"`` or ``"type": "relation"``.

Loading merges all shards. Saving regroups the graph by thread, rewrites
each shard in full (temp file + ``os.replace``) and removes shards whose
thread no longer has any data.
"""

import asyncio
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..errors import InvalidThreadIdError
from ..models.graph import Entity, KnowledgeGraph, Relation
from .base import GraphStorage

logger = logging.getLogger(__name__)

SHARD_PREFIX = "thread-"
SHARD_SUFFIX = ".jsonl"
_SHARD_PATTERN = re.compile(r"^thread-(.+)\.jsonl$")
_PATH_SEPARATORS = {"/", "\\", os.sep}


class JsonlGraphStorage(GraphStorage):
    """File-per-thread JSON Lines storage."""

    def __init__(self, memory_dir: str | Path):
        """
        Initialize JSONL storage.

        Args:
            memory_dir: Directory holding the thread shards (created on initialize)
        """
        self.memory_dir = Path(memory_dir)
        self._initialized = False

    def shard_path(self, agent_thread_id: str) -> Path:
        """
        Path of the shard file for ``agent_thread_id``.

        Raises:
            InvalidThreadIdError: the id would place the shard outside ``memory_dir``
        """
        if not agent_thread_id or any(sep in agent_thread_id for sep in _PATH_SEPARATORS):
            raise InvalidThreadIdError(agent_thread_id)
        return self.memory_dir / f"{SHARD_PREFIX}{agent_thread_id}{SHARD_SUFFIX}"

    async def initialize(self) -> None:
        if self._initialized:
            logger.debug("JsonlGraphStorage already initialized")
            return
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, lambda: self.memory_dir.mkdir(parents=True, exist_ok=True))
        self._initialized = True
        logger.info(f"JSONL graph storage initialized at {self.memory_dir}")

    async def load_graph(self) -> KnowledgeGraph:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._load_graph_sync)

    async def save_graph(self, graph: KnowledgeGraph) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._save_graph_sync, graph)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _list_shards(self) -> list[Path]:
        try:
            names = os.listdir(self.memory_dir)
        except FileNotFoundError:
            return []
        return [self.memory_dir / name for name in sorted(names) if _SHARD_PATTERN.match(name)]

    def _load_graph_sync(self) -> KnowledgeGraph:
        graph = KnowledgeGraph()
        for shard in self._list_shards():
            entities, relations = self._load_shard(shard)
            graph.entities.extend(entities)
            graph.relations.extend(relations)
        logger.debug(f"Loaded {len(graph.entities)} entities and {len(graph.relations)} relations")
        return graph

    def _load_shard(self, path: Path) -> tuple[list[Entity], list[Relation]]:
        entities: list[Entity] = []
        relations: list[Relation] = []
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return entities, relations

        for line_number, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                item = json.loads(line)
            except json.JSONDecodeError:
                logger.warning(
                    f"Skipping malformed JSON line {line_number} in {path} (line length: {len(line)} chars)"
                )
                continue
            if not isinstance(item, dict):
                logger.warning(f"Skipping non-object line {line_number} in {path}")
                continue

            record_type = item.get("type")
            try:
                if record_type == "entity":
                    entities.append(Entity.from_record(item))
                elif record_type == "relation":
                    relations.append(Relation.from_record(item))
                else:
                    logger.warning(f"Skipping line {line_number} in {path} with unknown type {record_type!r}")
            except ValidationError as e:
                logger.warning(
                    f"Skipping {record_type} with missing or invalid fields at line {line_number} in {path}: "
                    f"{e.error_count()} error(s)"
                )
        return entities, relations

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def _save_graph_sync(self, graph: KnowledgeGraph) -> None:
        by_thread: dict[str, list[dict[str, Any]]] = {}
        for entity in graph.entities:
            by_thread.setdefault(entity.agent_thread_id, []).append({"type": "entity", **entity.to_record()})
        for relation in graph.relations:
            by_thread.setdefault(relation.agent_thread_id, []).append({"type": "relation", **relation.to_record()})

        # Resolve every shard path before writing any of them
        shards = [(self.shard_path(thread_id), records) for thread_id, records in by_thread.items()]
        self.memory_dir.mkdir(parents=True, exist_ok=True)
        for path, records in shards:
            self._write_shard(path, records)

        self._remove_stale_shards(set(by_thread))

    def _write_shard(self, path: Path, records: list[dict[str, Any]]) -> None:
        payload = "".join(json.dumps(record, ensure_ascii=False) + "\n" for record in records)
        fd, tmp_name = tempfile.mkstemp(dir=self.memory_dir, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            # Leave the previous shard untouched
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug(f"Wrote {len(records)} records to {path.name}")

    def _remove_stale_shards(self, live_threads: set[str]) -> None:
        for shard in self._list_shards():
            match = _SHARD_PATTERN.match(shard.name)
            if match is None or match.group(1) in live_threads:
                continue
            try:
                shard.unlink()
                logger.debug(f"Removed stale shard {shard.name}")
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Failed to delete stale thread file {shard}: {e}")
