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
Storage backend factory for the knowledge graph.

Creates and initializes the configured storage backend.
"""

import logging

from .base import GraphStorage
from .jsonl_storage import JsonlGraphStorage

logger = logging.getLogger(__name__)


async def create_storage_instance() -> GraphStorage:
    """
    Create and initialize the configured storage backend instance.

    Returns:
        Initialized GraphStorage instance
    """
    from ..config import settings

    memory_dir = settings.storage.memory_dir
    logger.info(f"Creating {settings.storage.backend} storage backend at {memory_dir}")

    storage = JsonlGraphStorage(memory_dir)
    await storage.initialize()
    return storage
