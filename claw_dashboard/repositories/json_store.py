"""Atomic JSON collection persistence.

A collection is one JSON document on disk (the task list, the cron job
store).  Reads are tolerant: a missing or corrupt document loads as the
collection's default value.  Writes go through a temp file and an atomic
rename, and every read-modify-write cycle runs under a per-collection lock
so concurrent requests in this process cannot lose each other's updates.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable

from ..errors import StorageError
from .storage import StorageRepository

logger = logging.getLogger("claw_dashboard.repositories.json_store")


class JsonCollectionStore:
    def __init__(
        self,
        storage: StorageRepository,
        path: str,
        default_factory: Callable[[], Any],
    ):
        self.storage = storage
        self.path = path
        self.default_factory = default_factory
        self._lock = asyncio.Lock()

    async def load(self) -> Any:
        """Return the stored collection, or a fresh default if it cannot be read."""
        default = self.default_factory()
        try:
            if not await self.storage.exists(self.path):
                return default
            raw = await self.storage.read_text(self.path)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read %s, using empty collection: %s", self.path, exc)
            return default

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Corrupt collection %s, using empty collection: %s", self.path, exc)
            return default

        if not isinstance(data, type(default)):
            logger.warning(
                "Unexpected document type in %s (%s), using empty collection",
                self.path, type(data).__name__,
            )
            return default
        return data

    async def save(self, data: Any) -> None:
        try:
            content = json.dumps(data, indent=2, ensure_ascii=False)
            await self.storage.write_text_atomic(self.path, content)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Failed to write %s: %s", self.path, exc)
            raise StorageError(f"Failed to write {self.path}: {exc}") from exc

    @asynccontextmanager
    async def mutate(self) -> AsyncIterator[Any]:
        """Load, let the caller mutate in place, then save.

        Nothing is written when the block raises, so a rejected request
        leaves the document byte-identical.
        """
        async with self._lock:
            data = await self.load()
            yield data
            await self.save(data)


def task_collection(storage: StorageRepository, path: str) -> JsonCollectionStore:
    return JsonCollectionStore(storage, path, list)


def cron_collection(storage: StorageRepository, path: str) -> JsonCollectionStore:
    return JsonCollectionStore(storage, path, lambda: {"version": 1, "jobs": []})
