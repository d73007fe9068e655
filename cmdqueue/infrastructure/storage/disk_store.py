"""Disk-backed key-value store built on diskcache.

Holds the only state that outlives a single command execution: the
rate limiter's per-caller timestamp records.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional, Union

import diskcache as dc

from cmdqueue.domain.interfaces.storage import KeyValueStore
from cmdqueue.domain.models.common import StorageKey

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_DIR = Path.home() / ".cmdqueue" / "state"

class DiskKeyValueStore(KeyValueStore):
    """KeyValueStore implementation over a diskcache.Cache directory."""

    def __init__(self, directory: Union[str, Path] = DEFAULT_STORAGE_DIR, timeout: float = 1):
        """Opens (or creates) the cache directory.

        Args:
            directory: Directory holding the cache database.
            timeout: SQLite lock timeout in seconds.
        """
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.cache = dc.Cache(str(self.directory), timeout=timeout)
        logger.info(f"Initialized key-value store at: {self.cache.directory}")

    # diskcache is synchronous; run it off the event loop
    async def get(self, key: StorageKey) -> Optional[Any]:
        value = await asyncio.to_thread(self.cache.get, key)
        logger.debug(f"Store {'HIT' if value is not None else 'MISS'} for key: {key}")
        return value

    async def set(self, key: StorageKey, value: Any) -> None:
        await asyncio.to_thread(self.cache.set, key, value)
        logger.debug(f"Stored value for key: {key}")

    def close(self) -> None:
        self.cache.close()
