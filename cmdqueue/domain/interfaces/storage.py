"""Interface for durable key-value storage.

The rate limiter persists its per-caller timestamp lists through this
narrow get/set contract. No transactional read-modify-write is assumed.
"""

import abc
from typing import Any, Optional

from cmdqueue.domain.models.common import StorageKey


class KeyValueStore(abc.ABC):
    """Abstract Base Class for key-value persistence."""

    @abc.abstractmethod
    async def get(self, key: StorageKey) -> Optional[Any]:
        """Retrieves the value stored under key, or None if absent."""
        pass

    @abc.abstractmethod
    async def set(self, key: StorageKey, value: Any) -> None:
        """Stores value under key, replacing any previous value."""
        pass
