"""Per-caller sliding window rate limiter.

Controls how many commands each caller may put on the remote queue, using
two rolling windows (per minute and per hour) over a persisted list of
submission timestamps.

The read-modify-write on the persisted record is not locked: two admits
racing for the same caller can both observe capacity and both be admitted.
The limit is therefore soft under concurrency.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from cmdqueue.domain.events.api_events import CommandRateLimited
from cmdqueue.domain.interfaces.storage import KeyValueStore
from cmdqueue.domain.models.common import CallerId, RateLimitRecord, StorageKey, TimestampMs
from cmdqueue.domain.models.request import RateLimitDecision, RateLimitStatus
from cmdqueue.infrastructure.monitoring.logger_setup import log_with_context

logger = logging.getLogger(__name__)

DEFAULT_MAX_PER_MINUTE = 5
DEFAULT_MAX_PER_HOUR = 50
MINUTE_WINDOW_SECONDS = 60
HOUR_WINDOW_SECONDS = 3600

# Shared identity used when a caller cannot be identified
FALLBACK_CALLER_ID = "anonymous"
STORAGE_KEY_PREFIX = "rate_limit:"

@dataclass(frozen=True)
class RateLimitConfig:
    """Limits and window lengths of the two sliding windows."""
    per_minute: int = DEFAULT_MAX_PER_MINUTE
    per_hour: int = DEFAULT_MAX_PER_HOUR
    minute_window_seconds: int = MINUTE_WINDOW_SECONDS
    hour_window_seconds: int = HOUR_WINDOW_SECONDS

    @property
    def minute_window_ms(self) -> int:
        return self.minute_window_seconds * 1000

    @property
    def hour_window_ms(self) -> int:
        return self.hour_window_seconds * 1000

@dataclass(frozen=True)
class WindowSnapshot:
    """Pruned timestamps and per-window counts at one instant."""
    timestamps: List[TimestampMs]
    minute_count: int
    hour_count: int
    oldest_in_minute: Optional[TimestampMs]
    oldest_in_hour: Optional[TimestampMs]

def compute_window(timestamps: List[TimestampMs], now_ms: TimestampMs, config: RateLimitConfig) -> WindowSnapshot:
    """Drops entries older than the hour window and counts both windows."""
    hour_start = now_ms - config.hour_window_ms
    minute_start = now_ms - config.minute_window_ms
    pruned = [ts for ts in timestamps if ts > hour_start]
    in_minute = [ts for ts in pruned if ts > minute_start]
    return WindowSnapshot(
        timestamps=pruned,
        minute_count=len(in_minute),
        hour_count=len(pruned),
        oldest_in_minute=min(in_minute) if in_minute else None,
        oldest_in_hour=min(pruned) if pruned else None,
    )

def seconds_until_free(oldest_ms: Optional[TimestampMs], window_ms: int, now_ms: TimestampMs) -> int:
    """Whole seconds until oldest_ms leaves its window (at least 1)."""
    if oldest_ms is None:
        return 1
    return max(1, math.ceil((oldest_ms + window_ms - now_ms) / 1000))

def _coerce_timestamps(raw: Any) -> List[TimestampMs]:
    if isinstance(raw, dict):
        raw = raw.get('request_timestamps')
    if not isinstance(raw, list):
        return []
    return [TimestampMs(int(ts)) for ts in raw if isinstance(ts, (int, float))]

class RateLimiter:
    """Dual sliding window rate limiter keyed by caller identity."""

    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[RateLimitConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initializes the rate limiter.

        Args:
            store: Persistence for per-caller timestamp records.
            config: Window limits. Defaults to 5/minute and 50/hour.
            clock: Returns the current time in seconds since epoch.
        """
        self.store = store
        self.config = config or RateLimitConfig()
        self._clock = clock
        logger.info(
            f"RateLimiter initialized: {self.config.per_minute} requests / {self.config.minute_window_seconds}s, "
            f"{self.config.per_hour} requests / {self.config.hour_window_seconds}s"
        )

    def _now_ms(self) -> TimestampMs:
        return TimestampMs(int(self._clock() * 1000))

    @staticmethod
    def resolve_caller(caller_id: Optional[str]) -> CallerId:
        return CallerId(caller_id or FALLBACK_CALLER_ID)

    @staticmethod
    def storage_key(caller_id: CallerId) -> StorageKey:
        return StorageKey(f"{STORAGE_KEY_PREFIX}{caller_id}")

    async def _load(self, caller_id: CallerId) -> List[TimestampMs]:
        return _coerce_timestamps(await self.store.get(self.storage_key(caller_id)))

    async def _save(self, caller_id: CallerId, timestamps: List[TimestampMs]) -> None:
        record = RateLimitRecord(caller_id=caller_id, request_timestamps=timestamps)
        await self.store.set(self.storage_key(caller_id), record)

    def _remaining(self, snapshot: WindowSnapshot) -> dict:
        return {
            'minute': max(0, self.config.per_minute - snapshot.minute_count),
            'hour': max(0, self.config.per_hour - snapshot.hour_count),
        }

    def _deny(self, caller_id: CallerId, limit_type: str, retry_after: int, snapshot: WindowSnapshot) -> RateLimitDecision:
        log_with_context(logger, logging.WARNING, "Rate limit exceeded",
                         CommandRateLimited(caller_id=caller_id, limit_type=limit_type,
                                            retry_after_seconds=retry_after))
        limit = self.config.per_minute if limit_type == "minute" else self.config.per_hour
        return RateLimitDecision(
            allowed=False,
            remaining=self._remaining(snapshot),
            error=f"Rate limit exceeded: {limit} commands per {limit_type}. Try again in {retry_after} seconds.",
            retry_after_seconds=retry_after,
            limit_type=limit_type,
        )

    async def admit(self, caller_id: Optional[str]) -> RateLimitDecision:
        """Admits or denies one submission, recording it when admitted."""
        caller = self.resolve_caller(caller_id)
        now = self._now_ms()
        snapshot = compute_window(await self._load(caller), now, self.config)

        if snapshot.minute_count >= self.config.per_minute:
            # Persist the pruned list so stale entries do not pile up
            await self._save(caller, snapshot.timestamps)
            retry_after = seconds_until_free(snapshot.oldest_in_minute, self.config.minute_window_ms, now)
            return self._deny(caller, "minute", retry_after, snapshot)

        if snapshot.hour_count >= self.config.per_hour:
            await self._save(caller, snapshot.timestamps)
            retry_after = seconds_until_free(snapshot.oldest_in_hour, self.config.hour_window_ms, now)
            return self._deny(caller, "hour", retry_after, snapshot)

        timestamps = snapshot.timestamps + [now]
        await self._save(caller, timestamps)
        admitted = compute_window(timestamps, now, self.config)
        logger.debug(f"Rate limit permission granted for caller '{caller}'.")
        return RateLimitDecision(allowed=True, remaining=self._remaining(admitted))

    async def status(self, caller_id: Optional[str]) -> RateLimitStatus:
        """Reports usage without consuming quota or writing to the store."""
        caller = self.resolve_caller(caller_id)
        snapshot = compute_window(await self._load(caller), self._now_ms(), self.config)
        return RateLimitStatus(
            caller_id=caller,
            minute_count=snapshot.minute_count,
            hour_count=snapshot.hour_count,
            per_minute=self.config.per_minute,
            per_hour=self.config.per_hour,
        )
