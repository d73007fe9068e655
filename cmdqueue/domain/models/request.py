"""Domain models for submitted requests and rate-limit decisions."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .common import CallerId, CommandText, RequestId


class RequestState(Enum):
    """Server-side lifecycle states of a queued request."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    EXPIRED = "expired"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["RequestState"]:
        """Returns the matching state, or None for unrecognized values."""
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def is_terminal(self) -> bool:
        return self in (RequestState.COMPLETED, RequestState.FAILED, RequestState.EXPIRED)


@dataclass(frozen=True)
class SubmittedRequest:
    """A command accepted by the remote queue."""
    request_id: RequestId
    command: CommandText
    status: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class RequestStatus:
    """One observation of a request's server-side state."""
    request_id: RequestId
    status: Optional[str]
    command: Optional[str] = None
    created_at: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    @property
    def state(self) -> Optional[RequestState]:
        return RequestState.parse(self.status)


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of an admission attempt against the rate limiter."""
    allowed: bool
    remaining: Dict[str, int] = field(default_factory=dict) # {'minute': n, 'hour': n}
    error: Optional[str] = None
    retry_after_seconds: Optional[int] = None
    limit_type: Optional[str] = None # 'minute' or 'hour'


@dataclass(frozen=True)
class RateLimitStatus:
    """Read-only view of a caller's usage in both windows."""
    caller_id: CallerId
    minute_count: int
    hour_count: int
    per_minute: int
    per_hour: int

    @property
    def remaining(self) -> Dict[str, int]:
        return {
            'minute': max(0, self.per_minute - self.minute_count),
            'hour': max(0, self.per_hour - self.hour_count),
        }


@dataclass(frozen=True)
class Destination:
    """Remote service location and credential."""
    api_url: str
    api_key: str
