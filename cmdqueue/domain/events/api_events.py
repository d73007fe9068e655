"""Domain Events related to remote calls, polling and rate limiting.

Examples include events for when calls are retried, give up, get polled
or are denied by the rate limiter.
"""

from dataclasses import dataclass, field
import time
from typing import Any, Dict, Optional

@dataclass
class DomainEvent:
    """Base class for domain events."""

    def to_context(self) -> Dict[str, Any]:
        """Returns the event fields as a plain dict for log rendering."""
        return {k: v for k, v in self.__dict__.items() if v is not None}

# --- Transport Events ---

@dataclass
class RetryScheduled(DomainEvent):
    """A retryable status or network error will be retried after a delay."""
    operation: str
    attempt: int
    max_attempts: int
    delay_seconds: float
    status: Optional[int] = None
    error: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

@dataclass
class RetriesExhausted(DomainEvent):
    """The retry budget of one logical call is spent."""
    operation: str
    attempts: int
    status: Optional[int] = None
    error: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

# --- Queue Events ---

@dataclass
class CommandSubmitted(DomainEvent):
    """The remote queue accepted a command."""
    request_id: str
    status: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

@dataclass
class StatusPolled(DomainEvent):
    """One status observation inside the poll loop."""
    request_id: str
    attempt: int
    status: Optional[str]
    next_interval_seconds: Optional[float] = None
    timestamp: float = field(default_factory=time.time)

@dataclass
class PollingTimedOut(DomainEvent):
    """The poll loop exhausted its attempts without a terminal state."""
    request_id: str
    attempts: int
    timestamp: float = field(default_factory=time.time)

# --- Rate Limiting Events ---

@dataclass
class CommandRateLimited(DomainEvent):
    """The client-side limiter denied a submission."""
    caller_id: str
    limit_type: str
    retry_after_seconds: int
    timestamp: float = field(default_factory=time.time)
