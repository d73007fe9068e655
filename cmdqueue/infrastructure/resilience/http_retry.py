"""HTTP transport with automatic retries.

Wraps a single HTTP call with exponential backoff (plus jitter) for
transient statuses (429, 502, 503, 504) and network errors, honoring a
server-supplied Retry-After hint when present.

Exhausting the budget on a retryable *status* returns the last response so
the caller can build a domain-specific error; exhausting it on a *network*
error re-raises the last exception.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional

import httpx

from cmdqueue.domain.events.api_events import RetriesExhausted, RetryScheduled
from cmdqueue.infrastructure.monitoring.logger_setup import log_with_context
from cmdqueue.infrastructure.resilience.backoff import RetryState, parse_retry_after, retry_delay

logger = logging.getLogger(__name__)

DEFAULT_RETRYABLE_STATUSES = frozenset({429, 502, 503, 504})
DEFAULT_TIMEOUT_SECONDS = 30.0

SleepFunc = Callable[[float], Awaitable[Any]]

@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget and delay schedule for one logical HTTP call."""
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    backoff_factor: float = 2.0
    jitter_factor: float = 0.2
    retryable_statuses: FrozenSet[int] = field(default_factory=lambda: DEFAULT_RETRYABLE_STATUSES)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

class RetryingTransport:
    """Sends HTTP requests through an httpx.AsyncClient with retries."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: SleepFunc = asyncio.sleep,
        rand: Callable[[], float] = random.random,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """Initializes the transport.

        Args:
            client: Shared httpx client. One is created (and owned) if None.
            policy: Retry budget and delays. Defaults to RetryPolicy().
            sleep: Awaitable used for every backoff wait.
            rand: Source of uniform [0, 1) values for jitter.
            timeout: Per-request timeout for an owned client, in seconds.
        """
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._rand = rand
        logger.debug(
            f"RetryingTransport initialized: max_retries={self.policy.max_retries}, "
            f"base_delay={self.policy.base_delay}s, max_delay={self.policy.max_delay}s"
        )

    async def __aenter__(self) -> "RetryingTransport":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def _delay(self, state: RetryState, retry_after: Optional[float]) -> float:
        p = self.policy
        return retry_delay(
            state.attempt, retry_after, p.base_delay, p.max_delay,
            factor=p.backoff_factor, jitter_factor=p.jitter_factor, rand=self._rand,
        )

    async def send(self, url: str, options: Optional[Dict[str, Any]] = None, operation: str = "HTTP request") -> httpx.Response:
        """Performs the request described by options, retrying transient failures.

        Args:
            url: Absolute request URL.
            options: Request description: 'method' (default GET) plus any
                httpx request keyword ('headers', 'json', 'params', ...).
            operation: Label used only in log lines.

        Returns:
            The first non-retryable response, or the last retryable one once
            the budget is exhausted.

        Raises:
            httpx.TransportError: If the final attempt failed at network level.
        """
        request_options = dict(options or {})
        method = request_options.pop('method', 'GET')
        state = RetryState()

        while True:
            try:
                response = await self.client.request(method, url, **request_options)
            except httpx.TransportError as e:
                error_text = f"{type(e).__name__}: {e}"
                if state.attempt >= self.policy.max_attempts:
                    log_with_context(logger, logging.ERROR, "Request failed after retries",
                                     RetriesExhausted(operation=operation, attempts=state.attempt, error=error_text))
                    raise
                delay = self._delay(state, None)
                log_with_context(logger, logging.WARNING, "Network error, retrying",
                                 RetryScheduled(operation=operation, attempt=state.attempt,
                                                max_attempts=self.policy.max_attempts,
                                                delay_seconds=round(delay, 3), error=error_text))
                await self._sleep(delay)
                state = state.advance(delay)
                continue

            if response.status_code not in self.policy.retryable_statuses:
                return response

            if state.attempt >= self.policy.max_attempts:
                log_with_context(logger, logging.WARNING, "Retryable status persisted after retries",
                                 RetriesExhausted(operation=operation, attempts=state.attempt,
                                                  status=response.status_code))
                return response

            retry_after = parse_retry_after(response.headers.get('Retry-After'))
            delay = self._delay(state, retry_after)
            log_with_context(logger, logging.WARNING, "Retryable status, retrying",
                             RetryScheduled(operation=operation, attempt=state.attempt,
                                            max_attempts=self.policy.max_attempts,
                                            delay_seconds=round(delay, 3), status=response.status_code))
            # Release the connection before waiting
            await response.aclose()
            await self._sleep(delay)
            state = state.advance(delay)
