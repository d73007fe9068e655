"""Client for the queue-backed remote command API.

Endpoints (relative to a base URL without trailing slash):
- POST {base}/executecommand-async   submit a command, returns request_id
- GET  {base}/status/{request_id}    poll the request state
- GET  {base}/result/{request_id}    fetch the payload of a completed request
- GET  {base}/queue/status           inspect the remote queue

execute() drives the full flow: submit, wait, poll with a growing interval
until a terminal state, then fetch the result. Polling of one request id
is strictly sequential.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from cmdqueue.domain.errors import (
    CommandExpiredError,
    CommandFailedError,
    CommandTimeoutError,
    QueueFullError,
    RemoteApiError,
    RemoteRateLimitError,
    RequestNotFoundError,
)
from cmdqueue.domain.events.api_events import CommandSubmitted, PollingTimedOut, StatusPolled
from cmdqueue.domain.models.common import CommandText, FileData, RequestId
from cmdqueue.domain.models.request import RequestState, RequestStatus, SubmittedRequest
from cmdqueue.infrastructure.monitoring.logger_setup import log_with_context
from cmdqueue.infrastructure.resilience.backoff import next_poll_interval, parse_retry_after
from cmdqueue.infrastructure.resilience.http_retry import RetryingTransport, SleepFunc
from cmdqueue.utils.error_text import clean_error_message

logger = logging.getLogger(__name__)

API_KEY_HEADER = 'api-key'

@dataclass(frozen=True)
class PollingConfig:
    """Schedule of the status poll loop (seconds)."""
    initial_delay: float = 0.5
    interval: float = 1.0
    max_attempts: int = 60
    backoff_multiplier: float = 1.5
    max_interval: float = 5.0

def normalize_api_url(api_url: str) -> str:
    """Strips trailing slashes so endpoint paths can be appended."""
    return api_url.rstrip('/')

def _json_body(response: httpx.Response, operation: str) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise RemoteApiError(
            f"Remote API {operation} returned an invalid JSON body",
            operation=operation, status_code=response.status_code,
        ) from e

def _status_error(response: httpx.Response, operation: str) -> RemoteApiError:
    cleaned = clean_error_message(response.text, fallback=response.reason_phrase or "Unknown error")
    return RemoteApiError(
        f"Remote API {operation} error: {response.status_code} - {cleaned}",
        operation=operation, status_code=response.status_code,
    )

class AsyncCommandClient:
    """Submits commands to the remote queue and polls them to completion."""

    def __init__(
        self,
        transport: RetryingTransport,
        polling: Optional[PollingConfig] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """Initializes the client.

        Args:
            transport: Retrying HTTP transport used for every call.
            polling: Poll loop schedule. Defaults to PollingConfig().
            sleep: Awaitable used for the initial delay and poll intervals.
        """
        self.transport = transport
        self.polling = polling or PollingConfig()
        self._sleep = sleep

    @staticmethod
    def _headers(api_key: str) -> Dict[str, str]:
        return {API_KEY_HEADER: api_key}

    async def submit(
        self,
        base_url: str,
        api_key: str,
        command: CommandText,
        file_data: Optional[FileData] = None,
    ) -> SubmittedRequest:
        """Posts a command to the queue.

        Raises:
            QueueFullError: HTTP 503, the remote queue is full.
            RemoteRateLimitError: HTTP 429, the remote service throttled us.
            RemoteApiError: Any other failure status, or no request id returned.
        """
        body: Dict[str, Any] = {'command': command}
        if file_data:
            body['filedata'] = file_data

        response = await self.transport.send(
            f"{base_url}/executecommand-async",
            {'method': 'POST', 'headers': self._headers(api_key), 'json': body},
            operation="submit",
        )

        retry_after = parse_retry_after(response.headers.get('Retry-After'))
        retry_after_seconds = int(retry_after) if retry_after is not None else None
        if response.status_code == 503:
            raise QueueFullError("Remote command queue is full. Please try again later.",
                                 status_code=503, retry_after=retry_after_seconds)
        if response.status_code == 429:
            raise RemoteRateLimitError("Remote API rate limit exceeded. Please try again later.",
                                       retry_after=retry_after_seconds)
        if response.is_error:
            raise _status_error(response, "submit")

        data = _json_body(response, "submit")
        if not isinstance(data, dict) or not data.get('success') or not data.get('request_id'):
            message = data.get('message') if isinstance(data, dict) else None
            raise RemoteApiError(f"Remote API submit failed: {message or 'No request_id returned'}",
                                 operation="submit", status_code=response.status_code)

        submitted = SubmittedRequest(
            request_id=RequestId(str(data['request_id'])),
            command=command,
            status=data.get('status'),
            message=data.get('message'),
        )
        log_with_context(logger, logging.INFO, "Command submitted",
                         CommandSubmitted(request_id=submitted.request_id, status=submitted.status))
        return submitted

    async def check_status(self, base_url: str, api_key: str, request_id: str) -> RequestStatus:
        """Reads the current state of a request.

        Raises:
            RequestNotFoundError: HTTP 404, unknown or expired request id.
            RemoteApiError: Any other failure status.
        """
        response = await self.transport.send(
            f"{base_url}/status/{request_id}",
            {'method': 'GET', 'headers': self._headers(api_key)},
            operation="status check",
        )
        if response.status_code == 404:
            raise RequestNotFoundError(f"Request {request_id} not found. It may have expired.", request_id)
        if response.is_error:
            raise _status_error(response, "status check")

        data = _json_body(response, "status check")
        if not isinstance(data, dict):
            raise RemoteApiError("Remote API status check returned an unexpected body",
                                 operation="status check", status_code=response.status_code)
        return RequestStatus(
            request_id=RequestId(str(data.get('request_id') or request_id)),
            status=data.get('status'),
            command=data.get('command'),
            created_at=data.get('created_at'),
            started_at=data.get('started_at'),
            completed_at=data.get('completed_at'),
        )

    async def fetch_result(self, base_url: str, api_key: str, request_id: str) -> Any:
        """Returns the raw result payload of a completed request.

        Raises:
            RequestNotFoundError: HTTP 404, unknown or expired request id.
            RemoteApiError: Any other failure status.
        """
        response = await self.transport.send(
            f"{base_url}/result/{request_id}",
            {'method': 'GET', 'headers': self._headers(api_key)},
            operation="result fetch",
        )
        if response.status_code == 404:
            raise RequestNotFoundError(f"Result for request {request_id} not found. It may have expired.", request_id)
        if response.is_error:
            raise _status_error(response, "result fetch")
        return _json_body(response, "result fetch")

    async def queue_status(self, base_url: str, api_key: str) -> Any:
        """Returns the remote queue's own status report."""
        response = await self.transport.send(
            f"{base_url}/queue/status",
            {'method': 'GET', 'headers': self._headers(api_key)},
            operation="queue status",
        )
        if response.is_error:
            raise _status_error(response, "queue status")
        return _json_body(response, "queue status")

    async def execute(
        self,
        base_url: str,
        api_key: str,
        command: CommandText,
        file_data: Optional[FileData] = None,
        max_attempts: Optional[int] = None,
        poll_interval: Optional[float] = None,
    ) -> Any:
        """Submits a command and polls it until it reaches a terminal state.

        Args:
            base_url: Normalized API base URL.
            api_key: API key sent with every call.
            command: Command text to run remotely.
            file_data: Optional file payload for commands that need one.
            max_attempts: Override of the number of status polls.
            poll_interval: Override of the first poll interval, in seconds.

        Returns:
            The result payload of the completed request.

        Raises:
            CommandFailedError: The request reached 'failed'.
            CommandExpiredError: The request reached 'expired'.
            CommandTimeoutError: No terminal state within max_attempts polls.
        """
        attempts_allowed = max_attempts if max_attempts is not None else self.polling.max_attempts
        interval = poll_interval if poll_interval is not None else self.polling.interval

        submitted = await self.submit(base_url, api_key, command, file_data)
        request_id = submitted.request_id

        # Nothing can have finished yet; skip a guaranteed-wasted round trip
        await self._sleep(self.polling.initial_delay)

        for attempt in range(1, attempts_allowed + 1):
            status = await self.check_status(base_url, api_key, request_id)
            state = status.state

            if state is not None and state.is_terminal:
                log_with_context(logger, logging.INFO, "Command reached terminal state",
                                 StatusPolled(request_id=request_id, attempt=attempt, status=status.status))
                if state is RequestState.FAILED:
                    raise CommandFailedError(f"Remote command execution failed for request {request_id}", request_id)
                if state is RequestState.EXPIRED:
                    raise CommandExpiredError(f"Remote command request {request_id} expired before processing", request_id)
                return await self.fetch_result(base_url, api_key, request_id)

            if attempt == attempts_allowed:
                break
            log_with_context(logger, logging.DEBUG, "Command still pending",
                             StatusPolled(request_id=request_id, attempt=attempt, status=status.status,
                                          next_interval_seconds=round(interval, 3)))
            await self._sleep(interval)
            interval = next_poll_interval(interval, self.polling.backoff_multiplier, self.polling.max_interval)

        log_with_context(logger, logging.WARNING, "Polling timed out",
                         PollingTimedOut(request_id=request_id, attempts=attempts_allowed))
        raise CommandTimeoutError(
            f"Remote command timed out after {attempts_allowed} polling attempts. "
            f"Request {request_id} may still be processing. "
            f"Check status manually or increase the attempt limit.",
            request_id=request_id,
            attempts=attempts_allowed,
        )
