"""Command Execution Service: the single entry point for running commands.

Applies the per-caller rate limiter, resolves the configured destination,
drives the async command client and normalizes results and errors.
"""

import logging
from typing import Any, Optional, Sequence

import httpx

from cmdqueue.core.error_response import success_response
from cmdqueue.domain.errors import (
    ConfigurationError,
    RateLimitExceededError,
    RemoteCommandError,
    RemoteConnectionError,
)
from cmdqueue.domain.interfaces.config import ConfigurationProvider
from cmdqueue.domain.models.common import CommandOutcome, CommandText, FileData
from cmdqueue.domain.models.request import Destination, RateLimitStatus, RequestStatus
from cmdqueue.infrastructure.remote.command_client import AsyncCommandClient, normalize_api_url
from cmdqueue.infrastructure.remote.response_shapes import extract_record
from cmdqueue.infrastructure.resilience.rate_limiter import RateLimiter
from cmdqueue.utils.error_text import clean_error_message

logger = logging.getLogger(__name__)

# Side-effect-free command used to validate reachability and credentials
STATUS_COMMAND = CommandText("service-status")

def _body_error(data: Any) -> Optional[str]:
    """Returns the cleaned error text if a 200 body flags a failure."""
    if not isinstance(data, dict):
        return None
    if data.get('success') is False or data.get('error'):
        raw = data.get('error') or data.get('message') or "Unknown error"
        return clean_error_message(raw)
    return None

class CommandExecutionService:
    """Facade over rate limiting, configuration and remote execution."""

    def __init__(
        self,
        client: AsyncCommandClient,
        rate_limiter: RateLimiter,
        config_provider: ConfigurationProvider,
    ):
        self.client = client
        self.rate_limiter = rate_limiter
        self.config_provider = config_provider

    def _destination(self) -> Destination:
        destination = self.config_provider.get_destination()
        if destination is None or not destination.api_url or not destination.api_key:
            raise ConfigurationError("Remote command service is not configured. Set the API URL and API key first.")
        return Destination(api_url=normalize_api_url(destination.api_url), api_key=destination.api_key)

    async def _execute(self, base_url: str, api_key: str, command: CommandText, **kwargs: Any) -> Any:
        try:
            return await self.client.execute(base_url, api_key, command, **kwargs)
        except httpx.TransportError as e:
            logger.error(f"Remote service unreachable: {type(e).__name__}: {e}")
            raise RemoteConnectionError(f"Could not reach the remote command service: {type(e).__name__}") from e

    async def run(
        self,
        command: str,
        caller_id: Optional[str] = None,
        skip_rate_limit: bool = False,
        file_data: Optional[FileData] = None,
    ) -> CommandOutcome:
        """Runs one command on the remote service.

        Args:
            command: Command text to execute.
            caller_id: Identity charged against the rate limit.
            skip_rate_limit: Bypass the limiter; reserved for system-originated calls.
            file_data: Optional file payload forwarded with the command.

        Returns:
            {'success': True, 'data': <result payload>, 'message': ...}

        Raises:
            RateLimitExceededError: The caller is over a client-side window.
            ConfigurationError: No destination is configured.
            RemoteCommandError: The remote body flagged the command as failed.
            CommandQueueError: Any other remote, transport or polling failure.
        """
        if not skip_rate_limit:
            decision = await self.rate_limiter.admit(caller_id)
            if not decision.allowed:
                raise RateLimitExceededError(
                    decision.error or "Rate limit exceeded. Please wait before trying again.",
                    retry_after=decision.retry_after_seconds or 1,
                    limit_type=decision.limit_type or "minute",
                    remaining=decision.remaining.get(decision.limit_type or "minute", 0),
                )

        destination = self._destination()
        data = await self._execute(destination.api_url, destination.api_key, CommandText(command), file_data=file_data)

        error_text = _body_error(data)
        if error_text is not None:
            raise RemoteCommandError(error_text)

        message = data.get('message') if isinstance(data, dict) else None
        return success_response(data, message)

    async def test_connection(self, api_url: str, api_key: str) -> CommandOutcome:
        """Runs the service-status command against an explicit destination."""
        data = await self._execute(normalize_api_url(api_url), api_key, STATUS_COMMAND)
        error_text = _body_error(data)
        if error_text is not None:
            raise RemoteCommandError(f"Connection test failed: {error_text}")
        return success_response(data, "Connection successful")

    async def lookup_record(
        self,
        command: str,
        identity_keys: Sequence[str],
        caller_id: Optional[str] = None,
    ) -> Optional[Any]:
        """Runs a command and extracts the single record from its payload."""
        outcome = await self.run(command, caller_id=caller_id)
        record = extract_record(outcome['data'], identity_keys)
        if record is None:
            logger.info(f"No record with keys {list(identity_keys)} found in result payload.")
        return record

    async def rate_status(self, caller_id: Optional[str] = None) -> RateLimitStatus:
        """Read-only quota view for a caller."""
        return await self.rate_limiter.status(caller_id)

    async def request_status(self, request_id: str) -> RequestStatus:
        """Observes a request directly, e.g. after a client-side timeout."""
        destination = self._destination()
        try:
            return await self.client.check_status(destination.api_url, destination.api_key, request_id)
        except httpx.TransportError as e:
            raise RemoteConnectionError(f"Could not reach the remote command service: {type(e).__name__}") from e

    async def request_result(self, request_id: str) -> Any:
        """Fetches the result payload of a request by id."""
        destination = self._destination()
        try:
            return await self.client.fetch_result(destination.api_url, destination.api_key, request_id)
        except httpx.TransportError as e:
            raise RemoteConnectionError(f"Could not reach the remote command service: {type(e).__name__}") from e

    async def queue_status(self) -> Any:
        """Returns the remote queue's status report."""
        destination = self._destination()
        try:
            return await self.client.queue_status(destination.api_url, destination.api_key)
        except httpx.TransportError as e:
            raise RemoteConnectionError(f"Could not reach the remote command service: {type(e).__name__}") from e
