"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), delegates the work
to the CommandExecutionService and renders results or structured errors
through the UserInterface. Each handler returns True on success so the
entry point can choose the process exit code.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from cmdqueue.core.command_service import CommandExecutionService
from cmdqueue.core.error_response import error_response
from cmdqueue.domain.errors import CommandQueueError, ConfigurationError
from cmdqueue.domain.interfaces.user_interface import UserInterface
from cmdqueue.domain.models.common import FileData

logger = logging.getLogger(__name__)

class CommandHandler:
    """Handles incoming commands and delegates to the execution service."""

    def __init__(self, service: CommandExecutionService, ui: UserInterface):
        self.service = service
        self.ui = ui

    def _report(self, exc: Exception) -> bool:
        response = error_response(exc)
        if isinstance(exc, CommandQueueError):
            logger.warning(f"Command failed with {response['error']}: {response['message']}")
        self.ui.display_error(
            response['message'],
            troubleshooting=response.get('troubleshooting'),
            code=response['error'],
        )
        if 'retryAfter' in response:
            self.ui.display_warning(f"Retry after {response['retryAfter']} seconds.")
        return False

    @staticmethod
    def load_file_data(path: Path) -> FileData:
        """Reads a JSON file payload to send along with a command."""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Could not read file data from {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"File data in {path} must be a JSON object.")
        return FileData(**data)

    async def handle_run(
        self,
        command: str,
        caller_id: Optional[str] = None,
        skip_rate_limit: bool = False,
        file_data_path: Optional[Path] = None,
    ) -> bool:
        """Handles the 'run' command."""
        logger.info(f"Handling 'run' command for caller: {caller_id or 'default'}")
        try:
            file_data = self.load_file_data(file_data_path) if file_data_path else None
            outcome = await self.service.run(
                command, caller_id=caller_id, skip_rate_limit=skip_rate_limit, file_data=file_data,
            )
        except Exception as e:
            return self._report(e)
        self.ui.display_result(outcome['data'], title=outcome['message'])
        return True

    async def handle_test_connection(self, api_url: Optional[str], api_key: Optional[str]) -> bool:
        """Handles 'test-connection'; falls back to the configured destination."""
        try:
            if not api_url or not api_key:
                destination = self.service.config_provider.get_destination()
                api_url = api_url or (destination.api_url if destination else None)
                api_key = api_key or (destination.api_key if destination else None)
            if not api_url or not api_key:
                raise ConfigurationError("Both an API URL and an API key are required to test the connection.")
            outcome = await self.service.test_connection(api_url, api_key)
        except Exception as e:
            return self._report(e)
        self.ui.display_info(outcome['message'])
        return True

    async def handle_rate_status(self, caller_id: Optional[str] = None) -> bool:
        try:
            status = await self.service.rate_status(caller_id)
        except Exception as e:
            return self._report(e)
        self.ui.display_rate_status(status)
        return True

    async def handle_request_status(self, request_id: str) -> bool:
        try:
            status = await self.service.request_status(request_id)
        except Exception as e:
            return self._report(e)
        self.ui.display_request_status(status)
        return True

    async def handle_request_result(self, request_id: str) -> bool:
        try:
            data = await self.service.request_result(request_id)
        except Exception as e:
            return self._report(e)
        self.ui.display_result(data, title=f"Result of {request_id}")
        return True

    async def handle_queue_status(self) -> bool:
        try:
            data = await self.service.queue_status()
        except Exception as e:
            return self._report(e)
        self.ui.display_result(data, title="Queue status")
        return True
