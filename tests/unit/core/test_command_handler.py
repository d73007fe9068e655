import json

import pytest
from unittest.mock import MagicMock

from cmdqueue.core.command_handler import CommandHandler
from cmdqueue.core.command_service import CommandExecutionService
from cmdqueue.domain.errors import QueueFullError, RateLimitExceededError
from cmdqueue.domain.interfaces.user_interface import UserInterface
from cmdqueue.domain.models.request import Destination, RateLimitStatus

@pytest.fixture
def mock_service():
    service = MagicMock(spec=CommandExecutionService)
    service.config_provider = MagicMock()
    return service

@pytest.fixture
def mock_ui():
    return MagicMock(spec=UserInterface)

@pytest.fixture
def command_handler(mock_service, mock_ui):
    """Fixture to create CommandHandler with a mocked service and UI."""
    return CommandHandler(service=mock_service, ui=mock_ui)

@pytest.mark.asyncio
async def test_handle_run_displays_result(command_handler, mock_service, mock_ui):
    mock_service.run.return_value = {'success': True, 'data': {'uid': 'abc'}, 'message': 'Command executed successfully'}

    assert await command_handler.handle_run("list", caller_id="alice") is True

    mock_service.run.assert_awaited_once_with("list", caller_id="alice", skip_rate_limit=False, file_data=None)
    mock_ui.display_result.assert_called_once_with({'uid': 'abc'}, title='Command executed successfully')
    mock_ui.display_error.assert_not_called()

@pytest.mark.asyncio
async def test_handle_run_rate_limited(command_handler, mock_service, mock_ui):
    mock_service.run.side_effect = RateLimitExceededError("Rate limit exceeded", retry_after=30, limit_type="minute")

    assert await command_handler.handle_run("list") is False

    args, kwargs = mock_ui.display_error.call_args
    assert args[0] == "Rate limit exceeded"
    assert kwargs['code'] == "RATE_LIMIT_MINUTE"
    assert kwargs['troubleshooting']
    mock_ui.display_warning.assert_called_once_with("Retry after 30 seconds.")

@pytest.mark.asyncio
async def test_handle_run_reads_file_data(command_handler, mock_service, tmp_path):
    payload = tmp_path / "file.json"
    payload.write_text(json.dumps({"filename": "a.txt", "content": "aGk="}))
    mock_service.run.return_value = {'success': True, 'data': {}, 'message': 'ok'}

    await command_handler.handle_run("upload", file_data_path=payload)

    assert mock_service.run.call_args.kwargs['file_data'] == {"filename": "a.txt", "content": "aGk="}

@pytest.mark.asyncio
async def test_handle_run_rejects_non_object_file_data(command_handler, mock_service, mock_ui, tmp_path):
    payload = tmp_path / "file.json"
    payload.write_text("[1, 2]")

    assert await command_handler.handle_run("upload", file_data_path=payload) is False
    mock_service.run.assert_not_called()
    assert mock_ui.display_error.call_args.kwargs['code'] == "REMOTE_NOT_CONFIGURED"

@pytest.mark.asyncio
async def test_handle_test_connection_falls_back_to_configured(command_handler, mock_service, mock_ui):
    mock_service.config_provider.get_destination.return_value = Destination("https://x/api/v2", "cfg-key")
    mock_service.test_connection.return_value = {'success': True, 'data': {}, 'message': 'Connection successful'}

    assert await command_handler.handle_test_connection(None, None) is True

    mock_service.test_connection.assert_awaited_once_with("https://x/api/v2", "cfg-key")
    mock_ui.display_info.assert_called_once_with("Connection successful")

@pytest.mark.asyncio
async def test_handle_test_connection_without_destination(command_handler, mock_service, mock_ui):
    mock_service.config_provider.get_destination.return_value = None

    assert await command_handler.handle_test_connection(None, None) is False
    mock_service.test_connection.assert_not_called()

@pytest.mark.asyncio
async def test_handle_rate_status(command_handler, mock_service, mock_ui):
    status = RateLimitStatus("alice", 1, 1, 5, 50)
    mock_service.rate_status.return_value = status

    assert await command_handler.handle_rate_status("alice") is True
    mock_ui.display_rate_status.assert_called_once_with(status)

@pytest.mark.asyncio
async def test_handle_queue_status_error(command_handler, mock_service, mock_ui):
    mock_service.queue_status.side_effect = QueueFullError("Queue full", status_code=503)

    assert await command_handler.handle_queue_status() is False
    assert mock_ui.display_error.call_args.kwargs['code'] == "REMOTE_QUEUE_FULL"
    mock_ui.display_info.assert_not_called()
    mock_ui.display_warning.assert_not_called()
