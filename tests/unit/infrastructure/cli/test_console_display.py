import pytest
from unittest.mock import MagicMock

from rich.panel import Panel
from rich.table import Table

from cmdqueue.domain.models.request import RateLimitStatus, RequestStatus
from cmdqueue.infrastructure.cli.display import ConsoleDisplay

@pytest.fixture
def mock_console():
    """Fixture to create a mock rich Console object."""
    return MagicMock()

@pytest.fixture
def console_display(mock_console: MagicMock):
    """Fixture to create a ConsoleDisplay instance with a mocked console."""
    return ConsoleDisplay(console=mock_console)

def test_display_result_prints_panel(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_result({"uid": "abc"}, title="Done")
    mock_console.print.assert_called_once()
    args, _ = mock_console.print.call_args
    assert isinstance(args[0], Panel)
    assert "Done" in args[0].title

def test_display_result_redacts_records_in_list(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_result([{"uid": "abc", "token": "s3cr3t-value"}])
    args, _ = mock_console.print.call_args
    rendered = args[0].renderable.text.plain
    assert "s3cr3t-value" not in rendered
    assert "[REDACTED]" in rendered
    assert "abc" in rendered

def test_display_result_redacts_nested_dict(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_result({"record": {"password": "hunter2"}})
    args, _ = mock_console.print.call_args
    assert "hunter2" not in args[0].renderable.text.plain

def test_display_warning(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_warning("Retry after 30 seconds.")
    args, _ = mock_console.print.call_args
    assert "Warning" in args[0].title
    assert args[0].renderable.plain == "Retry after 30 seconds."

def test_display_error_includes_troubleshooting(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_error("Queue full", troubleshooting=["Wait", "Retry"], code="REMOTE_QUEUE_FULL")
    args, _ = mock_console.print.call_args
    panel = args[0]
    assert isinstance(panel, Panel)
    assert "REMOTE_QUEUE_FULL" in panel.title
    assert "Retry" in panel.renderable.plain

def test_display_info(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_info("Connection successful")
    args, _ = mock_console.print.call_args
    assert args[0].renderable.plain == "Connection successful"

def test_display_rate_status_table(console_display: ConsoleDisplay, mock_console: MagicMock):
    status = RateLimitStatus(caller_id="alice", minute_count=2, hour_count=10, per_minute=5, per_hour=50)
    console_display.display_rate_status(status)
    args, _ = mock_console.print.call_args
    table = args[0]
    assert isinstance(table, Table)
    assert table.row_count == 2

def test_display_request_status_skips_missing_fields(console_display: ConsoleDisplay, mock_console: MagicMock):
    status = RequestStatus(request_id="req-1", status="processing", command="list")
    console_display.display_request_status(status)
    args, _ = mock_console.print.call_args
    assert args[0].row_count == 2
