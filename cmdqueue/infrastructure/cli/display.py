import json
import logging
from typing import Any, List, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from cmdqueue.domain.interfaces.user_interface import UserInterface
from cmdqueue.domain.models.request import RateLimitStatus, RequestStatus
from cmdqueue.utils.redaction import redact_mapping

logger = logging.getLogger(__name__)

class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console (an explicit one can be injected)."""
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_result(self, data: Any, **kwargs: Any) -> None:
        """Displays a command result payload as highlighted JSON.

        Args:
            data: The raw result payload. Dicts and lists are rendered as JSON,
                anything else as plain text.
            **kwargs: Additional arguments including:
                - title: Panel title (default: "Result")
        """
        title = kwargs.get("title", "Result")
        if isinstance(data, (dict, list)):
            shown = redact_mapping(data)
            try:
                body: Any = JSON(json.dumps(shown, default=str))
            except (TypeError, ValueError) as e:
                logger.error(f"Error rendering result as JSON: {e}")
                body = Text(str(shown))
        else:
            body = Text(str(data))

        panel = Panel(
            body,
            title=f"[bold green]{title}[/bold green]",
            title_align="left",
            border_style="green",
            box=ROUNDED,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_error(self, error_message: str, troubleshooting: Optional[List[str]] = None, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
            troubleshooting: Optional steps listed under the message.
            **kwargs: Additional arguments including:
                - code: Error code shown in the panel title.
        """
        code = kwargs.get("code")
        title = f"[bold red]Error[/bold red] [dim]{code}[/dim]" if code else "[bold red]Error[/bold red]"
        content = Text(error_message, style="white")
        if troubleshooting:
            content.append("\n\nTroubleshooting:", style="bold")
            for step in troubleshooting:
                content.append(f"\n  - {step}", style="white")

        panel = Panel(
            content,
            title=title,
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message."""
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message."""
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_rate_status(self, status: RateLimitStatus) -> None:
        table = Table(title=f"Rate limit for {status.caller_id}", box=SIMPLE)
        table.add_column("Window", style="cyan")
        table.add_column("Used", justify="right")
        table.add_column("Limit", justify="right")
        table.add_column("Remaining", justify="right", style="green")

        remaining = status.remaining
        table.add_row("minute", str(status.minute_count), str(status.per_minute), str(remaining['minute']))
        table.add_row("hour", str(status.hour_count), str(status.per_hour), str(remaining['hour']))
        self.console.print(table)

    def display_request_status(self, status: RequestStatus) -> None:
        table = Table(title=f"Request {status.request_id}", box=SIMPLE, show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")

        for label, value in (
            ("Status", status.status),
            ("Command", status.command),
            ("Created", status.created_at),
            ("Started", status.started_at),
            ("Completed", status.completed_at),
        ):
            if value is not None:
                table.add_row(label, str(value))
        self.console.print(table)
