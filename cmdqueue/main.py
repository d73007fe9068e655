"""Main entry point for the cmdqueue application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Coroutine, Dict, Optional

import typer
from typing_extensions import Annotated

# --- Core Layer ---
from cmdqueue.core.command_handler import CommandHandler
from cmdqueue.core.command_service import CommandExecutionService

# --- Infrastructure Layer ---
# Config
from cmdqueue.infrastructure.config.settings import (
    SettingsConfigurationProvider,
    get_int,
    get_storage_dir,
)
# UI
from cmdqueue.infrastructure.cli.display import ConsoleDisplay
# Remote
from cmdqueue.infrastructure.remote.command_client import AsyncCommandClient, PollingConfig
# Resilience
from cmdqueue.infrastructure.resilience.http_retry import DEFAULT_TIMEOUT_SECONDS, RetryingTransport, RetryPolicy
from cmdqueue.infrastructure.resilience.rate_limiter import (
    DEFAULT_MAX_PER_HOUR,
    DEFAULT_MAX_PER_MINUTE,
    RateLimitConfig,
    RateLimiter,
)
# Storage
from cmdqueue.infrastructure.storage.disk_store import DiskKeyValueStore
# Monitoring
from cmdqueue.infrastructure.monitoring.logger_setup import setup_logging

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.
    """
    dependencies: Dict[str, Any] = {}
    try:
        # 1. Load Configuration First
        config_provider = SettingsConfigurationProvider()
        config_provider.load_config()
        log_level_name = str(config_provider.get('logging.level', 'WARNING')).upper()
        log_level = getattr(logging, log_level_name, logging.WARNING)
        log_file = config_provider.get('logging.file')
        log_format = config_provider.get('logging.format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        setup_logging(log_level=log_level, log_file=log_file, log_format=log_format)
        logger.info("Configuration and logging initialized.")

        # 2. Instantiate Infrastructure Adapters
        dependencies['ui'] = ConsoleDisplay()
        dependencies['config_provider'] = config_provider
        dependencies['store'] = DiskKeyValueStore(directory=get_storage_dir())
        dependencies['rate_limiter'] = RateLimiter(
            store=dependencies['store'],
            config=RateLimitConfig(
                per_minute=get_int('rate_limit.per_minute', DEFAULT_MAX_PER_MINUTE),
                per_hour=get_int('rate_limit.per_hour', DEFAULT_MAX_PER_HOUR),
            ),
        )
        dependencies['transport'] = RetryingTransport(
            policy=RetryPolicy(max_retries=get_int('retry.max_retries', 3)),
            timeout=float(config_provider.get('http.timeout_seconds', DEFAULT_TIMEOUT_SECONDS)),
        )
        dependencies['client'] = AsyncCommandClient(
            transport=dependencies['transport'],
            polling=PollingConfig(max_attempts=get_int('polling.max_attempts', 60)),
        )

        # 3. Instantiate Core Services
        dependencies['service'] = CommandExecutionService(
            client=dependencies['client'],
            rate_limiter=dependencies['rate_limiter'],
            config_provider=dependencies['config_provider'],
        )
        dependencies['command_handler'] = CommandHandler(
            service=dependencies['service'],
            ui=dependencies['ui'],
        )
        logger.info("All dependencies initialized successfully.")
        return dependencies

    except Exception as e:
        logger.error(f"Fatal Error during application initialization: {e}", exc_info=True)
        print(f"FATAL ERROR during initialization: {e}", file=sys.stderr)
        sys.exit(1)

_dependencies: Optional[Dict[str, Any]] = None

def get_dependencies() -> Dict[str, Any]:
    """Returns the wired-up dependencies, creating them on first use."""
    global _dependencies
    if _dependencies is None:
        _dependencies = create_dependencies()
    return _dependencies

async def close_dependencies(dependencies: Dict[str, Any]) -> None:
    """Releases the HTTP client and the state store, and drops the cache."""
    global _dependencies
    try:
        transport = dependencies.get('transport')
        if transport is not None:
            await transport.aclose()
    finally:
        store = dependencies.get('store')
        if store is not None:
            store.close()
        if _dependencies is dependencies:
            _dependencies = None

# --- Typer App Definition ---
app = typer.Typer(
    name="cmdqueue",
    help="cmdqueue: run commands on a queue-backed remote command service with retries and rate limiting.",
    add_completion=False,
)

# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, bool]) -> None:
    """Runs a handler coroutine and exits with status 1 if it reports failure.

    The dependencies are closed afterwards; the next command builds fresh ones.
    """
    dependencies = get_dependencies()

    async def _run() -> bool:
        try:
            return await coro
        finally:
            await close_dependencies(dependencies)

    if not asyncio.run(_run()):
        raise typer.Exit(code=1)

# --- CLI Commands ---

CallerOption = Annotated[
    Optional[str],
    typer.Option("--caller", "-c", help="Caller identity charged against the rate limit."),
]

@app.command()
def run(
    command: Annotated[str, typer.Argument(help="Command to execute on the remote service.")],
    caller: CallerOption = None,
    skip_rate_limit: Annotated[
        bool,
        typer.Option("--skip-rate-limit", help="Bypass the client-side rate limit (system use).")
    ] = False,
    file_data: Annotated[
        Optional[Path],
        typer.Option("--file-data", exists=True, file_okay=True, dir_okay=False, readable=True,
                     resolve_path=True, help="JSON file with a file payload to send along.")
    ] = None,
):
    """Run a command remotely and wait for its result."""
    handler: CommandHandler = get_dependencies()['command_handler']
    run_async(handler.handle_run(command, caller_id=caller, skip_rate_limit=skip_rate_limit,
                                 file_data_path=file_data))

@app.command(name="test-connection")
def test_connection_command(
    api_url: Annotated[Optional[str], typer.Option("--api-url", help="API URL to test (defaults to configured).")] = None,
    api_key: Annotated[Optional[str], typer.Option("--api-key", help="API key to test (defaults to configured).")] = None,
):
    """Check that the remote service is reachable and the key is accepted."""
    handler: CommandHandler = get_dependencies()['command_handler']
    run_async(handler.handle_test_connection(api_url, api_key))

@app.command(name="rate-status")
def rate_status_command(caller: CallerOption = None):
    """Show the caller's usage of the per-minute and per-hour limits."""
    handler: CommandHandler = get_dependencies()['command_handler']
    run_async(handler.handle_rate_status(caller))

@app.command(name="request-status")
def request_status_command(
    request_id: Annotated[str, typer.Argument(help="Request id returned on submission.")],
):
    """Show the remote state of a submitted request."""
    handler: CommandHandler = get_dependencies()['command_handler']
    run_async(handler.handle_request_status(request_id))

@app.command(name="request-result")
def request_result_command(
    request_id: Annotated[str, typer.Argument(help="Request id returned on submission.")],
):
    """Fetch the result payload of a completed request."""
    handler: CommandHandler = get_dependencies()['command_handler']
    run_async(handler.handle_request_result(request_id))

@app.command(name="queue-status")
def queue_status_command():
    """Show the remote queue's status."""
    handler: CommandHandler = get_dependencies()['command_handler']
    run_async(handler.handle_queue_status())

# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()

if __name__ == "__main__":
    cli_entry_point()
