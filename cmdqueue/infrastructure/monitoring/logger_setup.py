"""Centralized logging configuration for the cmdqueue application.

Sets up standard Python logging with appropriate levels, formatters,
and handlers (console, optional file), and provides log_with_context()
for structured log lines carrying a redacted context object.
"""

import json
import logging
import sys
from dataclasses import is_dataclass
from typing import Any, Mapping, Optional, Union

from cmdqueue.domain.events.api_events import DomainEvent
from cmdqueue.utils.redaction import redact_mapping

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_FILE = None

def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = DEFAULT_LOG_FILE
) -> None:
    """Configures the root logger for the application.

    Args:
        log_level: The minimum logging level (e.g., logging.DEBUG, logging.INFO).
        log_format: The format string for log messages.
        log_file: Optional path to a file for logging output.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers attached to the root logger
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            logging.info(f"Logging to file: {log_file}")
        except OSError as e:
            logging.error(f"Failed to set up file logging to {log_file}: {e}", exc_info=True)

    logging.info(f"Logging configured. Level={logging.getLevelName(log_level)}")

def _context_dict(context: Union[Mapping[str, Any], DomainEvent, None]) -> Optional[Mapping[str, Any]]:
    if context is None:
        return None
    if isinstance(context, DomainEvent):
        return context.to_context()
    if is_dataclass(context):
        return dict(context.__dict__)
    return context

def log_with_context(
    log: logging.Logger,
    level: int,
    message: str,
    context: Union[Mapping[str, Any], DomainEvent, None] = None,
) -> None:
    """Emits message with a JSON-rendered, redacted context appended.

    A failure while rendering or emitting never reaches the caller.
    """
    try:
        if not log.isEnabledFor(level):
            return
        ctx = _context_dict(context)
        if ctx:
            message = f"{message} {json.dumps(redact_mapping(dict(ctx)), default=str, sort_keys=True)}"
        log.log(level, message)
    except Exception:  # noqa: BLE001
        pass
