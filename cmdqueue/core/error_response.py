"""Structured success/error responses for callers of the execution facade.

Instead of surfacing raw exceptions, front ends render these dicts: a
stable error code, a message, and troubleshooting steps per code.
"""

import logging
from typing import Any, Dict, List, Optional

from cmdqueue.domain.errors import CommandQueueError, RateLimitExceededError, RemoteQueueError
from cmdqueue.domain.models.common import CommandOutcome, ErrorResponse
from cmdqueue.utils.redaction import sanitize_text

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "INTERNAL_ERROR"

TROUBLESHOOTING: Dict[str, List[str]] = {
    "REMOTE_NOT_CONFIGURED": [
        "Set COMMANDER_API_URL and COMMANDER_API_KEY (environment, .env or ~/.cmdqueue/config.yaml)",
        "Run 'test-connection' before saving the configuration",
    ],
    "RATE_LIMIT_MINUTE": [
        "You have exceeded the per-minute command limit",
        "Wait for the indicated number of seconds before trying again",
    ],
    "RATE_LIMIT_HOUR": [
        "You have exceeded the hourly command limit",
        "Try again later or contact your administrator",
    ],
    "REMOTE_QUEUE_FULL": [
        "The remote command queue is full",
        "Wait for pending requests to complete",
        "Try again in a few moments",
    ],
    "REMOTE_RATE_LIMITED": [
        "The remote service is throttling requests",
        "Reduce the frequency of your commands",
    ],
    "REMOTE_REQUEST_NOT_FOUND": [
        "The request id is unknown or has expired on the remote service",
        "Submit the command again if you still need its result",
    ],
    "REMOTE_COMMAND_FAILED": [
        "Check the command syntax",
        "Check the remote service logs for details",
    ],
    "REMOTE_REQUEST_EXPIRED": [
        "The request expired in the remote queue before it was processed",
        "Submit the command again",
    ],
    "REMOTE_TIMEOUT": [
        "The command may still be running remotely",
        "Use 'request-status' with the request id to check on it",
    ],
    "REMOTE_API_ERROR": [
        "Verify the API URL and API key",
        "Check that the remote service is running",
    ],
    "REMOTE_COMMAND_ERROR": [
        "Check the command syntax and your permissions for this operation",
    ],
    "CONNECTION_FAILED": [
        "Verify the remote service (or tunnel in front of it) is running",
        "Verify the configured API URL is correct",
    ],
    INTERNAL_ERROR: [
        "An unexpected error occurred",
        "If the issue persists, check the logs",
    ],
}

DEFAULT_SUCCESS_MESSAGE = "Command executed successfully"

def success_response(data: Any = None, message: Optional[str] = None) -> CommandOutcome:
    """Builds {'success': True, 'data': ..., 'message': ...}."""
    return CommandOutcome(success=True, data=data, message=message or DEFAULT_SUCCESS_MESSAGE)

def error_response(exc: BaseException) -> ErrorResponse:
    """Converts an exception into a structured error response."""
    if isinstance(exc, CommandQueueError):
        code = exc.code
        message = exc.message
        details = {k: v for k, v in exc.details().items() if v is not None}
    else:
        logger.error(f"Unexpected error converted to response: {type(exc).__name__}: {exc}", exc_info=exc)
        code = INTERNAL_ERROR
        message = sanitize_text(str(exc)) or "An unexpected error occurred"
        details = {}

    response = ErrorResponse(success=False, error=code, message=message)
    steps = TROUBLESHOOTING.get(code)
    if steps:
        response['troubleshooting'] = steps
    retry_after = getattr(exc, 'retry_after', None) if isinstance(exc, (RateLimitExceededError, RemoteQueueError)) else None
    if retry_after is not None:
        response['retryAfter'] = retry_after
    if details:
        response['details'] = details
    return response
