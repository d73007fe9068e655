"""Error taxonomy for remote command execution.

Every failure a caller of the execution facade can observe is a
CommandQueueError carrying a human-readable message and a stable code.
Rate-limit and remote-queue errors additionally carry machine-readable
fields (rate_limited, retry_after, limit_type).
"""

from typing import Any, Dict, Optional


class CommandQueueError(Exception):
    """Base class for all errors raised by cmdqueue."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def details(self) -> Dict[str, Any]:
        """Extra machine-readable fields, empty by default."""
        return {}

    def to_dict(self) -> Dict[str, Any]:
        data = {'code': self.code, 'message': self.message}
        data.update(self.details())
        return data


class ConfigurationError(CommandQueueError):
    """Raised when the remote destination (URL or API key) is not configured."""

    code = "REMOTE_NOT_CONFIGURED"


class RateLimitExceededError(CommandQueueError):
    """Raised when the client-side rate limiter denies a submission."""

    def __init__(self, message: str, retry_after: int, limit_type: str, remaining: int = 0):
        super().__init__(message)
        self.rate_limited = True
        self.retry_after = retry_after
        self.limit_type = limit_type
        self.remaining = remaining

    @property
    def code(self) -> str:  # type: ignore[override]
        return "RATE_LIMIT_MINUTE" if self.limit_type == "minute" else "RATE_LIMIT_HOUR"

    def details(self) -> Dict[str, Any]:
        return {
            'rate_limited': self.rate_limited,
            'retry_after': self.retry_after,
            'limit_type': self.limit_type,
            'remaining': self.remaining,
        }


class RemoteQueueError(CommandQueueError):
    """Raised when the remote service reports that its queue is saturated."""

    code = "REMOTE_QUEUE_ERROR"

    def __init__(self, message: str, status_code: int, retry_after: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after

    def details(self) -> Dict[str, Any]:
        return {'status_code': self.status_code, 'retry_after': self.retry_after}


class QueueFullError(RemoteQueueError):
    """HTTP 503 on submit: the remote queue has no free slots."""

    code = "REMOTE_QUEUE_FULL"


class RemoteRateLimitError(RemoteQueueError):
    """HTTP 429 on submit: the remote service rate-limited this caller."""

    code = "REMOTE_RATE_LIMITED"

    def __init__(self, message: str, status_code: int = 429, retry_after: Optional[int] = None):
        super().__init__(message, status_code, retry_after)
        self.rate_limited = True
        self.limit_type = "remote"

    def details(self) -> Dict[str, Any]:
        data = super().details()
        data.update({'rate_limited': self.rate_limited, 'limit_type': self.limit_type})
        return data


class RequestNotFoundError(CommandQueueError):
    """HTTP 404 on status/result: the request id is unknown or has expired."""

    code = "REMOTE_REQUEST_NOT_FOUND"

    def __init__(self, message: str, request_id: str):
        super().__init__(message)
        self.request_id = request_id

    def details(self) -> Dict[str, Any]:
        return {'request_id': self.request_id}


class RemoteApiError(CommandQueueError):
    """Non-success HTTP status or malformed body from the remote service."""

    code = "REMOTE_API_ERROR"

    def __init__(self, message: str, operation: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code

    def details(self) -> Dict[str, Any]:
        return {'operation': self.operation, 'status_code': self.status_code}


class RemoteConnectionError(CommandQueueError):
    """The remote service could not be reached after all transport retries."""

    code = "CONNECTION_FAILED"


class CommandFailedError(CommandQueueError):
    """The remote job reached the 'failed' state."""

    code = "REMOTE_COMMAND_FAILED"

    def __init__(self, message: str, request_id: str):
        super().__init__(message)
        self.request_id = request_id

    def details(self) -> Dict[str, Any]:
        return {'request_id': self.request_id}


class CommandExpiredError(CommandFailedError):
    """The remote job expired before it was processed."""

    code = "REMOTE_REQUEST_EXPIRED"


class CommandTimeoutError(CommandQueueError):
    """The poll loop ran out of attempts; the remote job may still be running."""

    code = "REMOTE_TIMEOUT"

    def __init__(self, message: str, request_id: str, attempts: int):
        super().__init__(message)
        self.request_id = request_id
        self.attempts = attempts

    def details(self) -> Dict[str, Any]:
        return {'request_id': self.request_id, 'attempts': self.attempts}


class RemoteCommandError(CommandQueueError):
    """The remote service answered 200 but flagged the command as failed."""

    code = "REMOTE_COMMAND_ERROR"
