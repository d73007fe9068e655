"""Interface for presenting command results to the user.

Allows different UI implementations (e.g., console) to render results,
errors and quota information.
"""

import abc
from typing import Any, List, Optional

from cmdqueue.domain.models.request import RateLimitStatus, RequestStatus


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_result(self, data: Any, **kwargs: Any) -> None:
        """Displays a command result payload.

        Args:
            data: The raw result payload returned by the remote service.
            **kwargs: Additional arguments for formatting (e.g., title).
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, troubleshooting: Optional[List[str]] = None, **kwargs: Any) -> None:
        """Displays an error message, optionally with troubleshooting steps."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    @abc.abstractmethod
    def display_rate_status(self, status: RateLimitStatus) -> None:
        """Displays current quota usage for a caller."""
        pass

    @abc.abstractmethod
    def display_request_status(self, status: RequestStatus) -> None:
        """Displays one status observation of a queued request."""
        pass
