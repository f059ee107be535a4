"""
Custom exceptions for the API logger service.

Provides structured error handling with appropriate HTTP status codes
and error details for API responses. The interception pipeline itself
never raises these into a client response; they come from startup
configuration and the demo API.
"""

from typing import Any, Dict, Optional


class ApiLoggerException(Exception):
    """Base exception for the API logger service."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class ConfigurationError(ApiLoggerException):
    """Raised when settings cannot be turned into working components."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=500,
            error_code="configuration_error",
            details=details,
        )


class ItemNotFoundError(ApiLoggerException):
    """Raised when a demo item does not exist."""

    def __init__(self, item_id: str) -> None:
        super().__init__(
            message=f"Item '{item_id}' not found",
            status_code=404,
            error_code="item_not_found",
            details={"item_id": item_id},
        )
