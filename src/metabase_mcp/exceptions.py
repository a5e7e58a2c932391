"""Exception hierarchy for metabase-mcp.

Exception Categories:
- Validation errors for bad tool arguments, raised before any upstream call
- API errors for classified Metabase responses (not found, auth, transport)
- Total failure when every item in a retrieval batch failed
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ErrorDetails:
    """Resource classification attached to upstream failures."""

    category: str
    http_status: int | None = None
    retryable: bool = False


class MetabaseMcpError(Exception):
    """Base exception for metabase-mcp operations."""


class ValidationError(MetabaseMcpError):
    """Raised when tool arguments are missing, malformed or out of range."""


class InvalidParameterError(ValidationError):
    """Raised when a single named parameter fails validation."""

    def __init__(self, parameter: str, message: str) -> None:
        super().__init__(message)
        self.parameter = parameter


class MetabaseApiError(MetabaseMcpError):
    """Raised when the Metabase API rejects or cannot serve a request.

    Carries `details` so callers can branch on the category (for example
    `resource_not_found`) instead of parsing the message.
    """

    def __init__(self, message: str, details: ErrorDetails) -> None:
        super().__init__(message)
        self.details = details


class ResourceNotFoundError(MetabaseApiError):
    """Raised when the requested Metabase resource does not exist."""

    def __init__(self, resource: str, resource_id: int | None = None) -> None:
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{message}: {resource_id}"
        super().__init__(
            message,
            ErrorDetails(category="resource_not_found", http_status=404, retryable=False),
        )
        self.resource = resource
        self.resource_id = resource_id


class TotalFailureError(MetabaseMcpError):
    """Raised when every ID of a retrieval batch failed.

    The first underlying error is chained as ``__cause__``.
    """

    def __init__(self, model: str, first_error: BaseException, failed_ids: list[int]) -> None:
        super().__init__(f"Failed to retrieve {model}: {first_error}")
        self.model = model
        self.first_error = first_error
        self.failed_ids = failed_ids


__all__ = [
    "ErrorDetails",
    "InvalidParameterError",
    "MetabaseApiError",
    "MetabaseMcpError",
    "ResourceNotFoundError",
    "TotalFailureError",
    "ValidationError",
]
