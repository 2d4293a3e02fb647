"""Exception classes for search operations."""

from typing import Any


class SearchError(Exception):
    """Base exception for search-related errors.

    Every error carries a stable machine-readable ``kind`` alongside the
    human message so callers can branch without parsing text.
    """

    kind = "search_error"

    def __init__(
        self,
        message: str,
        kind: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """Initialize with message, optional kind override and details."""
        self.message = message
        if kind is not None:
            self.kind = kind
        self.details = details or {}
        super().__init__(message)


class QuerySyntaxError(SearchError):
    """Raised when a query string violates the query grammar."""

    kind = "syntax_error"

    def __init__(self, message: str, position: int | None = None):
        """Initialize with message and token position."""
        self.position = position
        details = {"position": position} if position is not None else None
        super().__init__(message, details=details)


class ValidationError(SearchError, ValueError):
    """Raised when a search request fails validation."""

    kind = "validation_error"

    def __init__(self, kind: str, message: str, **details: Any):
        """Initialize with validation kind and message."""
        super().__init__(message, kind=kind, details=details)


class IndexingError(SearchError):
    """Raised when a single document cannot be read or parsed."""

    kind = "indexing_error"

    def __init__(self, path: str, reason: str = ""):
        """Initialize with document path and reason."""
        self.path = path
        message = f"Failed to index {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message, details={"path": path})


class InvalidPatternError(SearchError):
    """Raised when a regular expression clause does not compile."""

    kind = "invalid_pattern"

    def __init__(self, pattern: str, reason: str = ""):
        """Initialize with the offending pattern."""
        self.pattern = pattern
        message = f"Invalid pattern: {pattern}"
        if reason:
            message += f" ({reason})"
        super().__init__(message, details={"pattern": pattern})
