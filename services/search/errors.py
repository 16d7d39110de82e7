"""Error taxonomy for search orchestration."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for search engine errors."""

    RESOURCE_CREATION = "resource_creation"
    EXTRACTION = "extraction"
    TIMEOUT = "timeout"
    CORRELATION = "correlation"
    PLANNING = "planning"
    AGGREGATION = "aggregation"


class SearchEngineError(Exception):
    """
    Base error for the search engine.

    Attributes:
        code: Error code identifying the type of error.
        message: Human-readable error message.
        site: Code of the site the error belongs to, if any.
        details: Additional error details (optional).
    """

    code: ErrorCode = ErrorCode.EXTRACTION

    def __init__(
        self,
        message: str,
        *,
        site: str | None = None,
        details: str | None = None,
    ) -> None:
        """Initialize error."""
        super().__init__(message)
        self.message = message
        self.site = site
        self.details = details

    def __str__(self) -> str:
        """Return string representation of the error."""
        prefix = f"[{self.site}] " if self.site else ""
        return f"{prefix}{self.code.value}: {self.message}"


class ResourceCreationError(SearchEngineError):
    """The platform could not create a worker; the owning job fails."""

    code = ErrorCode.RESOURCE_CREATION


class ExtractionError(SearchEngineError):
    """The extraction collaborator failed or returned a malformed payload."""

    code = ErrorCode.EXTRACTION


class JobTimeoutError(SearchEngineError, TimeoutError):
    """A job was not resolved before its deadline."""

    code = ErrorCode.TIMEOUT


class CorrelationError(SearchEngineError):
    """A pushed result could not be matched to a pending resolver."""

    code = ErrorCode.CORRELATION


class SearchCoordinatorError(SearchEngineError):
    """Planning or aggregation failed; the whole search fails."""

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode = ErrorCode.PLANNING,
        details: str | None = None,
    ) -> None:
        """Initialize error."""
        super().__init__(message, details=details)
        self.code = code
