"""
Error taxonomy for the transcript storage engine.

Every failure surfaced by the engine is one of four kinds: not found,
validation, conflict, or unavailable. Backend-specific errors are translated
into these classes so adapters (CLI, HTTP) can map them to consistent status
codes without inspecting backend exceptions.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(Enum):
    """Classification of storage errors."""
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"

    def __str__(self) -> str:
        return self.value


# Status codes an HTTP adapter should use for each error kind
STATUS_CODES = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UNAVAILABLE: 503,
}


class StorageError(Exception):
    """Base class for all errors raised by the storage engine."""

    kind: ErrorKind = ErrorKind.UNAVAILABLE

    def __init__(
        self,
        message: str,
        source_id: Optional[str] = None,
        version: Optional[int] = None,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize storage error.

        Args:
            message: Human-readable error message
            source_id: Lineage identifier involved in the failure (optional)
            version: Version number involved in the failure (optional)
            operation: Engine operation that failed, e.g. "upload_transcript" (optional)
            details: Additional structured context (optional)
        """
        super().__init__(message)
        self.message = message
        self.source_id = source_id
        self.version = version
        self.operation = operation
        self.details = details or {}

    @property
    def status_code(self) -> int:
        """HTTP-style status code for this error."""
        return STATUS_CODES[self.kind]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: Dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.source_id is not None:
            result["source_id"] = self.source_id
        if self.version is not None:
            result["version"] = self.version
        if self.operation is not None:
            result["operation"] = self.operation
        if self.details:
            result["details"] = self.details
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind.value}, message={self.message!r})"


class NotFoundError(StorageError):
    """Referenced source_id/version does not exist."""

    kind = ErrorKind.NOT_FOUND


class ValidationError(StorageError, ValueError):
    """Malformed input: bad date, invalid enum value, bad range, missing field."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        fields: Optional[List[str]] = None,
        source_id: Optional[str] = None,
        version: Optional[int] = None,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            source_id=source_id,
            version=version,
            operation=operation,
            details=details,
        )
        self.fields = list(fields or [])

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        if self.fields:
            result["fields"] = self.fields
        return result


class ConflictError(StorageError):
    """Version number already taken, typically by a racing concurrent upload."""

    kind = ErrorKind.CONFLICT


class UnavailableError(StorageError):
    """Blob store or metadata index could not be reached or failed unexpectedly."""

    kind = ErrorKind.UNAVAILABLE


def status_code_for(error: BaseException) -> int:
    """
    Map any exception to an HTTP-style status code.

    Storage errors map by kind; anything else is an internal error (500).

    Example:
        >>> status_code_for(NotFoundError("missing"))
        404
    """
    if isinstance(error, StorageError):
        return error.status_code
    return 500
