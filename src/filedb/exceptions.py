"""
Exception hierarchy for the file database.

All exceptions inherit from FileDBError, which carries an ErrorKind tag and
optional context for structured error handling and logging. Errors raised by
other libraries (sqlite3, zlib, the OS) never escape a public operation
directly; they are wrapped in InternalError.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """The closed set of failure kinds a FileDB operation can report."""

    GENERAL = "general"
    INTERNAL = "internal"
    TIME_STAMP_NOT_AVAILABLE = "time_stamp_not_available"
    NO_MATCH = "no_match"


class FileDBError(Exception):
    """Base exception for all file database errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    kind: ErrorKind = ErrorKind.GENERAL

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class GeneralError(FileDBError):
    """Raised when a caller violates a precondition of this library.

    Examples:
        - Using a handle after it was closed
        - Passing a payload that is not bytes-like
        - Passing a time stamp that is not a datetime
    """

    kind = ErrorKind.GENERAL


class InternalError(FileDBError):
    """Raised when another library fails underneath an operation.

    The original exception is kept in ``error`` and chained as ``__cause__``
    by the raising site.
    """

    kind = ErrorKind.INTERNAL

    def __init__(
        self,
        error: BaseException,
        message: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or str(error) or type(error).__name__, context)
        self.error = error

    @classmethod
    def wrap(cls, error: BaseException, **context: Any) -> InternalError:
        """Wrap a foreign exception, recording its type in the context."""
        return cls(error, context={"error_type": type(error).__name__, **context})


class TimeStampNotAvailableError(FileDBError):
    """Raised when no row exists for a (key, time stamp) pair."""

    kind = ErrorKind.TIME_STAMP_NOT_AVAILABLE

    def __init__(self, key: str, time_stamp: datetime) -> None:
        super().__init__(
            f"No data available for key {key} and time stamp {time_stamp}"
        )
        self.key = key
        self.time_stamp = time_stamp


class NoMatchError(FileDBError):
    """Raised when a key has no rows under any time stamp."""

    kind = ErrorKind.NO_MATCH

    def __init__(self, key: str) -> None:
        super().__init__(f"No match found for key {key}")
        self.key = key
