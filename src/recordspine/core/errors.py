"""
Structured error types for record-spine.

Every error raised by the mapping core carries a category, a structured
context (table, column, field, SQL) and an optional chained cause, so
callers can log it or route it without parsing messages.

Errors raised by the database driver itself (``sqlite3.Error``,
SQLAlchemy errors) are never wrapped: they reach the caller unchanged.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                      RecordSpineError                            │
        │               (category, context, cause)                        │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ConfigError        BuildError        DecodeError               │
        │  (CONFIG)           (BUILD)           (DECODE)                  │
        │     │                                     │                      │
        │  NotAStructError                   UnsupportedTypeError         │
        │  MissingConfigError                                             │
        │                                                                  │
        │  DatabaseError      MigrationError                              │
        │  (DATABASE)         (MIGRATION)                                 │
        │     │                                                            │
        │  NoRowsAffectedError                                            │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> err = DecodeError("cannot parse", field="age", target="int")
    >>> err.context.field
    'age'
    >>> err.to_dict()["category"]
    'DECODE'

Tags:
    error-handling, exception-hierarchy, error-context, record-spine
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONFIG = "CONFIG"             # Non-record passed, missing credentials
    BUILD = "BUILD"               # Malformed clause combinations
    DECODE = "DECODE"             # Column value cannot be decoded into a field
    DATABASE = "DATABASE"         # Write affected nothing, driver-level issues
    MIGRATION = "MIGRATION"       # Migration discovery/bookkeeping
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        table: Table the statement was built against
        column: Column involved (qualified or not)
        field: Record field involved
        sql: Statement text, when one was built
        metadata: Additional key-value pairs
    """

    table: str | None = None
    column: str | None = None
    field: str | None = None
    sql: str | None = None

    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["table", "column", "field", "sql"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RecordSpineError(Exception):
    """
    Base exception for all record-spine errors.

    Subclasses set ``default_category``; the instance carries the message,
    category, an :class:`ErrorContext` and the chained ``cause``.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RecordSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise BuildError("No primary key").with_context(table="widgets")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(RecordSpineError):
    """Invalid input or configuration. Detected before any statement is built."""

    default_category = ErrorCategory.CONFIG


class NotAStructError(ConfigError):
    """A value that is not a dataclass record was given where a record is required."""

    def __init__(self, value: Any, message: str | None = None):
        kind = value.__name__ if isinstance(value, type) else type(value).__name__
        super().__init__(message or f"Model given is not a record: {kind}")
        self.value = value


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        super().__init__(message or f"Missing required config: {key}")
        self.key = key


# =============================================================================
# BUILD ERRORS
# =============================================================================


class BuildError(RecordSpineError):
    """The accumulated clauses cannot form a valid statement."""

    default_category = ErrorCategory.BUILD


# =============================================================================
# DECODE ERRORS
# =============================================================================


class DecodeError(RecordSpineError):
    """A column value cannot be decoded into its destination field."""

    default_category = ErrorCategory.DECODE

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        target: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.target = target
        self.value = value
        if field is not None:
            self.context.field = field

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.target:
            result["target"] = self.target
        return result


class UnsupportedTypeError(DecodeError):
    """The destination field's type has no decoding rule."""


# =============================================================================
# DATABASE / MIGRATION ERRORS
# =============================================================================


class DatabaseError(RecordSpineError):
    """A statement executed but its outcome is not acceptable."""

    default_category = ErrorCategory.DATABASE


class NoRowsAffectedError(DatabaseError):
    """An update matched no rows."""


class MigrationError(RecordSpineError):
    """Migration discovery or bookkeeping failed."""

    default_category = ErrorCategory.MIGRATION


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, RecordSpineError):
        return error.category
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RecordSpineError",
    "ConfigError",
    "NotAStructError",
    "MissingConfigError",
    "BuildError",
    "DecodeError",
    "UnsupportedTypeError",
    "DatabaseError",
    "NoRowsAffectedError",
    "MigrationError",
    "categorize_error",
]
