"""
Structured error types for recordkit.

Schema contract violations propagate to the caller as typed errors that carry
the entity, table and column involved. Everything else in the core degrades
gracefully (a ``False`` return, a ``None`` parse result, a value kept as
text), so the hierarchy is deliberately small.

Manifesto:
    - **Typed Error Hierarchy:** Schema, validation, parse, config and data
      errors are distinguishable without string matching
    - **Rich Context:** Errors name the entity/table/column they concern
    - **Error Chaining:** Original exceptions are preserved as ``cause``

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                      RecordkitError                        │
        │             (category, context, cause)                     │
        ├───────────────────────────────────────────────────────────┤
        │                                                            │
        │  ValidationError        ParseError        ConfigError      │
        │  (VALIDATION)           (PARSE)           (CONFIG)         │
        │       │                                       │            │
        │  SchemaError                       DataSourceNotFoundError │
        │  TypeMismatchError                                         │
        │  RequiredValueError     DataError (DATA)                   │
        └───────────────────────────────────────────────────────────┘

Examples:
    >>> error = SchemaError("Column Age not found", name="Age")
    >>> error.category
    <ErrorCategory.SCHEMA: 'SCHEMA'>
    >>> error.with_context(table_name="Customer").context.table_name
    'Customer'

Guardrails:
    ❌ DON'T: Raise from grammar ``parse_*`` functions on malformed input
    ✅ DO: Return None there and keep ParseError for the strict ``loads_*`` API

    ❌ DON'T: Swallow the original exception when wrapping
    ✅ DO: Pass it as cause=

Tags:
    error-handling, exception-hierarchy, error-context, recordkit
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories for classification and logging."""

    SCHEMA = "SCHEMA"             # Unknown table/column, duplicate column
    VALIDATION = "VALIDATION"     # Value rejected by a column contract
    PARSE = "PARSE"               # Grammar or query text could not be read
    CONFIG = "CONFIG"             # Missing data source, invalid settings
    DATA = "DATA"                 # Connector level failures

    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"           # Uncategorized errors


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set end up in ``to_dict()``; anything without a
    dedicated field goes to ``metadata``.
    """

    entity_name: str | None = None
    table_name: str | None = None
    column_name: str | None = None
    data_type: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["entity_name", "table_name", "column_name", "data_type"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RecordkitError(Exception):
    """
    Base exception for all recordkit errors.

    Subclasses set ``default_category``; callers may override it per
    instance.

    Examples:
        >>> error = RecordkitError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["error_type"]
        'RecordkitError'
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

    def with_context(self, **kwargs: Any) -> RecordkitError:
        """
        Add context to this error (fluent API).

        Usage:
            raise SchemaError("Unknown column").with_context(
                table_name="Customer", column_name="Agee"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
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
# VALIDATION ERRORS
# =============================================================================


class ValidationError(RecordkitError):
    """A value violates a column or record contract."""

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.constraint = constraint

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        if self.constraint:
            result["constraint"] = self.constraint
        return result


class SchemaError(ValidationError):
    """
    Schema contract violation.

    Raised for unknown tables or columns, duplicate columns in a row and
    data type mismatches during schema-validated reads. ``name`` is the
    offending table or column, ``data_type`` the declared type when one
    applies.
    """

    default_category = ErrorCategory.SCHEMA

    def __init__(
        self,
        message: str,
        *,
        name: str | None = None,
        data_type: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, field=name, **kwargs)
        self.name = name
        self.data_type = data_type
        if name:
            self.context.column_name = name
        if data_type is not None:
            self.context.data_type = getattr(data_type, "name", str(data_type))


class TypeMismatchError(SchemaError):
    """An indexer write was rejected by the bound table schema."""

    def __init__(self, name: str, value: Any = None):
        super().__init__(
            f"Incorrect column name: '{name}' or value data type.",
            name=name,
        )
        self.value = value


class RequiredValueError(ValidationError):
    """A required column has no value."""

    def __init__(self, column: str, entity_name: str | None = None):
        super().__init__(
            f"Column '{column}' requires a value",
            field=column,
            constraint="required",
        )
        self.context.column_name = column
        self.context.entity_name = entity_name


# =============================================================================
# PARSE / CONFIG / DATA ERRORS
# =============================================================================


class ParseError(RecordkitError):
    """Text could not be read as grammar or query syntax."""

    default_category = ErrorCategory.PARSE

    def __init__(self, message: str, *, text: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.text = text


class ConfigError(RecordkitError):
    """
    Configuration error.

    Never recoverable at runtime: configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG


class DataSourceNotFoundError(ConfigError):
    """No data source is registered under the requested name."""

    def __init__(self, name: str):
        self.source_name = name
        super().__init__(f"Data source not found: {name}")


class DataError(RecordkitError):
    """A connector could not complete an operation."""

    default_category = ErrorCategory.DATA


# =============================================================================
# UTILITIES
# =============================================================================


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, RecordkitError):
        return error.category
    if isinstance(error, (TypeError, ValueError)):
        return ErrorCategory.VALIDATION
    if isinstance(error, (KeyError, AttributeError)):
        return ErrorCategory.SCHEMA
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RecordkitError",
    "ValidationError",
    "SchemaError",
    "TypeMismatchError",
    "RequiredValueError",
    "ParseError",
    "ConfigError",
    "DataSourceNotFoundError",
    "DataError",
    "categorize_error",
]
