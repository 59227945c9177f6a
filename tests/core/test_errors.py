"""Tests for recordkit.core.errors module."""

import pytest

from recordkit.core.errors import (
    ConfigError,
    DataError,
    DataSourceNotFoundError,
    ErrorCategory,
    ErrorContext,
    ParseError,
    RecordkitError,
    RequiredValueError,
    SchemaError,
    TypeMismatchError,
    ValidationError,
    categorize_error,
)
from recordkit.core.enums import DataType


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_create_empty_context(self):
        """Create context with no fields set."""
        ctx = ErrorContext()
        assert ctx.entity_name is None
        assert ctx.metadata == {}
        assert ctx.to_dict() == {}

    def test_to_dict_includes_set_fields(self):
        """to_dict includes only non-None fields plus metadata."""
        ctx = ErrorContext(table_name="Customer", metadata={"row": 3})
        d = ctx.to_dict()
        assert d == {"table_name": "Customer", "row": 3}


class TestRecordkitError:
    """Test the base error."""

    def test_default_category_is_internal(self):
        error = RecordkitError("boom")
        assert error.category == ErrorCategory.INTERNAL
        assert str(error) == "boom"

    def test_with_context_known_and_unknown_keys(self):
        """Known keys land on the context, others in metadata."""
        error = RecordkitError("boom").with_context(entity_name="Order", attempt=2)
        assert error.context.entity_name == "Order"
        assert error.context.metadata == {"attempt": 2}

    def test_cause_is_chained(self):
        cause = ValueError("bad")
        error = RecordkitError("wrapped", cause=cause)
        assert error.__cause__ is cause
        assert error.to_dict()["cause"] == "bad"

    def test_to_dict(self):
        d = RecordkitError("boom", category=ErrorCategory.DATA).to_dict()
        assert d["error_type"] == "RecordkitError"
        assert d["category"] == "DATA"
        assert "context" not in d


class TestSchemaErrors:
    """Test schema and validation errors."""

    def test_schema_error_sets_column_context(self):
        error = SchemaError("Column Age not found", name="Age", data_type=DataType.INT32)
        assert error.category == ErrorCategory.SCHEMA
        assert error.context.column_name == "Age"
        assert error.context.data_type == "INT32"
        assert isinstance(error, ValidationError)

    def test_type_mismatch_message(self):
        error = TypeMismatchError("Age", "old")
        assert str(error) == "Incorrect column name: 'Age' or value data type."
        assert error.value == "old"
        assert isinstance(error, SchemaError)

    def test_required_value_error(self):
        error = RequiredValueError("Name", "Customer")
        assert error.constraint == "required"
        assert error.context.entity_name == "Customer"
        assert error.category == ErrorCategory.VALIDATION

    def test_validation_error_to_dict(self):
        d = ValidationError("Duplicate key", field="Id", value=1, constraint="unique").to_dict()
        assert d["field"] == "Id"
        assert d["value"] == "1"
        assert d["constraint"] == "unique"


class TestOtherErrors:
    """Test parse, config and data errors."""

    def test_parse_error_keeps_text(self):
        error = ParseError("Malformed entity text", text="{oops")
        assert error.text == "{oops"
        assert error.category == ErrorCategory.PARSE

    def test_data_source_not_found(self):
        error = DataSourceNotFoundError("main")
        assert error.source_name == "main"
        assert str(error) == "Data source not found: main"
        assert isinstance(error, ConfigError)

    @pytest.mark.parametrize(
        "error, category",
        [
            (SchemaError("x"), ErrorCategory.SCHEMA),
            (DataError("x"), ErrorCategory.DATA),
            (ConfigError("x"), ErrorCategory.CONFIG),
            (KeyError("x"), ErrorCategory.SCHEMA),
            (RuntimeError("x"), ErrorCategory.UNKNOWN),
        ],
    )
    def test_categorize_error(self, error, category):
        assert categorize_error(error) == category
