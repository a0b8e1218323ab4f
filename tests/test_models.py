"""
Tests for the Income Matrix models and error types

Test strategy:
1. Unit tests for individual components (models, errors, validators)
2. Integration tests for flows against in-memory and fake backends
3. No real network or Google API calls in tests
"""

import asyncio
from datetime import datetime, timezone

import pytest

from income_matrix.core.errors import (
    AdapterError,
    ErrorCode,
    IncomeMatrixError,
    NotFoundError,
    ValidationError,
    adapter_operation,
    wrap_adapter_error,
)
from income_matrix.models.category import MONTHS, MONTHS_FULL, Category
from income_matrix.models.events import (
    IncomeEvent,
    IncomeEventBuilder,
    IncomeEventSeverity,
    IncomeEventType,
)
from income_matrix.validation import (
    validate_category_name,
    validate_month,
    validate_reorder,
    validate_year,
)


class TestCategoryModel:
    """Tests for the Category Pydantic model."""

    def test_category_creation(self):
        """Test Category model creation with defaults."""
        category = Category(name="Sueldo", order=0)
        assert category.name == "Sueldo"
        assert category.id
        assert category.created_at.tzinfo is not None

    def test_category_strips_whitespace(self):
        """Test that whitespace is stripped from the name."""
        category = Category(name="  Sueldo  ", order=0)
        assert category.name == "Sueldo"

    def test_category_rejects_negative_order(self):
        """Test that negative orders are rejected."""
        with pytest.raises(ValueError):
            Category(name="Sueldo", order=-1)

    def test_category_rejects_blank_name(self):
        """Test that a whitespace-only name is rejected."""
        with pytest.raises(ValueError):
            Category(name="   ", order=0)

    def test_to_wire_uses_camel_case_and_iso_timestamps(self):
        """Test the wire format used by the API and stored blobs."""
        when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        category = Category(id="c1", name="Sueldo", order=2, created_at=when, updated_at=when)

        wire = category.to_wire()

        assert wire == {
            "id": "c1",
            "name": "Sueldo",
            "order": 2,
            "createdAt": "2024-01-02T03:04:05Z",
            "updatedAt": "2024-01-02T03:04:05Z",
        }

    def test_wire_timestamps_parse_back_to_datetime(self):
        """Test that ISO strings are parsed back into datetime values."""
        category = Category.model_validate({
            "id": "c1",
            "name": "Sueldo",
            "order": 0,
            "createdAt": "2024-01-02T03:04:05+00:00",
            "updatedAt": "2024-02-02T03:04:05+00:00",
        })
        assert isinstance(category.created_at, datetime)
        assert category.updated_at.month == 2

    def test_month_names(self):
        """Test month name tables cover January to December."""
        assert list(MONTHS) == list(range(1, 13))
        assert MONTHS_FULL[1] == "Enero"
        assert MONTHS_FULL[12] == "Diciembre"


class TestIncomeEvents:
    """Tests for audit event models."""

    def test_to_log_dict_drops_unset_fields(self):
        """Test that None context fields are left out of log output."""
        event = IncomeEventBuilder.category_deleted("c1")
        log_dict = event.to_log_dict()

        assert log_dict["event_type"] == "category_deleted"
        assert log_dict["category_id"] == "c1"
        assert "year" not in log_dict
        assert "error_code" not in log_dict

    def test_income_updated_event(self):
        """Test the single-cell update event carries its coordinates."""
        event = IncomeEventBuilder.income_updated(2024, "c1", 3, 500000)
        assert event.event_type == IncomeEventType.INCOME_UPDATED
        assert (event.year, event.month, event.value) == (2024, 3, 500000)

    def test_operation_failed_is_error_severity(self):
        """Test failures are logged at error level."""
        event = IncomeEventBuilder.operation_failed("set_cell", "set_cell_failed", "boom")
        assert event.severity == IncomeEventSeverity.ERROR
        assert event.error_code == "set_cell_failed"
        assert event.details == {"operation": "set_cell"}

    def test_store_reset_is_warning(self):
        """Test destructive resets are logged as warnings."""
        assert IncomeEventBuilder.store_reset().severity == IncomeEventSeverity.WARNING

    def test_event_ids_are_unique(self):
        """Test every event gets its own id."""
        first = IncomeEvent(event_type=IncomeEventType.STORE_RESET, description="a")
        second = IncomeEvent(event_type=IncomeEventType.STORE_RESET, description="b")
        assert first.event_id != second.event_id


class TestErrors:
    """Tests for the tagged error hierarchy."""

    def test_default_codes(self):
        """Test each kind has its own default code."""
        assert ValidationError("x").code == ErrorCode.VALIDATION_FAILED
        assert NotFoundError("x").code == ErrorCode.CATEGORY_NOT_FOUND
        assert isinstance(AdapterError("x"), IncomeMatrixError)

    def test_to_dict_falls_back_to_cause(self):
        """Test the envelope details default to the cause text."""
        error = AdapterError("Failed to save", code=ErrorCode.SAVE_MATRIX_FAILED, cause=OSError("disk full"))
        assert error.to_dict() == {
            "error": "Failed to save",
            "code": "save_matrix_failed",
            "details": "disk full",
        }
        assert error.__cause__ is error.cause

    def test_wrap_passes_known_errors_through(self):
        """Test validation errors keep their kind when wrapped."""
        original = ValidationError("bad month")
        assert wrap_adapter_error(original, ErrorCode.SET_CELL_FAILED, "x") is original

    def test_wrap_converts_unknown_errors(self):
        """Test arbitrary exceptions become AdapterError with the cause kept."""
        cause = RuntimeError("boom")
        wrapped = wrap_adapter_error(cause, ErrorCode.SET_CELL_FAILED, "Failed to save cell")
        assert isinstance(wrapped, AdapterError)
        assert wrapped.code == ErrorCode.SET_CELL_FAILED
        assert wrapped.cause is cause

    def test_adapter_operation_decorator(self):
        """Test the adapter decorator wraps foreign errors only."""

        @adapter_operation(ErrorCode.RESET_FAILED, "Failed to reset")
        async def broken():
            raise KeyError("missing")

        @adapter_operation(ErrorCode.RESET_FAILED, "Failed to reset")
        async def not_found():
            raise NotFoundError("gone")

        with pytest.raises(AdapterError) as exc_info:
            asyncio.run(broken())
        assert exc_info.value.code == ErrorCode.RESET_FAILED
        assert isinstance(exc_info.value.__cause__, KeyError)

        with pytest.raises(NotFoundError):
            asyncio.run(not_found())


class TestValidators:
    """Tests for shared precondition checks."""

    def test_category_name_trimmed(self):
        """Test names are trimmed before use."""
        assert validate_category_name("  Turnos ") == "Turnos"

    @pytest.mark.parametrize("name", ["", "   ", None, 42, "x" * 101])
    def test_invalid_category_names(self, name):
        """Test empty, non-string and overlong names are rejected."""
        with pytest.raises(ValidationError):
            validate_category_name(name)

    def test_duplicate_name_is_case_insensitive(self):
        """Test duplicates are detected regardless of case."""
        existing = [Category(id="c1", name="Sueldo", order=0)]
        with pytest.raises(ValidationError) as exc_info:
            validate_category_name("SUELDO", existing)
        assert exc_info.value.code == ErrorCode.DUPLICATE_NAME

    def test_rename_may_keep_own_name(self):
        """Test a category can be renamed to a different casing of itself."""
        existing = [Category(id="c1", name="Sueldo", order=0)]
        assert validate_category_name("SUELDO", existing, exclude_id="c1") == "SUELDO"

    @pytest.mark.parametrize("month", [0, 13, -1, True, "3", 2.0])
    def test_invalid_months(self, month):
        """Test only integers 1..12 pass the strict month check."""
        with pytest.raises(ValidationError):
            validate_month(month)

    def test_year_bounds(self):
        """Test optional year bounds."""
        assert validate_year(2024, 2000, 2100) == 2024
        with pytest.raises(ValidationError):
            validate_year(1999, 2000, 2100)
        with pytest.raises(ValidationError):
            validate_year("2024")

    def test_reorder_requires_full_id_set(self):
        """Test reorder rejects unknown, duplicate and missing ids."""
        known = ["a", "b", "c"]
        assert validate_reorder(["c", "a", "b"], known) == ["c", "a", "b"]
        with pytest.raises(ValidationError):
            validate_reorder(["a", "b", "zzz"], known)
        with pytest.raises(ValidationError):
            validate_reorder(["a", "a", "b", "c"], known)
        with pytest.raises(ValidationError) as exc_info:
            validate_reorder(["a", "b"], known)
        assert exc_info.value.details == {"missing": ["c"]}
