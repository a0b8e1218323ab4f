"""
Audit Models for the Income Matrix

Every mutation that goes through the service produces an IncomeEvent.
Events are logged with structlog and handed to any subscribed listener
(for example a view that re-derives totals after each edit).

Events are append-only; nothing edits or deletes them after creation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class IncomeEventType(str, Enum):
    """Types of events we record."""
    # Categories
    CATEGORY_ADDED = "category_added"
    CATEGORY_RENAMED = "category_renamed"
    CATEGORY_DELETED = "category_deleted"
    CATEGORIES_REORDERED = "categories_reordered"

    # Grid
    INCOME_UPDATED = "income_updated"
    INCOME_ROW_UPDATED = "income_row_updated"

    # Store
    STORE_INITIALIZED = "store_initialized"
    STORE_RESET = "store_reset"

    # Failures
    OPERATION_FAILED = "operation_failed"


class IncomeEventSeverity(str, Enum):
    """Severity level for income events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class IncomeEvent(BaseModel):
    """A single recorded change to the income store."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )
    event_type: IncomeEventType
    severity: IncomeEventSeverity = IncomeEventSeverity.INFO

    # What the event is about
    year: Optional[int] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    month: Optional[int] = None
    value: Optional[int] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Flatten for structured logging, dropping unset context fields."""
        payload = {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "description": self.description,
        }
        for key in ("year", "category_id", "category_name", "month", "value",
                    "error_code", "error_message"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        if self.details:
            payload["details"] = self.details
        return payload


class IncomeEventBuilder:
    """
    Helper class to build events with common patterns.

    Usage:
        event = IncomeEventBuilder.category_added(category_id, "Sueldo")
        await audit_logger.log(event)
    """

    @staticmethod
    def category_added(category_id: str, name: str, order: int) -> IncomeEvent:
        return IncomeEvent(
            event_type=IncomeEventType.CATEGORY_ADDED,
            category_id=category_id,
            category_name=name,
            description=f"Category added: {name}",
            details={"order": order},
        )

    @staticmethod
    def category_renamed(category_id: str, name: str) -> IncomeEvent:
        return IncomeEvent(
            event_type=IncomeEventType.CATEGORY_RENAMED,
            category_id=category_id,
            category_name=name,
            description=f"Category renamed to {name}",
        )

    @staticmethod
    def category_deleted(category_id: str) -> IncomeEvent:
        return IncomeEvent(
            event_type=IncomeEventType.CATEGORY_DELETED,
            category_id=category_id,
            description="Category deleted with its grid entries",
        )

    @staticmethod
    def categories_reordered(order: list[str]) -> IncomeEvent:
        return IncomeEvent(
            event_type=IncomeEventType.CATEGORIES_REORDERED,
            description=f"Reordered {len(order)} categories",
            details={"order": list(order)},
        )

    @staticmethod
    def income_updated(year: int, category_id: str, month: int, value: int) -> IncomeEvent:
        return IncomeEvent(
            event_type=IncomeEventType.INCOME_UPDATED,
            year=year,
            category_id=category_id,
            month=month,
            value=value,
            description=f"Cell {year}/{month} updated",
        )

    @staticmethod
    def income_row_updated(
        year: int,
        category_id: str,
        values_by_month: dict[int, int],
    ) -> IncomeEvent:
        return IncomeEvent(
            event_type=IncomeEventType.INCOME_ROW_UPDATED,
            year=year,
            category_id=category_id,
            description=f"Updated {len(values_by_month)} cells in {year}",
            details={"values_by_month": {str(m): v for m, v in values_by_month.items()}},
        )

    @staticmethod
    def store_initialized(category_count: int) -> IncomeEvent:
        return IncomeEvent(
            event_type=IncomeEventType.STORE_INITIALIZED,
            severity=IncomeEventSeverity.DEBUG,
            description="Income store initialized",
            details={"category_count": category_count},
        )

    @staticmethod
    def store_reset() -> IncomeEvent:
        return IncomeEvent(
            event_type=IncomeEventType.STORE_RESET,
            severity=IncomeEventSeverity.WARNING,
            description="All categories and years cleared",
        )

    @staticmethod
    def operation_failed(operation: str, error_code: str, error_message: str) -> IncomeEvent:
        return IncomeEvent(
            event_type=IncomeEventType.OPERATION_FAILED,
            severity=IncomeEventSeverity.ERROR,
            description=f"Operation failed: {operation}",
            error_code=error_code,
            error_message=error_message,
            details={"operation": operation},
        )
