"""
Data Models Package

Pydantic models for categories, derived aggregates and audit events.
"""

from income_matrix.models.category import (
    FIRST_MONTH,
    LAST_MONTH,
    MAX_CATEGORY_NAME_LENGTH,
    MONTH_RANGE,
    MONTHS,
    MONTHS_FULL,
    Category,
    CategoryShare,
    IncomeStatistics,
    MonthTotal,
    YearMatrix,
    YearSummary,
)
from income_matrix.models.events import (
    IncomeEvent,
    IncomeEventBuilder,
    IncomeEventSeverity,
    IncomeEventType,
)

__all__ = [
    # Category models
    "FIRST_MONTH",
    "LAST_MONTH",
    "MAX_CATEGORY_NAME_LENGTH",
    "MONTH_RANGE",
    "MONTHS",
    "MONTHS_FULL",
    "Category",
    "CategoryShare",
    "IncomeStatistics",
    "MonthTotal",
    "YearMatrix",
    "YearSummary",
    # Event models
    "IncomeEvent",
    "IncomeEventBuilder",
    "IncomeEventSeverity",
    "IncomeEventType",
]
