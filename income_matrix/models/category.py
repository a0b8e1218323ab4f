"""
Core Data Models for the Income Matrix

These models define the schemas for categories and the derived
aggregates shown next to the grid. They are designed to:
1. Validate names and orders at construction time
2. Serialize to the camelCase JSON used on the wire and in stored blobs
3. Parse ISO timestamps back into datetime values on read

DESIGN DECISION: The grid itself is a plain nested dict
(category id -> month -> amount). It is sparse and is only ever
copied, summed and serialized, so it carries no model wrapper.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =============================================================================
# CONSTANTS
# =============================================================================

FIRST_MONTH = 1
LAST_MONTH = 12
MONTH_RANGE = range(FIRST_MONTH, LAST_MONTH + 1)

MAX_CATEGORY_NAME_LENGTH = 100

MONTHS: dict[int, str] = {
    1: "Ene",
    2: "Feb",
    3: "Mar",
    4: "Abr",
    5: "May",
    6: "Jun",
    7: "Jul",
    8: "Ago",
    9: "Sep",
    10: "Oct",
    11: "Nov",
    12: "Dic",
}

MONTHS_FULL: dict[int, str] = {
    1: "Enero",
    2: "Febrero",
    3: "Marzo",
    4: "Abril",
    5: "Mayo",
    6: "Junio",
    7: "Julio",
    8: "Agosto",
    9: "Septiembre",
    10: "Octubre",
    11: "Noviembre",
    12: "Diciembre",
}

# category id -> month -> amount
YearMatrix = dict[str, dict[int, int]]


def utcnow() -> datetime:
    """Timezone-aware current time, used for category timestamps."""
    return datetime.now(timezone.utc)


def new_category_id() -> str:
    return str(uuid4())


# =============================================================================
# CATEGORY
# =============================================================================

class Category(BaseModel):
    """
    A named, ordered income type (e.g. "Sueldo").

    Names are trimmed and must hold 1..100 characters. Uniqueness is
    enforced by the registry that owns the category, not by the model.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(
        default_factory=new_category_id,
        min_length=1,
        description="Opaque unique identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=MAX_CATEGORY_NAME_LENGTH,
        description="Display name"
    )
    order: int = Field(
        ...,
        ge=0,
        description="Display position (ascending)"
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        description="When the category was created"
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last rename or reorder"
    )

    def to_wire(self) -> dict:
        """JSON-ready dict with camelCase keys and ISO timestamps."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# DERIVED AGGREGATES
# =============================================================================

class MonthTotal(BaseModel):
    """Total income for a single month."""

    month: int = Field(..., ge=FIRST_MONTH, le=LAST_MONTH)
    month_name: str
    value: int = Field(..., ge=0)


class CategoryShare(BaseModel):
    """A category's annual total and its share of the grand total."""

    category_id: str
    category_name: str
    total: int = Field(..., ge=0)
    percentage: float = Field(..., ge=0.0, le=100.0)


class IncomeStatistics(BaseModel):
    """
    Statistics derived from a year's grid.

    highest_month / lowest_month are None when no month has income.
    """

    average_monthly: float = Field(default=0.0, ge=0.0)
    active_months: int = Field(default=0, ge=0, le=LAST_MONTH)
    highest_month: Optional[MonthTotal] = None
    lowest_month: Optional[MonthTotal] = None
    top_categories: list[CategoryShare] = Field(default_factory=list)


class YearSummary(BaseModel):
    """Everything the matrix footer and side panel display for a year."""

    year: int
    monthly_totals: dict[int, int]
    category_totals: dict[str, int]
    grand_total: int = Field(..., ge=0)
    statistics: IncomeStatistics
