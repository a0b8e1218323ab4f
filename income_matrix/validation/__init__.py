"""Input validation package."""

from income_matrix.validation.validator import (
    is_valid_month,
    validate_category_name,
    validate_month,
    validate_reorder,
    validate_year,
)

__all__ = [
    "is_valid_month",
    "validate_category_name",
    "validate_month",
    "validate_reorder",
    "validate_year",
]
