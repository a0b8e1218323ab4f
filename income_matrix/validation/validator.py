"""
Input Validation

Precondition checks shared by the registry, the grid, the service and
the HTTP layer. Each check raises ValidationError before anything is
mutated, so a failed call never leaves a partial change behind.

IMPORTANT: Validation never silently fixes a value it rejects. The only
normalisation performed here is trimming category names.
"""

from collections.abc import Iterable
from typing import Optional

from income_matrix.core.errors import ErrorCode, ValidationError
from income_matrix.models.category import (
    FIRST_MONTH,
    LAST_MONTH,
    MAX_CATEGORY_NAME_LENGTH,
    Category,
)


def validate_category_name(
    name: object,
    existing: Iterable[Category] = (),
    exclude_id: Optional[str] = None,
) -> str:
    """
    Trim and validate a category name.

    Args:
        name: Raw name from the caller
        existing: Categories the name must not collide with (case-insensitive)
        exclude_id: Category being renamed, allowed to keep its own name

    Returns:
        The trimmed name
    """
    if not isinstance(name, str):
        raise ValidationError("Category name must be a string")

    trimmed = name.strip()
    if not trimmed:
        raise ValidationError("Category name is required")
    if len(trimmed) > MAX_CATEGORY_NAME_LENGTH:
        raise ValidationError(
            f"Category name must be at most {MAX_CATEGORY_NAME_LENGTH} characters"
        )

    lowered = trimmed.casefold()
    for category in existing:
        if category.id == exclude_id:
            continue
        if category.name.casefold() == lowered:
            raise ValidationError(
                f"A category named '{category.name}' already exists",
                code=ErrorCode.DUPLICATE_NAME,
            )
    return trimmed


def is_valid_month(month: object) -> bool:
    """True for integers 1..12 (bools excluded)."""
    return (
        isinstance(month, int)
        and not isinstance(month, bool)
        and FIRST_MONTH <= month <= LAST_MONTH
    )


def validate_month(month: object) -> int:
    """Strict month check used by single-cell writes."""
    if not is_valid_month(month):
        raise ValidationError(
            f"Month must be an integer between {FIRST_MONTH} and {LAST_MONTH}, got {month!r}"
        )
    return month


def validate_year(year: object, min_year: Optional[int] = None, max_year: Optional[int] = None) -> int:
    """Check a year is an integer, optionally within bounds."""
    if not isinstance(year, int) or isinstance(year, bool):
        raise ValidationError(f"Year must be an integer, got {year!r}")
    if min_year is not None and year < min_year:
        raise ValidationError(f"Year must be >= {min_year}")
    if max_year is not None and year > max_year:
        raise ValidationError(f"Year must be <= {max_year}")
    return year


def validate_reorder(ordered_ids: Iterable[str], known_ids: Iterable[str]) -> list[str]:
    """
    Check a reorder request names every known category exactly once.

    Unknown ids, duplicates and missing ids are all rejected.
    """
    if isinstance(ordered_ids, str):
        raise ValidationError("Reorder expects a sequence of category ids")

    ordered = list(ordered_ids)
    known = set(known_ids)

    unknown = [category_id for category_id in ordered if category_id not in known]
    if unknown:
        raise ValidationError(
            f"Unknown category id(s): {', '.join(map(str, unknown))}",
            details={"unknown": unknown},
        )

    if len(set(ordered)) != len(ordered):
        raise ValidationError("Reorder contains duplicate category ids")

    missing = sorted(known - set(ordered))
    if missing:
        raise ValidationError(
            "Reorder must list every category exactly once",
            details={"missing": missing},
        )
    return ordered
