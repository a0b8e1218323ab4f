"""
Totals Calculator

Pure functions over a year snapshot (category id -> month -> amount).
Missing categories, months and years all count as 0; nothing here raises.
"""

from collections.abc import Iterable, Mapping
from typing import Optional

from income_matrix.models.category import (
    MONTH_RANGE,
    MONTHS,
    Category,
    CategoryShare,
    IncomeStatistics,
    MonthTotal,
    YearSummary,
)

UNKNOWN_CATEGORY_NAME = "Unknown category"

Grid = Mapping[str, Mapping[int, int]]


def monthly_totals(grid: Grid) -> dict[int, int]:
    """Sum of each month across all categories, for months 1..12."""
    totals = {month: 0 for month in MONTH_RANGE}
    for row in grid.values():
        for month in MONTH_RANGE:
            totals[month] += row.get(month, 0)
    return totals


def category_totals(grid: Grid) -> dict[str, int]:
    """Annual sum per category present in the grid."""
    return {
        category_id: sum(row.get(month, 0) for month in MONTH_RANGE)
        for category_id, row in grid.items()
    }


def grand_total(grid: Grid) -> int:
    return sum(category_totals(grid).values())


def _month_total(month: int, value: int) -> MonthTotal:
    return MonthTotal(month=month, month_name=MONTHS[month], value=value)


def statistics(grid: Grid, categories: Iterable[Category] = ()) -> IncomeStatistics:
    """
    Derive averages, extreme months and the category ranking.

    - average_monthly: grand total / months with a nonzero total (0 if none)
    - highest_month / lowest_month: among nonzero months; ties keep the earliest
    - top_categories: nonzero categories by total descending, with their
      percentage of the grand total; ties keep registry order
    """
    months = monthly_totals(grid)
    totals = category_totals(grid)
    total = sum(totals.values())

    active = [(month, value) for month, value in months.items() if value > 0]
    average = total / len(active) if active else 0.0

    highest: Optional[MonthTotal] = None
    lowest: Optional[MonthTotal] = None
    for month, value in active:
        if highest is None or value > highest.value:
            highest = _month_total(month, value)
        if lowest is None or value < lowest.value:
            lowest = _month_total(month, value)

    ordered = sorted(categories, key=lambda c: c.order)
    names = {category.id: category.name for category in ordered}
    rank = {category.id: position for position, category in enumerate(ordered)}

    shares = [
        CategoryShare(
            category_id=category_id,
            category_name=names.get(category_id, UNKNOWN_CATEGORY_NAME),
            total=value,
            percentage=(value / total) * 100 if total > 0 else 0.0,
        )
        for category_id, value in totals.items()
        if value > 0
    ]
    shares.sort(key=lambda share: (-share.total, rank.get(share.category_id, len(rank))))

    return IncomeStatistics(
        average_monthly=average,
        active_months=len(active),
        highest_month=highest,
        lowest_month=lowest,
        top_categories=shares,
    )


def summarize(year: int, grid: Grid, categories: Iterable[Category] = ()) -> YearSummary:
    """Bundle every aggregate for one year."""
    categories = list(categories)
    return YearSummary(
        year=year,
        monthly_totals=monthly_totals(grid),
        category_totals=category_totals(grid),
        grand_total=grand_total(grid),
        statistics=statistics(grid, categories),
    )
