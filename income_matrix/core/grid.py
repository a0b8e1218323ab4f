"""Sparse per-year income grid: year -> category id -> month -> amount."""

import copy
from collections.abc import Mapping
from typing import Optional

from income_matrix.core.currency import normalize_amount
from income_matrix.models.category import YearMatrix
from income_matrix.validation.validator import is_valid_month, validate_month


def coerce_month_key(key: object) -> Optional[int]:
    """
    Turn a month key from JSON or a caller mapping into an int.

    Returns None for keys that are not whole numbers ("abc", "1.5", True).
    Range is not checked here.
    """
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key
    if isinstance(key, str):
        stripped = key.strip()
        if stripped.lstrip("+-").isdigit():
            return int(stripped)
    return None


class IncomeGrid:
    """
    In-memory income grid for any number of years.

    Unset cells read as 0. Stored amounts are always non-negative
    integers; rounding happens on write. Snapshots returned by
    get_year are deep copies.
    """

    def __init__(self, years: Optional[Mapping[int, Mapping[str, Mapping[object, object]]]] = None):
        self._years: dict[int, YearMatrix] = {}
        for year, matrix in (years or {}).items():
            self.load_year(year, matrix)

    def load_year(self, year: int, matrix: Mapping[str, Mapping[object, object]]) -> None:
        """Replace a year's data wholesale, normalising keys and values."""
        loaded: YearMatrix = {}
        for category_id, row in matrix.items():
            cells: dict[int, int] = {}
            for key, value in row.items():
                month = coerce_month_key(key)
                if month is None or not is_valid_month(month):
                    continue
                cells[month] = normalize_amount(value)
            loaded[str(category_id)] = cells
        self._years[year] = loaded

    def years(self) -> list[int]:
        return sorted(self._years)

    def get_cell(self, year: int, category_id: str, month: int) -> int:
        return self._years.get(year, {}).get(category_id, {}).get(month, 0)

    def set_cell(self, year: int, category_id: str, month: int, value: float) -> int:
        """
        Store a single cell. Raises ValidationError for months outside 1..12.

        Returns:
            The stored (clamped, rounded) amount
        """
        validate_month(month)
        stored = normalize_amount(value)
        self._years.setdefault(year, {}).setdefault(category_id, {})[month] = stored
        return stored

    def set_row(self, year: int, category_id: str, values_by_month: Mapping[object, float]) -> dict[int, int]:
        """
        Store several cells of one row.

        Keys outside 1..12 (or not integral) are skipped without error.

        Returns:
            The month -> amount pairs actually written
        """
        written: dict[int, int] = {}
        for key, value in values_by_month.items():
            month = coerce_month_key(key)
            if month is None or not is_valid_month(month):
                continue
            written[month] = self.set_cell(year, category_id, month, value)
        if category_id not in self._years.get(year, {}):
            self._years.setdefault(year, {})[category_id] = {}
        return written

    def get_year(self, year: int) -> YearMatrix:
        """Independent copy of a year's grid."""
        return copy.deepcopy(self._years.get(year, {}))

    def remove_category(self, category_id: str) -> list[int]:
        """
        Drop every entry for a category across all years.

        Returns:
            The years that held data for the category
        """
        touched = []
        for year, matrix in self._years.items():
            if category_id in matrix:
                del matrix[category_id]
                touched.append(year)
        return sorted(touched)

    def clear(self, year: Optional[int] = None) -> None:
        if year is None:
            self._years.clear()
        else:
            self._years.pop(year, None)
