"""
Bulk/paste ingestion.

Turns clipboard text copied from a spreadsheet into grid updates.
Cells are tab-separated, rows newline-separated. Parsing goes through
the bulk path of the currency parser.
"""

from collections.abc import Iterable

from income_matrix.core.currency import parse_bulk
from income_matrix.core.errors import ValidationError
from income_matrix.models.category import FIRST_MONTH, LAST_MONTH, Category
from income_matrix.validation.validator import is_valid_month


def split_rows(pasted_block: str) -> list[str]:
    """Split on newlines (\\n, \\r\\n or \\r); a single trailing newline is ignored."""
    if not pasted_block:
        return []
    return pasted_block.splitlines()


def ingest_row(pasted_text: str, start_month: int = FIRST_MONTH) -> dict[int, int]:
    """
    Map tab-separated values onto consecutive months from start_month.

    Values past December are dropped. Zero results are omitted, since a
    zero cannot be told apart from an empty pasted cell.
    """
    if not is_valid_month(start_month):
        raise ValidationError(
            f"Start month must be between {FIRST_MONTH} and {LAST_MONTH}, got {start_month!r}"
        )
    if not pasted_text:
        return {}

    available = LAST_MONTH - start_month + 1
    cells = pasted_text.rstrip("\r\n").split("\t")[:available]

    values_by_month = {}
    for offset, value in enumerate(parse_bulk(cells)):
        if value > 0:
            values_by_month[start_month + offset] = value
    return values_by_month


def ingest_matrix(
    pasted_block: str,
    start_category_index: int,
    categories: Iterable[Category],
) -> dict[str, dict[int, int]]:
    """
    Map pasted rows onto categories in registry order.

    Row 0 goes to the category at start_category_index, row 1 to the next
    one, and so on. Rows past the last category are dropped. Each row
    starts at January. Rows that yield no values are left out.
    """
    if isinstance(start_category_index, bool) or not isinstance(start_category_index, int) \
            or start_category_index < 0:
        raise ValidationError(
            f"Start category index must be a non-negative integer, got {start_category_index!r}"
        )

    available = sorted(categories, key=lambda c: c.order)[start_category_index:]
    assignments: dict[str, dict[int, int]] = {}
    for category, row in zip(available, split_rows(pasted_block)):
        values = ingest_row(row, FIRST_MONTH)
        if values:
            assignments[category.id] = values
    return assignments
