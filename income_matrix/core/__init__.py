"""
Income matrix core: currency parsing, the category registry, the
income grid, totals and paste ingestion. No I/O happens here.

Only the leaf modules are re-exported. grid, registry, ingest and totals
import the validation package, which itself imports core.errors, so they
are imported by module path.
"""

from income_matrix.core.currency import (
    format_amount,
    format_for_input,
    format_large_number,
    is_valid_money_string,
    normalize_amount,
    parse_amount,
    parse_bulk,
    sanitize_money_input,
)
from income_matrix.core.errors import (
    AdapterError,
    ErrorCode,
    IncomeMatrixError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    # Currency
    "format_amount",
    "format_for_input",
    "format_large_number",
    "is_valid_money_string",
    "normalize_amount",
    "parse_amount",
    "parse_bulk",
    "sanitize_money_input",
    # Errors
    "AdapterError",
    "ErrorCode",
    "IncomeMatrixError",
    "NotFoundError",
    "ValidationError",
]
