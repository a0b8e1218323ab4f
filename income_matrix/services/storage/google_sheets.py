"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets serves as the hosted backend because:
1. The household can view and fix their numbers directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

Layout:
- Categories sheet: one row per category
- Matrix sheet: one row per stored cell (year, category_id, month, value)

TRADEOFFS:
- No transactions; deleting a category removes its row first and its
  matrix rows afterwards
- Limited query capabilities (we filter in Python)
"""

import random
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from typing import Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from income_matrix.config import GoogleSheetsSettings, get_settings
from income_matrix.core.errors import (
    AdapterError,
    ErrorCode,
    NotFoundError,
    adapter_operation,
)
from income_matrix.core.grid import IncomeGrid
from income_matrix.core.registry import CategoryRegistry
from income_matrix.models.category import Category, YearMatrix, new_category_id, utcnow
from income_matrix.services.storage.interface import IncomeStorageInterface
from income_matrix.services.storage.seed import seed_demo_data

logger = structlog.get_logger(__name__)


# Column mappings for the Categories sheet
CATEGORY_COLUMNS = [
    "id",
    "name",
    "order",
    "created_at",
    "updated_at",
]

# Column mappings for the Matrix sheet
MATRIX_COLUMNS = [
    "year",
    "category_id",
    "month",
    "value",
]

_NAME_COL = CATEGORY_COLUMNS.index("name") + 1
_ORDER_COL = CATEGORY_COLUMNS.index("order") + 1
_UPDATED_AT_COL = CATEGORY_COLUMNS.index("updated_at") + 1
_VALUE_COL = MATRIX_COLUMNS.index("value") + 1

# Reads and upserts are safe to repeat; appends are not retried.
sheets_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError as e:
                raise AdapterError(
                    f"Google credentials file not found: {self._settings.credentials_path}",
                    code=ErrorCode.CONNECTION_FAILED,
                    cause=e,
                ) from e
            except Exception as e:
                raise AdapterError(
                    f"Failed to connect to Google Sheets: {e}",
                    code=ErrorCode.CONNECTION_FAILED,
                    cause=e,
                ) from e

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound as e:
                raise AdapterError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}",
                    code=ErrorCode.CONNECTION_FAILED,
                    cause=e,
                ) from e
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)
        return sheet

    def get_categories_sheet(self) -> gspread.Worksheet:
        """Get or create the categories worksheet."""
        return self._get_or_create(
            self._settings.categories_sheet_name, CATEGORY_COLUMNS, rows=200
        )

    def get_matrix_sheet(self) -> gspread.Worksheet:
        """Get or create the matrix worksheet."""
        return self._get_or_create(
            self._settings.matrix_sheet_name, MATRIX_COLUMNS, rows=5000
        )


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsIncomeStorage(IncomeStorageInterface):
    """
    Google Sheets implementation of income storage.

    The client only needs get_categories_sheet() and get_matrix_sheet();
    each returned worksheet is used through get_all_values, append_row,
    update_cell, delete_rows and clear.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        seed_demo_data: bool = True,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_category_id,
    ):
        self._client = client or GoogleSheetsClient()
        self._seed = seed_demo_data
        self._rng = rng
        self._clock = clock
        self._id_factory = id_factory
        self._initialized = False

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    def _category_to_row(self, category: Category) -> list:
        """Convert a Category to a spreadsheet row."""
        return [
            category.id,
            category.name,
            str(category.order),
            category.created_at.isoformat(),
            category.updated_at.isoformat(),
        ]

    def _row_to_category(self, row: list) -> Category:
        """Convert a spreadsheet row to a Category."""
        return Category(
            id=_safe_get(row, 0),
            name=_safe_get(row, 1),
            order=int(_safe_get(row, 2, "0")),
            created_at=datetime.fromisoformat(_safe_get(row, 3)),
            updated_at=datetime.fromisoformat(_safe_get(row, 4)),
        )

    def _read_categories(self) -> list[tuple[int, Category]]:
        """(sheet row number, category) pairs; malformed rows are skipped."""
        sheet = self._client.get_categories_sheet()
        found = []
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if not row or not row[0]:
                continue
            try:
                found.append((idx, self._row_to_category(row)))
            except (ValueError, TypeError) as e:
                logger.warning("sheets_category_row_skipped", row=idx, error=str(e))
        return found

    def _read_matrix_rows(self) -> list[tuple[int, int, str, int, int]]:
        """(sheet row number, year, category_id, month, value) for every parseable row."""
        sheet = self._client.get_matrix_sheet()
        found = []
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if not row or not row[0]:
                continue
            try:
                found.append((
                    idx,
                    int(_safe_get(row, 0)),
                    _safe_get(row, 1),
                    int(_safe_get(row, 2)),
                    int(float(_safe_get(row, 3, "0"))),
                ))
            except ValueError as e:
                logger.warning("sheets_matrix_row_skipped", row=idx, error=str(e))
        return found

    def _registry(self) -> tuple[CategoryRegistry, dict[str, int]]:
        rows = self._read_categories()
        registry = CategoryRegistry(
            (category for _, category in rows),
            clock=self._clock,
            id_factory=self._id_factory,
        )
        return registry, {category.id: idx for idx, category in rows}

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        if self._initialized:
            return
        try:
            self._client.get_categories_sheet()
            self._client.get_matrix_sheet()
            if not await self.list_categories() and self._seed:
                await seed_demo_data(self, rng=self._rng, today=self._clock().date())
        except Exception as e:
            raise AdapterError(
                "Failed to initialize Google Sheets storage",
                code=ErrorCode.INIT_FAILED,
                cause=e,
            ) from e
        self._initialized = True

    @adapter_operation(ErrorCode.RESET_FAILED, "Failed to reset Google Sheets storage")
    async def reset(self) -> None:
        for sheet, columns in (
            (self._client.get_categories_sheet(), CATEGORY_COLUMNS),
            (self._client.get_matrix_sheet(), MATRIX_COLUMNS),
        ):
            sheet.clear()
            sheet.append_row(columns)
        self._initialized = False

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    @adapter_operation(ErrorCode.LOAD_CATEGORIES_FAILED, "Failed to load categories")
    @sheets_retry
    async def list_categories(self) -> list[Category]:
        registry, _ = self._registry()
        return registry.list()

    @adapter_operation(ErrorCode.CREATE_CATEGORY_FAILED, "Failed to create category")
    async def create_category(self, name: str) -> Category:
        registry, _ = self._registry()
        category = registry.create(name)
        sheet = self._client.get_categories_sheet()
        sheet.append_row(self._category_to_row(category), value_input_option="RAW")
        return category

    @adapter_operation(ErrorCode.RENAME_CATEGORY_FAILED, "Failed to rename category")
    async def rename_category(self, category_id: str, name: str) -> None:
        registry, rows = self._registry()
        renamed = registry.rename(category_id, name)
        sheet = self._client.get_categories_sheet()
        sheet.update_cell(rows[category_id], _NAME_COL, renamed.name)
        sheet.update_cell(rows[category_id], _UPDATED_AT_COL, renamed.updated_at.isoformat())

    @adapter_operation(ErrorCode.DELETE_CATEGORY_FAILED, "Failed to delete category")
    async def delete_category(self, category_id: str) -> None:
        registry, rows = self._registry()
        if category_id not in registry:
            raise NotFoundError(f"Category not found: {category_id}")

        self._client.get_categories_sheet().delete_rows(rows[category_id])

        # Bottom-up so earlier row numbers stay valid
        matrix_sheet = self._client.get_matrix_sheet()
        doomed = [idx for idx, _, cat_id, _, _ in self._read_matrix_rows() if cat_id == category_id]
        for idx in sorted(doomed, reverse=True):
            matrix_sheet.delete_rows(idx)

    @adapter_operation(ErrorCode.REORDER_CATEGORIES_FAILED, "Failed to reorder categories")
    async def reorder_categories(self, ordered_ids: Sequence[str]) -> None:
        registry, rows = self._registry()
        sheet = self._client.get_categories_sheet()
        for category in registry.reorder(ordered_ids):
            sheet.update_cell(rows[category.id], _ORDER_COL, str(category.order))
            sheet.update_cell(rows[category.id], _UPDATED_AT_COL, category.updated_at.isoformat())

    # -------------------------------------------------------------------------
    # Matrix
    # -------------------------------------------------------------------------

    @adapter_operation(ErrorCode.LOAD_MATRIX_FAILED, "Failed to load matrix")
    @sheets_retry
    async def get_matrix(self, year: int) -> YearMatrix:
        matrix: dict[str, dict[int, int]] = {}
        for _, row_year, category_id, month, value in self._read_matrix_rows():
            if row_year == year:
                matrix.setdefault(category_id, {})[month] = value
        return IncomeGrid({year: matrix}).get_year(year)

    @adapter_operation(ErrorCode.SET_CELL_FAILED, "Failed to save cell")
    @sheets_retry
    async def set_cell(self, year: int, category_id: str, month: int, value: float) -> None:
        stored = IncomeGrid().set_cell(year, category_id, month, value)
        self._upsert(year, category_id, {month: stored})

    @adapter_operation(ErrorCode.BULK_SET_ROW_FAILED, "Failed to save row")
    @sheets_retry
    async def bulk_set_row(
        self,
        year: int,
        category_id: str,
        values_by_month: Mapping[int, float],
    ) -> None:
        written = IncomeGrid().set_row(year, category_id, values_by_month)
        self._upsert(year, category_id, written)

    def _upsert(self, year: int, category_id: str, values_by_month: Mapping[int, int]) -> None:
        sheet = self._client.get_matrix_sheet()
        existing = {
            (row_year, cat_id, month): idx
            for idx, row_year, cat_id, month, _ in self._read_matrix_rows()
        }
        for month, value in sorted(values_by_month.items()):
            idx = existing.get((year, category_id, month))
            if idx is None:
                sheet.append_row([str(year), category_id, str(month), str(value)], value_input_option="RAW")
            else:
                sheet.update_cell(idx, _VALUE_COL, str(value))
