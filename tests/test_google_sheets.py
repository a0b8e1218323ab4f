"""Tests for the Google Sheets adapter against in-memory fake worksheets."""

import asyncio
import json
import random

import gspread
import pytest
import requests
from tenacity import wait_none

from income_matrix.core.errors import AdapterError, ErrorCode, NotFoundError, ValidationError
from income_matrix.services.storage.google_sheets import (
    CATEGORY_COLUMNS,
    MATRIX_COLUMNS,
    GoogleSheetsIncomeStorage,
)


def api_error(status: int) -> gspread.exceptions.APIError:
    response = requests.Response()
    response.status_code = status
    response._content = json.dumps({
        "error": {"code": status, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"},
    }).encode()
    return gspread.exceptions.APIError(response)


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the adapter."""

    def __init__(self, header):
        self.rows = [list(header)]
        self.appends = 0

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.appends += 1
        self.rows.append([str(value) for value in values])

    def update_cell(self, row, col, value):
        cells = self.rows[row - 1]
        while len(cells) < col:
            cells.append("")
        cells[col - 1] = str(value)

    def delete_rows(self, index):
        del self.rows[index - 1]

    def clear(self):
        self.rows = []


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient."""

    def __init__(self):
        self.categories = FakeWorksheet(CATEGORY_COLUMNS)
        self.matrix = FakeWorksheet(MATRIX_COLUMNS)

    def get_categories_sheet(self):
        return self.categories

    def get_matrix_sheet(self):
        return self.matrix


class ExplodingClient(FakeSheetsClient):
    """Client whose sheets cannot be reached."""

    def get_categories_sheet(self):
        raise ConnectionError("quota exceeded")


@pytest.fixture
def sheets():
    return FakeSheetsClient()


@pytest.fixture
def storage(sheets, clock, id_factory):
    return GoogleSheetsIncomeStorage(
        client=sheets,
        seed_demo_data=False,
        rng=random.Random(1),
        clock=clock,
        id_factory=id_factory,
    )


class TestGoogleSheetsCategories:
    """Category rows in the categories worksheet."""

    def test_create_appends_row(self, storage, sheets):
        """Test a new category becomes one sheet row."""
        category = asyncio.run(storage.create_category(" Sueldo "))

        assert category.name == "Sueldo"
        assert sheets.categories.rows[1][:3] == ["id1", "Sueldo", "0"]

    def test_list_parses_rows(self, storage, sheets):
        """Test rows read back as categories sorted by order."""
        sheets.categories.rows += [
            ["b", "Turnos", "1", "2024-01-01T00:00:00+00:00", "2024-01-01T00:00:00+00:00"],
            ["a", "Sueldo", "0", "2024-01-01T00:00:00+00:00", "2024-01-01T00:00:00+00:00"],
            ["", "", "", "", ""],
            ["bad", "Broken", "not-a-number", "", ""],
        ]

        categories = asyncio.run(storage.list_categories())

        assert [c.id for c in categories] == ["a", "b"]
        assert categories[0].created_at.year == 2024

    def test_duplicate_rejected(self, storage):
        """Test uniqueness is checked against sheet contents."""
        async def run():
            await storage.create_category("Sueldo")
            await storage.create_category("SUELDO")

        with pytest.raises(ValidationError):
            asyncio.run(run())

    def test_rename_and_reorder(self, storage, sheets):
        """Test rename and reorder update cells in place."""
        async def run():
            await storage.create_category("Sueldo")
            await storage.create_category("Turnos")
            await storage.rename_category("id1", "Salario")
            await storage.reorder_categories(["id2", "id1"])
            return await storage.list_categories()

        categories = asyncio.run(run())

        assert [(c.id, c.name, c.order) for c in categories] == [
            ("id2", "Turnos", 0),
            ("id1", "Salario", 1),
        ]
        assert len(sheets.categories.rows) == 3

    def test_rename_missing(self, storage):
        """Test renaming an unknown id."""
        with pytest.raises(NotFoundError):
            asyncio.run(storage.rename_category("ghost", "X"))

    def test_delete_removes_category_and_matrix_rows(self, storage, sheets):
        """Test deleting cascades to every matrix row of the category."""
        async def run():
            await storage.create_category("Sueldo")
            await storage.create_category("Turnos")
            await storage.bulk_set_row(2023, "id1", {1: 1, 2: 2})
            await storage.bulk_set_row(2024, "id2", {1: 5})
            await storage.set_cell(2024, "id1", 3, 3)
            await storage.delete_category("id1")
            return (
                await storage.list_categories(),
                await storage.get_matrix(2023),
                await storage.get_matrix(2024),
            )

        categories, year_2023, year_2024 = asyncio.run(run())

        assert [c.id for c in categories] == ["id2"]
        assert year_2023 == {}
        assert year_2024 == {"id2": {1: 5}}
        assert len(sheets.matrix.rows) == 2

    def test_delete_missing(self, storage):
        """Test deleting an unknown id."""
        with pytest.raises(NotFoundError):
            asyncio.run(storage.delete_category("ghost"))


class TestGoogleSheetsMatrix:
    """Long-format rows in the matrix worksheet."""

    def test_upsert_updates_existing_rows(self, storage, sheets):
        """Test writing the same cell twice keeps a single row."""
        async def run():
            await storage.set_cell(2024, "c1", 1, 100)
            await storage.set_cell(2024, "c1", 1, 3.7)
            return await storage.get_matrix(2024)

        assert asyncio.run(run()) == {"c1": {1: 4}}
        assert sheets.matrix.rows[1:] == [["2024", "c1", "1", "4"]]

    def test_bulk_row_skips_bad_months(self, storage, sheets):
        """Test the lenient row write."""
        async def run():
            await storage.bulk_set_row(2024, "c1", {13: 100, 5: 200})
            return await storage.get_matrix(2024)

        assert asyncio.run(run()) == {"c1": {5: 200}}
        assert len(sheets.matrix.rows) == 2

    def test_set_cell_bad_month(self, storage, sheets):
        """Test the strict single-cell write appends nothing."""
        with pytest.raises(ValidationError):
            asyncio.run(storage.set_cell(2024, "c1", 13, 100))
        assert sheets.matrix.appends == 0

    def test_years_are_separate(self, storage, sheets):
        """Test rows from other years are ignored."""
        sheets.matrix.rows += [
            ["2023", "c1", "1", "10"],
            ["2024", "c1", "1", "20"],
            ["2024", "c1", "oops", "30"],
        ]
        assert asyncio.run(storage.get_matrix(2024)) == {"c1": {1: 20}}


class TestGoogleSheetsLifecycle:
    """initialize, reset and failure wrapping."""

    def test_initialize_seeds(self, sheets, clock, id_factory):
        """Test an empty spreadsheet is seeded with demo data."""
        storage = GoogleSheetsIncomeStorage(
            client=sheets,
            rng=random.Random(1),
            clock=clock,
            id_factory=id_factory,
        )

        async def run():
            await storage.initialize()
            await storage.initialize()
            return await storage.list_categories()

        assert len(asyncio.run(run())) == 5
        # Five categories times January to March
        assert len(sheets.matrix.rows) == 1 + 15

    def test_reset(self, storage, sheets):
        """Test reset leaves only the header rows."""
        async def run():
            await storage.create_category("Sueldo")
            await storage.set_cell(2024, "id1", 1, 1)
            await storage.reset()

        asyncio.run(run())

        assert sheets.categories.rows == [CATEGORY_COLUMNS]
        assert sheets.matrix.rows == [MATRIX_COLUMNS]

    def test_initialize_failure(self, clock):
        """Test connection problems surface as INIT_FAILED."""
        storage = GoogleSheetsIncomeStorage(client=ExplodingClient(), clock=clock)
        with pytest.raises(AdapterError) as exc_info:
            asyncio.run(storage.initialize())
        assert exc_info.value.code == ErrorCode.INIT_FAILED
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_operation_failure_is_wrapped(self, clock):
        """Test foreign errors carry the operation code."""
        storage = GoogleSheetsIncomeStorage(client=ExplodingClient(), clock=clock)
        with pytest.raises(AdapterError) as exc_info:
            asyncio.run(storage.create_category("Sueldo"))
        assert exc_info.value.code == ErrorCode.CREATE_CATEGORY_FAILED

    def test_api_errors_are_retried(self, storage, sheets, monkeypatch):
        """Test transient gspread API errors are retried on reads."""
        attempts = []
        original = sheets.categories.get_all_values

        def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise api_error(429)
            return original()

        monkeypatch.setattr(sheets.categories, "get_all_values", flaky)
        monkeypatch.setattr(GoogleSheetsIncomeStorage.list_categories.retry, "wait", wait_none())

        assert asyncio.run(storage.list_categories()) == []
        assert len(attempts) == 2
