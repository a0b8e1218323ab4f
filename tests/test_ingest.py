"""Tests for spreadsheet paste ingestion."""

from datetime import datetime, timezone

import pytest

from income_matrix.core.errors import ValidationError
from income_matrix.core.ingest import ingest_matrix, ingest_row, split_rows
from income_matrix.models.category import Category

WHEN = datetime(2024, 1, 1, tzinfo=timezone.utc)


def categories(*ids: str) -> list[Category]:
    return [
        Category(id=category_id, name=category_id.upper(), order=order, created_at=WHEN, updated_at=WHEN)
        for order, category_id in enumerate(ids)
    ]


class TestIngestRow:
    """Pasting a single tab-separated row."""

    def test_row_from_january(self):
        """Test a three-value paste lands on January to March."""
        assert ingest_row("500000\t520000\t510000", start_month=1) == {
            1: 500000,
            2: 520000,
            3: 510000,
        }

    def test_values_past_december_are_dropped(self):
        """Test pastes are truncated at December."""
        assert ingest_row("1\t2\t3", start_month=11) == {11: 1, 12: 2}

    def test_blank_and_zero_cells_are_omitted(self):
        """Test empty and zero cells do not produce writes."""
        assert ingest_row("100\t\t0\t200") == {1: 100, 4: 200}

    def test_trailing_newline_ignored(self):
        """Test a copied row's line ending is stripped."""
        assert ingest_row("100\t200\r\n") == {1: 100, 2: 200}

    def test_formatted_values(self):
        """Test currency-formatted cells are parsed."""
        assert ingest_row("$1.234.567\t1500.5") == {1: 1234567, 2: 1501}

    def test_empty_paste(self):
        """Test an empty paste yields nothing."""
        assert ingest_row("") == {}

    @pytest.mark.parametrize("start_month", [0, 13, "1"])
    def test_bad_start_month(self, start_month):
        """Test start months outside 1..12 are rejected."""
        with pytest.raises(ValidationError):
            ingest_row("100", start_month=start_month)


class TestIngestMatrix:
    """Pasting a block of rows onto consecutive categories."""

    def test_rows_map_to_consecutive_categories(self):
        """Test rows start at the selected category and stop at the last one."""
        block = "100\t200\n300\n400\n500"
        result = ingest_matrix(block, 1, categories("c1", "c2", "c3"))
        assert result == {"c2": {1: 100, 2: 200}, "c3": {1: 300}}

    def test_categories_follow_display_order(self):
        """Test the mapping uses order, not list position."""
        cats = categories("c1", "c2")
        cats[0].order, cats[1].order = 1, 0
        assert ingest_matrix("7\n8", 0, cats) == {"c2": {1: 7}, "c1": {1: 8}}

    def test_empty_row_still_consumes_category(self):
        """Test a blank line skips over its category."""
        result = ingest_matrix("100\n\n300", 0, categories("c1", "c2", "c3"))
        assert result == {"c1": {1: 100}, "c3": {1: 300}}

    def test_crlf_rows(self):
        """Test Windows line endings."""
        result = ingest_matrix("1\t2\r\n3\r\n", 0, categories("c1", "c2"))
        assert result == {"c1": {1: 1, 2: 2}, "c2": {1: 3}}

    def test_start_index_past_end(self):
        """Test nothing is written when no category is left."""
        assert ingest_matrix("1", 5, categories("c1")) == {}

    @pytest.mark.parametrize("index", [-1, "0", True])
    def test_bad_start_index(self, index):
        """Test invalid category indices are rejected."""
        with pytest.raises(ValidationError):
            ingest_matrix("1", index, categories("c1"))

    def test_split_rows(self):
        """Test row splitting."""
        assert split_rows("") == []
        assert split_rows("a\nb\n") == ["a", "b"]
