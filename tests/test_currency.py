"""Tests for CLP currency parsing and formatting."""

import math

import pytest

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


class TestNormalizeAmount:
    """Rounding and clamping applied to every stored amount."""

    def test_rounds_half_up(self):
        """Test fractional amounts round half up."""
        assert normalize_amount(3.7) == 4
        assert normalize_amount(2.5) == 3
        assert normalize_amount(2.4) == 2

    def test_clamps_negative_to_zero(self):
        """Test negatives are stored as zero."""
        assert normalize_amount(-5) == 0
        assert normalize_amount(-0.4) == 0

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_becomes_zero(self, value):
        """Test NaN and infinities normalise to zero."""
        assert normalize_amount(value) == 0


class TestFormatAndParse:
    """Display formatting and the lenient parser."""

    def test_format_uses_dot_thousands(self):
        """Test CLP style grouping."""
        assert format_amount(1234567) == "$1.234.567"
        assert format_amount(1234567, show_symbol=False) == "1.234.567"
        assert format_amount(999) == "$999"

    def test_zero_formats_as_blank(self):
        """Test zero and empty map onto each other."""
        assert format_amount(0) == ""
        assert parse_amount("") == 0

    @pytest.mark.parametrize("amount", [1, 999, 1000, 500000, 1234567, 987654321])
    def test_parse_reads_back_formatted_amounts(self, amount):
        """Test parse(format(a)) == a for nonzero amounts."""
        assert parse_amount(format_amount(amount)) == amount

    def test_parse_decimal_comma(self):
        """Test "," is the decimal separator."""
        assert parse_amount("$1.234.567,50") == 1234568
        assert parse_amount("1.500,4") == 1500

    def test_parse_ignores_symbols_and_spaces(self):
        """Test currency symbols and whitespace are stripped."""
        assert parse_amount(" $ 500.000 ") == 500000
        assert parse_amount("€1.000") == 1000

    @pytest.mark.parametrize("text", ["abc", "$", None, "-", ","])
    def test_unparseable_is_zero(self, text):
        """Test the parser never raises."""
        assert parse_amount(text) == 0

    def test_negative_parses_to_zero(self):
        """Test negatives are clamped."""
        assert parse_amount("-500") == 0


class TestParseBulk:
    """Element-wise parsing of pasted spreadsheet cells."""

    def test_plain_numbers_read_directly(self):
        """Test plain numbers use "." as the decimal point."""
        assert parse_bulk(["500000", "1234.5", "1.234"]) == [500000, 1235, 1]

    def test_formatted_values_use_currency_parser(self):
        """Test formatted values fall back to the locale parser."""
        assert parse_bulk(["$1.234", "1.234,5"]) == [1234, 1235]

    def test_blank_and_garbage_are_zero(self):
        """Test blanks and text become zero while keeping positions."""
        assert parse_bulk(["", "  ", "n/a", "100"]) == [0, 0, 0, 100]


class TestDisplayHelpers:
    """Input boxes, compact totals and input sanitising."""

    def test_format_for_input(self):
        """Test edit boxes show plain digits."""
        assert format_for_input(0) == ""
        assert format_for_input(1500) == "1500"

    def test_format_large_number(self):
        """Test compact display of totals."""
        assert format_large_number(0) == "$0"
        assert format_large_number(1_500_000) == "$1.5M"
        assert format_large_number(250_000) == "$250K"
        assert format_large_number(500) == "$500"

    def test_sanitize_money_input(self):
        """Test only money characters survive."""
        assert sanitize_money_input("$1.234abc") == "$1.234"
        assert sanitize_money_input("") == ""

    def test_is_valid_money_string(self):
        """Test the money-string check."""
        assert is_valid_money_string("")
        assert is_valid_money_string("$1.234,5")
        assert not is_valid_money_string("12a")
