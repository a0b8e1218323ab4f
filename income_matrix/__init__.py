"""
Income Matrix - household income tracking

A category x month income grid per year with totals, statistics and
spreadsheet paste support, stored locally, behind an HTTP API, or in
Google Sheets.

DESIGN PRINCIPLES:
1. Amounts are whole, non-negative pesos
2. Bad input is rejected before anything is written
3. Storage failures always reach the caller as a tagged error
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Income Matrix Team"
