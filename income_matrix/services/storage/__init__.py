"""
Storage Services Package

Provides the abstract storage interface and its implementations:
local key-value blobs, the income HTTP API, and Google Sheets.
"""

from income_matrix.services.storage.interface import IncomeStorageInterface
from income_matrix.services.storage.local import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    LocalIncomeStorage,
)
from income_matrix.services.storage.rest import RestIncomeStorage
from income_matrix.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsIncomeStorage,
)

__all__ = [
    # Interface
    "IncomeStorageInterface",
    # Local implementation
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "LocalIncomeStorage",
    # REST implementation
    "RestIncomeStorage",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsIncomeStorage",
]
