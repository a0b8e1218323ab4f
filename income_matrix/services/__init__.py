"""Services package."""

from income_matrix.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsIncomeStorage,
    IncomeStorageInterface,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    LocalIncomeStorage,
    RestIncomeStorage,
)

__all__ = [
    "GoogleSheetsClient",
    "GoogleSheetsIncomeStorage",
    "IncomeStorageInterface",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "LocalIncomeStorage",
    "RestIncomeStorage",
]
