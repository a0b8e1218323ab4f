"""
Main Orchestrator for the Income Matrix

This module ties the core together with a storage adapter and defines
the flow every user action takes:

    action -> validate -> storage write -> audit event -> totals re-derived

DESIGN DECISION: The service enforces the boundaries:
- Preconditions are checked before the adapter is called
- Adapter failures are always re-raised as IncomeMatrixError, never swallowed
- No retries here; retry policy belongs to the adapters
- Every successful mutation is audited

Operations issued one after another by a caller complete in that order;
nothing is batched or reordered.
"""

import random
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Optional, TypeVar

from income_matrix.audit import AuditLogger
from income_matrix.config import Settings, get_settings
from income_matrix.core.currency import parse_amount
from income_matrix.core.errors import ErrorCode, NotFoundError, wrap_adapter_error
from income_matrix.core.ingest import ingest_matrix, ingest_row
from income_matrix.core.totals import summarize
from income_matrix.models.category import FIRST_MONTH, Category, YearMatrix, YearSummary
from income_matrix.models.events import IncomeEvent, IncomeEventBuilder
from income_matrix.services.storage import (
    GoogleSheetsIncomeStorage,
    IncomeStorageInterface,
    JsonFileKeyValueStore,
    LocalIncomeStorage,
    RestIncomeStorage,
)
from income_matrix.validation import (
    validate_category_name,
    validate_month,
    validate_reorder,
    validate_year,
)

T = TypeVar("T")


class IncomeMatrixService:
    """
    Orchestrates income matrix operations over one storage adapter.

    The service is the single entry point used by the HTTP API and by
    any other front end.
    """

    def __init__(
        self,
        storage: IncomeStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def storage(self) -> IncomeStorageInterface:
        return self._storage

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    async def _run(
        self,
        operation: str,
        code: ErrorCode,
        message: str,
        call: Callable[[], Awaitable[T]],
    ) -> T:
        """Run an adapter call, wrapping and auditing any failure."""
        try:
            return await call()
        except Exception as e:
            error = wrap_adapter_error(e, code, message)
            await self._audit_logger.log(
                IncomeEventBuilder.operation_failed(operation, error.code.value, error.message)
            )
            if error is e:
                raise
            raise error from e

    async def _emit(self, event: IncomeEvent) -> None:
        await self._audit_logger.log(event)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """Prepare the store; seeds demo data into an empty one."""
        await self._run(
            "initialize", ErrorCode.INIT_FAILED, "Failed to initialize storage",
            self._storage.initialize,
        )
        categories = await self.list_categories()
        await self._emit(IncomeEventBuilder.store_initialized(len(categories)))

    async def reset(self) -> None:
        """Delete every category and every year. Destructive."""
        await self._run(
            "reset", ErrorCode.RESET_FAILED, "Failed to reset data",
            self._storage.reset,
        )
        await self._emit(IncomeEventBuilder.store_reset())

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    async def list_categories(self) -> list[Category]:
        return await self._run(
            "list_categories", ErrorCode.LOAD_CATEGORIES_FAILED, "Failed to load categories",
            self._storage.list_categories,
        )

    async def create_category(self, name: str) -> Category:
        existing = await self.list_categories()
        trimmed = validate_category_name(name, existing)
        category = await self._run(
            "create_category", ErrorCode.CREATE_CATEGORY_FAILED, "Failed to create category",
            lambda: self._storage.create_category(trimmed),
        )
        await self._emit(IncomeEventBuilder.category_added(category.id, category.name, category.order))
        return category

    async def rename_category(self, category_id: str, name: str) -> None:
        existing = await self.list_categories()
        if not any(category.id == category_id for category in existing):
            raise NotFoundError(f"Category not found: {category_id}")
        trimmed = validate_category_name(name, existing, exclude_id=category_id)
        await self._run(
            "rename_category", ErrorCode.RENAME_CATEGORY_FAILED, "Failed to rename category",
            lambda: self._storage.rename_category(category_id, trimmed),
        )
        await self._emit(IncomeEventBuilder.category_renamed(category_id, trimmed))

    async def delete_category(self, category_id: str) -> None:
        await self._run(
            "delete_category", ErrorCode.DELETE_CATEGORY_FAILED, "Failed to delete category",
            lambda: self._storage.delete_category(category_id),
        )
        await self._emit(IncomeEventBuilder.category_deleted(category_id))

    async def reorder_categories(self, ordered_ids: Sequence[str]) -> None:
        """Reorder; ordered_ids must name every category exactly once."""
        existing = await self.list_categories()
        ordered = validate_reorder(ordered_ids, (category.id for category in existing))
        await self._run(
            "reorder_categories", ErrorCode.REORDER_CATEGORIES_FAILED, "Failed to reorder categories",
            lambda: self._storage.reorder_categories(ordered),
        )
        await self._emit(IncomeEventBuilder.categories_reordered(ordered))

    # -------------------------------------------------------------------------
    # Matrix
    # -------------------------------------------------------------------------

    async def get_matrix(self, year: int) -> YearMatrix:
        validate_year(year)
        return await self._run(
            "get_matrix", ErrorCode.LOAD_MATRIX_FAILED, "Failed to load matrix",
            lambda: self._storage.get_matrix(year),
        )

    async def get_cell(self, year: int, category_id: str, month: int) -> int:
        """Stored amount, or 0 for an unset cell."""
        matrix = await self.get_matrix(year)
        return matrix.get(category_id, {}).get(month, 0)

    async def set_cell(self, year: int, category_id: str, month: int, value: float) -> int:
        """
        Store one cell.

        Returns:
            The amount as stored (clamped at 0, rounded)
        """
        validate_year(year)
        validate_month(month)
        await self._run(
            "set_cell", ErrorCode.SET_CELL_FAILED, "Failed to save cell",
            lambda: self._storage.set_cell(year, category_id, month, value),
        )
        stored = await self.get_cell(year, category_id, month)
        await self._emit(IncomeEventBuilder.income_updated(year, category_id, month, stored))
        return stored

    async def set_cell_from_string(self, year: int, category_id: str, month: int, text: str) -> int:
        """Parse user text with the currency parser and store it."""
        return await self.set_cell(year, category_id, month, parse_amount(text))

    async def bulk_set_row(
        self,
        year: int,
        category_id: str,
        values_by_month: Mapping[int, float],
    ) -> None:
        """Store several cells; months outside 1..12 are skipped silently."""
        validate_year(year)
        await self._run(
            "bulk_set_row", ErrorCode.BULK_SET_ROW_FAILED, "Failed to save row",
            lambda: self._storage.bulk_set_row(year, category_id, values_by_month),
        )
        matrix = await self.get_matrix(year)
        row = matrix.get(category_id, {})
        written = {month: row.get(month, 0) for month in values_by_month if month in row}
        await self._emit(IncomeEventBuilder.income_row_updated(year, category_id, written))

    async def paste_row(
        self,
        year: int,
        category_id: str,
        pasted_text: str,
        start_month: int = FIRST_MONTH,
    ) -> dict[int, int]:
        """
        Paste one tab-separated row starting at start_month.

        Returns:
            The month -> amount pairs that were written
        """
        values = ingest_row(pasted_text, start_month)
        if values:
            await self.bulk_set_row(year, category_id, values)
        return values

    async def paste_matrix(
        self,
        year: int,
        pasted_block: str,
        start_category_index: int = 0,
    ) -> dict[str, dict[int, int]]:
        """
        Paste a block of rows onto consecutive categories.

        Returns:
            category id -> written values, for every row that held values
        """
        categories = await self.list_categories()
        assignments = ingest_matrix(pasted_block, start_category_index, categories)
        for category_id, values in assignments.items():
            await self.bulk_set_row(year, category_id, values)
        return assignments

    async def get_summary(self, year: int) -> YearSummary:
        """Monthly totals, category totals, grand total and statistics."""
        matrix = await self.get_matrix(year)
        categories = await self.list_categories()
        return summarize(year, matrix, categories)


# =============================================================================
# FACTORIES
# =============================================================================

def create_storage(
    settings: Optional[Settings] = None,
    rng: Optional[random.Random] = None,
) -> IncomeStorageInterface:
    """
    Build the storage adapter selected by settings.app.storage_backend.

    Raises:
        ValueError: For an unknown backend name
    """
    settings = settings or get_settings()
    app = settings.app

    if app.storage_backend == "local":
        local = settings.local_storage
        return LocalIncomeStorage(
            JsonFileKeyValueStore(local.data_dir),
            key_prefix=local.key_prefix,
            seed_demo_data=app.seed_demo_data,
            rng=rng,
        )
    if app.storage_backend == "rest":
        return RestIncomeStorage(settings=settings.rest_api)
    if app.storage_backend == "sheets":
        return GoogleSheetsIncomeStorage(seed_demo_data=app.seed_demo_data, rng=rng)
    raise ValueError(f"Unknown storage backend: {app.storage_backend!r}")


def create_service(
    settings: Optional[Settings] = None,
    storage: Optional[IncomeStorageInterface] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> IncomeMatrixService:
    """Factory function to create the service with its storage."""
    return IncomeMatrixService(
        storage or create_storage(settings),
        audit_logger=audit_logger,
    )


__all__ = [
    "IncomeMatrixService",
    "create_service",
    "create_storage",
]
