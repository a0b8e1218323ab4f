"""
Local Key-Value Storage Implementation

DESIGN DECISION: The local backend mirrors browser localStorage: a flat
string -> string store holding one blob for the category list and one
blob per year of grid data (see keys.py for the key and blob layout).

Two stores are provided:
- InMemoryKeyValueStore for tests and throwaway sessions
- JsonFileKeyValueStore, one JSON file per key in a data directory

TRADEOFFS:
- No transactions: deleting a category writes the category list first,
  then each affected year. A crash in between leaves orphaned grid rows.
- Whole-blob rewrites on every change (fine at household scale)
"""

import os
import random
import re
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import structlog

from income_matrix.core.errors import (
    AdapterError,
    ErrorCode,
    adapter_operation,
)
from income_matrix.core.grid import IncomeGrid
from income_matrix.core.registry import CategoryRegistry
from income_matrix.models.category import Category, YearMatrix, new_category_id, utcnow
from income_matrix.services.storage import keys
from income_matrix.services.storage.interface import IncomeStorageInterface
from income_matrix.services.storage.seed import seed_demo_data

logger = structlog.get_logger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


# =============================================================================
# KEY-VALUE STORES
# =============================================================================

class KeyValueStore(ABC):
    """Minimal string key-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        pass


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileKeyValueStore(KeyValueStore):
    """
    One file per key: <data_dir>/<key>.json.

    Writes go to a temp file in the same directory and are moved into
    place, so a reader never sees a half-written blob.
    """

    SUFFIX = ".json"

    def __init__(self, data_dir: Union[str, Path]):
        self._dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._dir

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Unsafe storage key: {key!r}")
        return self._dir / f"{key}{self.SUFFIX}"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        self._dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._dir, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        if not self._dir.exists():
            return []
        return sorted(path.stem for path in self._dir.glob(f"*{self.SUFFIX}"))


# =============================================================================
# ADAPTER
# =============================================================================

class LocalIncomeStorage(IncomeStorageInterface):
    """
    Income storage over a KeyValueStore with an in-memory cache.

    Reads are served from the cache once loaded; writes go to the store
    first and only update the cache after the store accepted them.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        key_prefix: str = keys.DEFAULT_KEY_PREFIX,
        seed_demo_data: bool = True,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_category_id,
    ):
        self._store = store if store is not None else InMemoryKeyValueStore()
        self._prefix = key_prefix
        self._seed = seed_demo_data
        self._rng = rng
        self._clock = clock
        self._id_factory = id_factory

        self._categories_cache: Optional[list[Category]] = None
        self._matrix_cache: dict[int, YearMatrix] = {}
        self._initialized = False

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        if self._initialized:
            return
        try:
            categories = await self.list_categories()
            if not categories and self._seed:
                await seed_demo_data(self, rng=self._rng, today=self._clock().date())
        except Exception as e:
            raise AdapterError(
                "Failed to initialize local storage",
                code=ErrorCode.INIT_FAILED,
                cause=e,
            ) from e
        self._initialized = True

    @adapter_operation(ErrorCode.RESET_FAILED, "Failed to reset local storage")
    async def reset(self) -> None:
        matrix_keys = [
            key for key in self._store.keys()
            if keys.parse_matrix_key(key, self._prefix) is not None
        ]
        self._store.remove(keys.categories_key(self._prefix))
        for key in matrix_keys:
            self._store.remove(key)

        self._categories_cache = None
        self._matrix_cache = {}
        self._initialized = False
        logger.info("local_storage_reset", removed_years=len(matrix_keys))

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    async def list_categories(self) -> list[Category]:
        categories = await self._load_categories()
        return [category.model_copy() for category in categories]

    @adapter_operation(ErrorCode.CREATE_CATEGORY_FAILED, "Failed to create category")
    async def create_category(self, name: str) -> Category:
        registry = await self._registry()
        category = registry.create(name)
        await self._save_categories(registry.list())
        return category

    @adapter_operation(ErrorCode.RENAME_CATEGORY_FAILED, "Failed to rename category")
    async def rename_category(self, category_id: str, name: str) -> None:
        registry = await self._registry()
        registry.rename(category_id, name)
        await self._save_categories(registry.list())

    @adapter_operation(ErrorCode.DELETE_CATEGORY_FAILED, "Failed to delete category")
    async def delete_category(self, category_id: str) -> None:
        grid = await self._load_all_years()
        registry = await self._registry(grid)
        touched_years = registry.delete(category_id)

        await self._save_categories(registry.list())
        for year in touched_years:
            await self._save_matrix(year, grid.get_year(year))

    @adapter_operation(ErrorCode.REORDER_CATEGORIES_FAILED, "Failed to reorder categories")
    async def reorder_categories(self, ordered_ids: Sequence[str]) -> None:
        registry = await self._registry()
        registry.reorder(ordered_ids)
        await self._save_categories(registry.list())

    # -------------------------------------------------------------------------
    # Matrix
    # -------------------------------------------------------------------------

    async def get_matrix(self, year: int) -> YearMatrix:
        return IncomeGrid({year: await self._load_year(year)}).get_year(year)

    @adapter_operation(ErrorCode.SET_CELL_FAILED, "Failed to save cell")
    async def set_cell(self, year: int, category_id: str, month: int, value: float) -> None:
        grid = IncomeGrid({year: await self._load_year(year)})
        grid.set_cell(year, category_id, month, value)
        await self._save_matrix(year, grid.get_year(year))

    @adapter_operation(ErrorCode.BULK_SET_ROW_FAILED, "Failed to save row")
    async def bulk_set_row(
        self,
        year: int,
        category_id: str,
        values_by_month: Mapping[int, float],
    ) -> None:
        grid = IncomeGrid({year: await self._load_year(year)})
        grid.set_row(year, category_id, values_by_month)
        await self._save_matrix(year, grid.get_year(year))

    # -------------------------------------------------------------------------
    # Persistence helpers
    # -------------------------------------------------------------------------

    async def _registry(self, grid: Optional[IncomeGrid] = None) -> CategoryRegistry:
        return CategoryRegistry(
            await self._load_categories(),
            grid=grid,
            clock=self._clock,
            id_factory=self._id_factory,
        )

    @adapter_operation(ErrorCode.LOAD_CATEGORIES_FAILED, "Failed to load categories")
    async def _load_categories(self) -> list[Category]:
        if self._categories_cache is not None:
            return self._categories_cache

        raw = self._store.get(keys.categories_key(self._prefix))
        if raw is None:
            categories: list[Category] = []
        else:
            _, data = keys.decode_blob(raw, list)
            categories = [Category.model_validate(item) for item in data]
        categories.sort(key=lambda c: c.order)

        self._categories_cache = categories
        return categories

    @adapter_operation(ErrorCode.SAVE_CATEGORIES_FAILED, "Failed to save categories")
    async def _save_categories(self, categories: list[Category]) -> None:
        payload = [category.to_wire() for category in categories]
        self._store.set(keys.categories_key(self._prefix), keys.encode_blob(payload))
        self._categories_cache = sorted(
            (category.model_copy() for category in categories),
            key=lambda c: c.order,
        )

    @adapter_operation(ErrorCode.LOAD_MATRIX_FAILED, "Failed to load matrix")
    async def _load_year(self, year: int) -> YearMatrix:
        if year in self._matrix_cache:
            return self._matrix_cache[year]

        raw = self._store.get(keys.matrix_key(year, self._prefix))
        grid = IncomeGrid()
        if raw is not None:
            _, data = keys.decode_blob(raw, dict)
            grid.load_year(year, data)
        matrix = grid.get_year(year)

        self._matrix_cache[year] = matrix
        return matrix

    async def _load_all_years(self) -> IncomeGrid:
        grid = IncomeGrid()
        for key in self._store.keys():
            year = keys.parse_matrix_key(key, self._prefix)
            if year is not None:
                grid.load_year(year, await self._load_year(year))
        return grid

    @adapter_operation(ErrorCode.SAVE_MATRIX_FAILED, "Failed to save matrix")
    async def _save_matrix(self, year: int, matrix: YearMatrix) -> None:
        payload = {
            category_id: {str(month): value for month, value in sorted(row.items())}
            for category_id, row in matrix.items()
        }
        self._store.set(keys.matrix_key(year, self._prefix), keys.encode_blob(payload))
        self._matrix_cache[year] = IncomeGrid({year: matrix}).get_year(year)
