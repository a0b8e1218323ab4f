"""
Category Registry

Ordered collection of income categories with create / rename / delete /
reorder. The registry works on its own copies of the categories it is
given, so a caller can build one from stored data, mutate it, and only
persist the result if every step succeeded.

When an IncomeGrid is attached, deleting a category also removes its
grid entries for every year the grid holds.
"""

from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Optional

from income_matrix.core.errors import NotFoundError
from income_matrix.core.grid import IncomeGrid
from income_matrix.models.category import Category, new_category_id, utcnow
from income_matrix.validation.validator import validate_category_name, validate_reorder


class CategoryRegistry:
    """In-memory category registry."""

    def __init__(
        self,
        categories: Iterable[Category] = (),
        grid: Optional[IncomeGrid] = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_category_id,
    ):
        self._categories: dict[str, Category] = {
            category.id: category.model_copy() for category in categories
        }
        self._grid = grid
        self._clock = clock
        self._id_factory = id_factory

    def __len__(self) -> int:
        return len(self._categories)

    def __contains__(self, category_id: object) -> bool:
        return category_id in self._categories

    def ids(self) -> list[str]:
        return [category.id for category in self.list()]

    def get(self, category_id: str) -> Category:
        try:
            return self._categories[category_id].model_copy()
        except KeyError:
            raise NotFoundError(f"Category not found: {category_id}") from None

    def next_order(self) -> int:
        if not self._categories:
            return 0
        return max(category.order for category in self._categories.values()) + 1

    def create(self, name: str) -> Category:
        """Append a new category after the current last one."""
        trimmed = validate_category_name(name, self._categories.values())
        now = self._clock()
        category = Category(
            id=self._id_factory(),
            name=trimmed,
            order=self.next_order(),
            created_at=now,
            updated_at=now,
        )
        self._categories[category.id] = category
        return category.model_copy()

    def rename(self, category_id: str, name: str) -> Category:
        current = self._require(category_id)
        trimmed = validate_category_name(
            name, self._categories.values(), exclude_id=category_id
        )
        renamed = current.model_copy(update={"name": trimmed, "updated_at": self._clock()})
        self._categories[category_id] = renamed
        return renamed.model_copy()

    def delete(self, category_id: str) -> list[int]:
        """
        Remove a category and, if a grid is attached, its grid entries.

        Returns:
            Years whose grid data changed
        """
        self._require(category_id)
        del self._categories[category_id]
        if self._grid is None:
            return []
        return self._grid.remove_category(category_id)

    def reorder(self, ordered_ids: Iterable[str]) -> list[Category]:
        """
        Assign each category its 0-based position in ordered_ids.

        The sequence must contain every known id exactly once.
        """
        ordered = validate_reorder(ordered_ids, self._categories.keys())
        now = self._clock()
        for position, category_id in enumerate(ordered):
            self._categories[category_id] = self._categories[category_id].model_copy(
                update={"order": position, "updated_at": now}
            )
        return self.list()

    def _require(self, category_id: str) -> Category:
        category = self._categories.get(category_id)
        if category is None:
            raise NotFoundError(f"Category not found: {category_id}")
        return category

    # Defined last: the name shadows the builtin for annotations below it.
    def list(self) -> list[Category]:
        """Categories sorted ascending by order (copies)."""
        ordered = sorted(self._categories.values(), key=lambda c: c.order)
        return [category.model_copy() for category in ordered]
