"""
Abstract Storage Interface

DESIGN DECISION: The income matrix talks to storage only through this
interface. Implementations in this package:
1. LocalIncomeStorage - key-value blobs (in memory or JSON files)
2. RestIncomeStorage - the income HTTP API
3. GoogleSheetsIncomeStorage - a hosted spreadsheet

Every method may suspend while the backend does I/O. Failures surface as
IncomeMatrixError subclasses (see income_matrix.core.errors); adapters
own any retry or timeout policy.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

from income_matrix.models.category import Category, YearMatrix


class IncomeStorageInterface(ABC):
    """
    Abstract interface for income matrix storage.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """
        Prepare the backend. Idempotent.

        Seeds demo data when the store is empty and seeding is enabled.

        Raises:
            AdapterError: If the backend cannot be reached or prepared
        """
        pass

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        """
        List all categories.

        Returns:
            Categories sorted ascending by order
        """
        pass

    @abstractmethod
    async def create_category(self, name: str) -> Category:
        """
        Create a category after the current last one.

        Args:
            name: Display name (trimmed before storing)

        Returns:
            The stored category

        Raises:
            ValidationError: If the name is empty, too long or taken
        """
        pass

    @abstractmethod
    async def rename_category(self, category_id: str, name: str) -> None:
        """
        Rename a category.

        Raises:
            NotFoundError: If the category doesn't exist
            ValidationError: If the name is empty, too long or taken
        """
        pass

    @abstractmethod
    async def delete_category(self, category_id: str) -> None:
        """
        Delete a category and its grid entries for every year.

        The two steps are not atomic; a failure in between can leave
        orphaned grid entries.

        Raises:
            NotFoundError: If the category doesn't exist
        """
        pass

    @abstractmethod
    async def reorder_categories(self, ordered_ids: Sequence[str]) -> None:
        """
        Give each category its position in ordered_ids.

        Raises:
            ValidationError: If ordered_ids is not exactly the set of known ids
        """
        pass

    @abstractmethod
    async def get_matrix(self, year: int) -> YearMatrix:
        """
        Get one year's grid.

        Returns:
            An independent copy: category id -> month -> amount
        """
        pass

    @abstractmethod
    async def set_cell(self, year: int, category_id: str, month: int, value: float) -> None:
        """
        Store one cell, clamped at 0 and rounded.

        Raises:
            ValidationError: If month is outside 1..12
        """
        pass

    @abstractmethod
    async def bulk_set_row(
        self,
        year: int,
        category_id: str,
        values_by_month: Mapping[int, float],
    ) -> None:
        """
        Store several cells of one row.

        Months outside 1..12 are skipped without error.
        """
        pass

    @abstractmethod
    async def reset(self) -> None:
        """Delete all categories and every year's grid."""
        pass
