"""Demo data written into an empty store on first initialize()."""

import random
from datetime import date
from typing import Optional

import structlog

from income_matrix.models.category import FIRST_MONTH
from income_matrix.services.storage.interface import IncomeStorageInterface

logger = structlog.get_logger(__name__)

DEMO_CATEGORY_NAMES = (
    "Sueldo",
    "Turnos",
    "UMed",
    "Arriendos",
    "Dividendos",
)

DEMO_MIN_AMOUNT = 100_000
DEMO_MAX_AMOUNT = 599_999
DEMO_MONTHS_BACK = 3


def demo_months(today: date) -> list[int]:
    """The current month and the two before it, clamped at January."""
    months = {max(FIRST_MONTH, today.month - offset) for offset in range(DEMO_MONTHS_BACK)}
    return sorted(months)


async def seed_demo_data(
    storage: IncomeStorageInterface,
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
) -> None:
    """Create the demo categories and a few months of amounts for this year."""
    rng = rng or random.Random()
    today = today or date.today()

    for name in DEMO_CATEGORY_NAMES:
        await storage.create_category(name)

    months = demo_months(today)
    for category in await storage.list_categories():
        values = {
            month: rng.randint(DEMO_MIN_AMOUNT, DEMO_MAX_AMOUNT)
            for month in months
        }
        await storage.bulk_set_row(today.year, category.id, values)

    logger.info(
        "demo_data_seeded",
        categories=len(DEMO_CATEGORY_NAMES),
        year=today.year,
        months=months,
    )
