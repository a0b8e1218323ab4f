from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from income_matrix.models.category import FIRST_MONTH, LAST_MONTH


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class CategoryNameIn(_CamelModel):
    # Trimmed and length-checked by the service
    name: str


class CreateCategoryIn(CategoryNameIn):
    pass


class RenameCategoryIn(CategoryNameIn):
    pass


class ReorderIn(_CamelModel):
    order: list[str]


class SetCellIn(_CamelModel):
    year: int
    category_id: str = Field(..., min_length=1)
    month: int = Field(..., ge=FIRST_MONTH, le=LAST_MONTH)
    value: float


class BulkSetRowIn(_CamelModel):
    year: int
    category_id: str = Field(..., min_length=1)
    # JSON object keys are strings; months outside 1..12 are skipped
    values_by_month: dict[str, float] = Field(default_factory=dict)
