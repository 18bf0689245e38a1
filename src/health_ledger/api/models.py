"""Request models for the HTTP API.

Callers may send fields at the top level or wrapped one level deeper under
``data``; the models unwrap that once so services only see typed values.
"""

from datetime import datetime

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeFloat,
    NonNegativeInt,
    StrictFloat,
    StrictInt,
    model_validator,
)

from health_ledger.domain.ledger import MACRO_FIELDS, NutritionEntry


class _CallableRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _unwrap_data(cls, value: object) -> object:
        if isinstance(value, dict) and isinstance(value.get("data"), dict):
            return {**value["data"], **{k: v for k, v in value.items() if k != "data"}}
        return value


class EntryData(BaseModel):
    """Nutrition fields plus arbitrary descriptive metadata."""

    model_config = ConfigDict(extra="allow")

    calories: NonNegativeInt | NonNegativeFloat | None = None
    protein: NonNegativeInt | NonNegativeFloat | None = None
    carbs: NonNegativeInt | NonNegativeFloat | None = None
    fat: NonNegativeInt | NonNegativeFloat | None = None
    alcohol: NonNegativeInt | NonNegativeFloat | None = None

    def to_entry(self) -> NutritionEntry:
        raw = self.model_dump(exclude_unset=True)
        details = {key: value for key, value in raw.items() if key not in MACRO_FIELDS}
        return NutritionEntry(
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
            alcohol=self.alcohol,
            details=details,
        )


class NutritionEntryRequest(_CallableRequest):
    user_id: str = Field(alias="userId", min_length=1)
    date_key: str = Field(alias="dateString", pattern=r"^\d{4}-\d{2}-\d{2}$")
    entry: EntryData = Field(alias="entryData")


class ExtraExpenditureRequest(_CallableRequest):
    user_id: str = Field(alias="userId", min_length=1)
    date_key: str = Field(alias="dateString", pattern=r"^\d{4}-\d{2}-\d{2}$")
    calories: float


class WeightRequest(_CallableRequest):
    user_id: str = Field(alias="userId", min_length=1)
    date_key: str = Field(alias="dateString", pattern=r"^\d{4}-\d{2}-\d{2}$")
    # Strict numbers so a JSON boolean is rejected instead of read as 1.0.
    weight: StrictInt | StrictFloat | str


class ExchangeCodeRequest(_CallableRequest):
    user_id: str = Field(alias="userId", min_length=1)
    code: str = Field(min_length=1)


class ExpenditureSyncRequest(_CallableRequest):
    user_id: str = Field(alias="userId", min_length=1)
    start: datetime
    end: datetime
