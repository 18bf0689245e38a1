"""Daily ledger domain models."""

from dataclasses import dataclass, field

MACRO_FIELDS = ("calories", "protein", "carbs", "fat", "alcohol")
# Entry field -> ledger total field.
TOTAL_FIELDS = {
    "calories": "calories_in",
    "protein": "protein",
    "carbs": "carbs",
    "fat": "fat",
    "alcohol": "alcohol",
}


@dataclass(frozen=True)
class NutritionEntry:
    """One nutrition entry as submitted by the client."""

    calories: float | None = None
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None
    alcohol: float | None = None
    details: dict[str, object] = field(default_factory=dict)

    def amount(self, name: str) -> float:
        """Return a macro amount, treating a missing value as zero."""
        value = getattr(self, name)
        return float(value) if value is not None else 0.0

    def as_meal(self) -> dict[str, object]:
        """Return the raw record appended to the ledger's meals."""
        meal: dict[str, object] = dict(self.details)
        for name in MACRO_FIELDS:
            value = getattr(self, name)
            if value is not None:
                meal[name] = value
        return meal


@dataclass(frozen=True)
class DailyLedger:
    """Aggregate nutrition and expenditure for one user and day."""

    date: str
    calories_in: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    alcohol: float = 0.0
    meals: list[dict[str, object]] = field(default_factory=list)
    whoop_cals: float = 0.0
    extra_cals: float = 0.0
    calories_out: float = 0.0
    net_calories: float = 0.0

    @classmethod
    def from_document(cls, date_key: str, data: dict[str, object]) -> "DailyLedger":
        """Build a ledger from stored fields, defaulting missing totals to 0."""
        meals = data.get("meals")
        return cls(
            date=str(data.get("date") or date_key),
            calories_in=as_number(data.get("calories_in")),
            protein=as_number(data.get("protein")),
            carbs=as_number(data.get("carbs")),
            fat=as_number(data.get("fat")),
            alcohol=as_number(data.get("alcohol")),
            meals=list(meals) if isinstance(meals, list) else [],
            whoop_cals=as_number(data.get("whoop_cals")),
            extra_cals=as_number(data.get("extra_cals")),
            calories_out=as_number(data.get("calories_out")),
            net_calories=as_number(data.get("net_calories")),
        )

    def to_document(self) -> dict[str, object]:
        return {
            "date": self.date,
            "calories_in": self.calories_in,
            "protein": self.protein,
            "carbs": self.carbs,
            "fat": self.fat,
            "alcohol": self.alcohol,
            "meals": list(self.meals),
            "whoop_cals": self.whoop_cals,
            "extra_cals": self.extra_cals,
            "calories_out": self.calories_out,
            "net_calories": self.net_calories,
        }


@dataclass(frozen=True)
class ExpenditureSync:
    """Result of writing external expenditure into a ledger."""

    date: str
    whoop_cals: float
    calories_out: float


def as_number(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0.0
    return float(value)
