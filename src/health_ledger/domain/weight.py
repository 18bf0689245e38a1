"""Weight log domain models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class WeightRecord:
    """A single body-weight measurement for one day."""

    date: datetime
    weight: float

    def to_document(self) -> dict[str, object]:
        return {"date": self.date.isoformat(), "weight": self.weight}
