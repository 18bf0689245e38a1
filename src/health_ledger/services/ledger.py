"""Daily ledger aggregation."""

import logging
from dataclasses import dataclass

from health_ledger.domain.documents import Document, daily_log_key
from health_ledger.domain.errors import InvalidArgumentError
from health_ledger.domain.ledger import (
    TOTAL_FIELDS,
    DailyLedger,
    ExpenditureSync,
    NutritionEntry,
    as_number,
)
from health_ledger.services.documents import DocumentStore
from health_ledger.services.validation import require_date_key, require_field

_logger = logging.getLogger(__name__)


@dataclass
class DailyLedgerService:
    """Merges nutrition entries and expenditure into per-day ledgers."""

    store: DocumentStore

    def record_nutrition_entry(
        self, user_id: str, date_key: str, entry: NutritionEntry | None
    ) -> dict[str, object]:
        """Add an entry's macros onto the day's totals and append it to meals."""
        require_field(user_id, "userId")
        require_date_key(date_key)
        if entry is None:
            raise InvalidArgumentError("Missing required field: entryData")

        def apply(current: Document | None) -> dict[str, object]:
            if current is None:
                return _open_ledger(date_key, entry)
            data = dict(current.data)
            for name, total in TOTAL_FIELDS.items():
                data[total] = as_number(data.get(total)) + entry.amount(name)
            meals = data.get("meals")
            meals = list(meals) if isinstance(meals, list) else []
            data["meals"] = [*meals, entry.as_meal()]
            return data

        self.store.run_transaction(daily_log_key(user_id, date_key), apply)
        _logger.info("Recorded nutrition entry: user=%s date=%s", user_id, date_key)
        return {"success": True}

    def sync_external_expenditure(
        self, user_id: str, date_key: str, whoop_cals: float
    ) -> ExpenditureSync:
        """Overwrite external expenditure and recompute calories_out.

        ``extra_cals`` is read outside the merge, so syncs for one key are
        expected to be serialized by the caller.
        """
        require_field(user_id, "userId")
        require_date_key(date_key)
        key = daily_log_key(user_id, date_key)
        current = self.store.get(key)
        extra_cals = as_number(current.data.get("extra_cals")) if current else 0.0
        calories_out = whoop_cals + extra_cals
        self.store.merge(
            key,
            {"date": date_key, "whoop_cals": whoop_cals, "calories_out": calories_out},
        )
        return ExpenditureSync(
            date=date_key, whoop_cals=whoop_cals, calories_out=calories_out
        )

    def add_extra_expenditure(
        self, user_id: str, date_key: str, calories: float
    ) -> DailyLedger:
        """Add locally tracked expenditure and recompute calories_out."""
        require_field(user_id, "userId")
        require_date_key(date_key)

        def apply(current: Document | None) -> dict[str, object]:
            data = dict(current.data) if current else {"date": date_key}
            extra_cals = as_number(data.get("extra_cals")) + calories
            data["extra_cals"] = extra_cals
            data["calories_out"] = as_number(data.get("whoop_cals")) + extra_cals
            return data

        committed = self.store.run_transaction(daily_log_key(user_id, date_key), apply)
        return DailyLedger.from_document(date_key, committed)

    def get_ledger(self, user_id: str, date_key: str) -> DailyLedger | None:
        """Return the ledger for a day, if one was recorded."""
        require_field(user_id, "userId")
        require_date_key(date_key)
        current = self.store.get(daily_log_key(user_id, date_key))
        if current is None:
            return None
        return DailyLedger.from_document(date_key, current.data)


def _open_ledger(date_key: str, entry: NutritionEntry) -> dict[str, object]:
    ledger = DailyLedger(
        date=date_key,
        calories_in=entry.amount("calories"),
        protein=entry.amount("protein"),
        carbs=entry.amount("carbs"),
        fat=entry.amount("fat"),
        alcohol=entry.amount("alcohol"),
        meals=[entry.as_meal()],
    )
    return ledger.to_document()

