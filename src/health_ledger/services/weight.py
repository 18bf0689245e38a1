"""Weight log service."""

import logging
import math
import re
from dataclasses import dataclass
from datetime import UTC, datetime, time

from health_ledger.domain.documents import Document, weight_log_key
from health_ledger.domain.errors import AlreadyExistsError, InvalidArgumentError
from health_ledger.domain.weight import WeightRecord
from health_ledger.services.documents import DocumentStore
from health_ledger.services.validation import require_date_key, require_field

_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+(?:[.,]\d*)?|[.,]\d+))")

_logger = logging.getLogger(__name__)


@dataclass
class WeightLogService:
    """Records at most one weight measurement per user per day."""

    store: DocumentStore

    def record_weight(
        self, user_id: str, date_key: str, weight: object
    ) -> WeightRecord:
        """Create the day's weight record, rejecting a second one."""
        require_field(user_id, "userId")
        day = require_date_key(date_key)
        record = WeightRecord(
            date=datetime.combine(day, time.min, tzinfo=UTC),
            weight=parse_weight(weight),
        )

        def apply(current: Document | None) -> dict[str, object]:
            if current is not None:
                raise AlreadyExistsError(f"Weight already recorded for {date_key}")
            return record.to_document()

        self.store.run_transaction(weight_log_key(user_id, date_key), apply)
        _logger.info("Recorded weight: user=%s date=%s", user_id, date_key)
        return record


def parse_weight(raw: object) -> float:
    """Parse a weight from a number or a loosely formatted string.

    Accepts ``72.4``, ``"72.4"``, ``"72,4"`` and ``"72.4 kg"``.
    """
    value: float | None = None
    if isinstance(raw, bool):
        value = None
    elif isinstance(raw, int | float):
        value = float(raw)
    elif isinstance(raw, str):
        match = _LEADING_NUMBER.match(raw)
        if match:
            value = float(match.group(1).replace(",", "."))
    if value is None or not math.isfinite(value) or value <= 0:
        raise InvalidArgumentError(f"Invalid weight: {raw!r}")
    return value
