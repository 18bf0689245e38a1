"""Daily energy expenditure sync from the activity service."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx

from health_ledger.adapters.whoop_client import WhoopClient
from health_ledger.domain.errors import InternalError, InvalidArgumentError
from health_ledger.domain.integrations import ActivityCycle
from health_ledger.domain.ledger import ExpenditureSync
from health_ledger.services.ledger import DailyLedgerService
from health_ledger.services.tokens import TokenService
from health_ledger.services.validation import require_field

KILOJOULES_PER_KILOCALORIE = 4.184

_UNAUTHORIZED = 401

_logger = logging.getLogger(__name__)


@dataclass
class ExpenditureService:
    """Pulls cycle energy from WHOOP and writes it into the daily ledger."""

    client: WhoopClient
    token_service: TokenService
    ledger_service: DailyLedgerService

    async def fetch_external_expenditure(
        self, user_id: str, start: datetime, end: datetime
    ) -> ExpenditureSync:
        """Sync the kilocalories burned on ``start``'s calendar date.

        A 401 from the activity service is recovered with one forced refresh
        and one retried fetch; nothing beyond that is retried.
        """
        require_field(user_id, "userId")
        require_field(start, "start")
        require_field(end, "end")
        start = _aware(start)
        end = _aware(end)
        if start >= end:
            raise InvalidArgumentError("start must be before end")

        access_token = await self.token_service.get_fresh_access_token(user_id)
        records = await self._fetch_with_reauth(user_id, access_token, start, end)
        day = start.date()
        cycles = [
            cycle
            for cycle in (_parse_cycle(record) for record in records)
            if cycle is not None and cycle.start.astimezone(start.tzinfo).date() == day
        ]
        whoop_cals = kilojoules_to_kilocalories(
            sum(cycle.kilojoules for cycle in cycles)
        )
        _logger.info(
            "Activity sync: user=%s date=%s cycles=%s kcal=%s",
            user_id,
            day.isoformat(),
            len(cycles),
            whoop_cals,
        )
        return self.ledger_service.sync_external_expenditure(
            user_id, day.isoformat(), whoop_cals
        )

    async def _fetch_with_reauth(
        self, user_id: str, access_token: str, start: datetime, end: datetime
    ) -> list[dict[str, object]]:
        try:
            return await self.client.fetch_cycles(access_token, start, end)
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code != _UNAUTHORIZED:
                _logger.warning(
                    "Cycle fetch failed: user=%s status=%s body=%s",
                    user_id,
                    exc.response.status_code,
                    exc.response.text,
                )
                raise InternalError("Activity service request failed") from exc
        except (httpx.HTTPError, ValueError) as exc:
            _logger.warning("Cycle fetch failed: user=%s error=%s", user_id, exc)
            raise InternalError("Activity service request failed") from exc

        _logger.info("Access token rejected, forcing refresh: user=%s", user_id)
        access_token = await self.token_service.force_refresh(user_id, access_token)
        try:
            return await self.client.fetch_cycles(access_token, start, end)
        except (httpx.HTTPError, ValueError) as exc:
            _logger.warning(
                "Cycle fetch failed after refresh: user=%s error=%s", user_id, exc
            )
            raise InternalError("Activity service request failed") from exc


def kilojoules_to_kilocalories(kilojoules: float) -> int:
    """Convert kilojoules to whole kilocalories."""
    return round(kilojoules / KILOJOULES_PER_KILOCALORIE)


def _parse_cycle(record: dict[str, object]) -> ActivityCycle | None:
    raw_start = record.get("start")
    if not isinstance(raw_start, str):
        return None
    try:
        start = _aware(datetime.fromisoformat(raw_start))
    except ValueError:
        return None
    score = record.get("score")
    kilojoules = score.get("kilojoule") if isinstance(score, dict) else None
    cycle_id = record.get("id")
    return ActivityCycle(
        cycle_id=str(cycle_id) if cycle_id is not None else None,
        start=start,
        kilojoules=float(kilojoules) if isinstance(kilojoules, int | float) else 0.0,
    )


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
