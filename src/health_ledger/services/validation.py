"""Argument checks shared by the ledger services."""

from datetime import date

from health_ledger.domain.errors import InvalidArgumentError


def require_field(value: object, name: str) -> None:
    """Raise when a required argument is missing or empty."""
    if value is None or value == "":
        raise InvalidArgumentError(f"Missing required field: {name}")


def require_date_key(date_key: str | None) -> date:
    """Validate a ``yyyy-MM-dd`` date key and return the date."""
    require_field(date_key, "dateString")
    try:
        parsed = date.fromisoformat(str(date_key))
    except ValueError:
        parsed = None
    if parsed is None or parsed.isoformat() != date_key:
        raise InvalidArgumentError(f"Invalid date key: {date_key}")
    return parsed
