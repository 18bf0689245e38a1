"""Domain models for external integrations."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class TokenState(StrEnum):
    """Lifecycle state of a user's integration token."""

    NO_TOKEN = "no_token"
    VALID = "valid"
    EXPIRING = "expiring"
    NEEDS_REAUTH = "needs_reauth"


@dataclass(frozen=True)
class IntegrationTokenSet:
    """OAuth tokens stored for one user and service."""

    access_token: str
    refresh_token: str | None
    expires_at: int | None
    updated_at: str | None = None

    @classmethod
    def from_document(cls, data: dict[str, object]) -> "IntegrationTokenSet":
        expires_at = data.get("expires_at")
        refresh_token = data.get("refresh_token")
        return cls(
            access_token=str(data.get("access_token") or ""),
            refresh_token=str(refresh_token) if refresh_token else None,
            expires_at=int(expires_at) if isinstance(expires_at, int | float) else None,
            updated_at=str(data["updated_at"]) if data.get("updated_at") else None,
        )

    def is_valid_at(self, now_ms: int, margin_ms: int) -> bool:
        """Return True when the access token outlives ``now`` plus the margin."""
        if not self.access_token or self.expires_at is None:
            return False
        return now_ms < self.expires_at - margin_ms


@dataclass(frozen=True)
class ExchangeResult:
    """Outcome of an authorization-code exchange."""

    has_refresh: bool
    expires_in: int


@dataclass(frozen=True)
class ActivityCycle:
    """One physiological cycle reported by the activity service."""

    cycle_id: str | None
    start: datetime
    kilojoules: float
