"""OAuth token lifecycle for the WHOOP integration."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime

import httpx

from health_ledger.adapters.whoop_client import WhoopClient
from health_ledger.domain.documents import integration_key
from health_ledger.domain.errors import (
    NO_TOKENS,
    REAUTH_REQUIRED,
    FailedPreconditionError,
    InternalError,
)
from health_ledger.domain.integrations import (
    ExchangeResult,
    IntegrationTokenSet,
    TokenState,
)
from health_ledger.services.documents import DocumentStore
from health_ledger.services.validation import require_field

DEFAULT_EXPIRES_IN_SECONDS = 3600

_logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class _UserLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


@dataclass
class TokenService:
    """Decides whether to reuse, refresh, or demand re-authorization.

    Refreshes for one user are single-flight: they run under a per-user lock,
    and a task that waited on the lock re-reads the stored tokens before
    refreshing, so it picks up the token minted by the task ahead of it
    instead of spending an already rotated refresh token.
    """

    store: DocumentStore
    client: WhoopClient
    service_name: str = "whoop"
    refresh_margin_seconds: int = 60
    clock: Callable[[], datetime] = _utc_now
    _locks: dict[str, _UserLock] = field(
        default_factory=dict, init=False, repr=False
    )

    async def get_fresh_access_token(self, user_id: str) -> str:
        """Return a usable access token, refreshing it when close to expiry."""
        require_field(user_id, "userId")
        tokens = self._load(user_id)
        if tokens is None:
            raise FailedPreconditionError(NO_TOKENS)
        if tokens.is_valid_at(self._now_ms(), self._margin_ms):
            return tokens.access_token
        if not tokens.refresh_token:
            raise FailedPreconditionError(REAUTH_REQUIRED)

        async with self._user_lock(user_id):
            tokens = self._load(user_id)
            if tokens is None:
                raise FailedPreconditionError(NO_TOKENS)
            if tokens.is_valid_at(self._now_ms(), self._margin_ms):
                return tokens.access_token
            return await self._refresh(user_id, tokens)

    async def force_refresh(self, user_id: str, rejected_access_token: str) -> str:
        """Refresh regardless of the stored expiry after a token was rejected."""
        require_field(user_id, "userId")
        async with self._user_lock(user_id):
            tokens = self._load(user_id)
            if tokens is None:
                raise FailedPreconditionError(NO_TOKENS)
            if tokens.access_token != rejected_access_token and tokens.is_valid_at(
                self._now_ms(), self._margin_ms
            ):
                return tokens.access_token
            return await self._refresh(user_id, tokens)

    async def exchange_authorization_code(
        self, user_id: str, code: str
    ) -> ExchangeResult:
        """Trade an authorization code for tokens and store them."""
        require_field(user_id, "userId")
        require_field(code, "code")
        try:
            payload = await self.client.exchange_code(code)
        except httpx.HTTPStatusError as exc:
            _logger.error(
                "Token exchange failed: user=%s status=%s body=%s",
                user_id,
                exc.response.status_code,
                exc.response.text,
            )
            raise InternalError("Token exchange failed") from exc
        except (httpx.HTTPError, ValueError) as exc:
            _logger.error("Token exchange failed: user=%s error=%s", user_id, exc)
            raise InternalError("Token exchange failed") from exc

        if not payload.get("access_token"):
            _logger.error("Token exchange returned no access token: user=%s", user_id)
            raise InternalError("Token exchange failed")

        fields, expires_in = self._token_fields(payload)
        self.store.merge(integration_key(user_id, self.service_name), fields)
        _logger.info("Stored %s tokens: user=%s", self.service_name, user_id)
        return ExchangeResult(
            has_refresh=bool(payload.get("refresh_token")),
            expires_in=expires_in,
        )

    def token_state(self, user_id: str) -> TokenState:
        """Report the lifecycle state of the user's stored tokens."""
        require_field(user_id, "userId")
        tokens = self._load(user_id)
        if tokens is None:
            return TokenState.NO_TOKEN
        if tokens.is_valid_at(self._now_ms(), self._margin_ms):
            return TokenState.VALID
        if not tokens.refresh_token:
            return TokenState.NEEDS_REAUTH
        return TokenState.EXPIRING

    async def _refresh(self, user_id: str, tokens: IntegrationTokenSet) -> str:
        if not tokens.refresh_token:
            raise FailedPreconditionError(REAUTH_REQUIRED)
        try:
            payload = await self.client.refresh(tokens.refresh_token)
        except httpx.HTTPStatusError as exc:
            _logger.warning(
                "Token refresh rejected: user=%s status=%s body=%s",
                user_id,
                exc.response.status_code,
                exc.response.text,
            )
            raise FailedPreconditionError(REAUTH_REQUIRED) from exc
        except (httpx.HTTPError, ValueError) as exc:
            _logger.warning("Token refresh failed: user=%s error=%s", user_id, exc)
            raise FailedPreconditionError(REAUTH_REQUIRED) from exc

        access_token = payload.get("access_token")
        if not access_token:
            _logger.warning("Token refresh returned no access token: user=%s", user_id)
            raise FailedPreconditionError(REAUTH_REQUIRED)

        # Omitting refresh_token keeps the stored one; rotation is optional.
        fields, _ = self._token_fields(payload)
        self.store.merge(integration_key(user_id, self.service_name), fields)
        _logger.info("Refreshed %s token: user=%s", self.service_name, user_id)
        return str(access_token)

    def _token_fields(
        self, payload: dict[str, object]
    ) -> tuple[dict[str, object], int]:
        expires_in = payload.get("expires_in")
        if isinstance(expires_in, bool) or not isinstance(expires_in, int | float):
            expires_in = DEFAULT_EXPIRES_IN_SECONDS
        now = self.clock()
        fields: dict[str, object] = {
            "access_token": payload["access_token"],
            "expires_at": int(now.timestamp() * 1000) + int(expires_in) * 1000,
            "updated_at": now.isoformat(),
        }
        if payload.get("refresh_token"):
            fields["refresh_token"] = payload["refresh_token"]
        return fields, int(expires_in)

    def _load(self, user_id: str) -> IntegrationTokenSet | None:
        document = self.store.get(integration_key(user_id, self.service_name))
        if document is None:
            return None
        return IntegrationTokenSet.from_document(document.data)

    @asynccontextmanager
    async def _user_lock(self, user_id: str) -> AsyncIterator[None]:
        # Entries live only while a task holds or awaits the lock.
        entry = self._locks.get(user_id)
        if entry is None:
            entry = _UserLock()
            self._locks[user_id] = entry
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if not entry.users:
                del self._locks[user_id]

    def _now_ms(self) -> int:
        return int(self.clock().timestamp() * 1000)

    @property
    def _margin_ms(self) -> int:
        return self.refresh_margin_seconds * 1000
