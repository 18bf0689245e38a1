"""Shared test fixtures."""

import asyncio
import copy
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime

import httpx
import pytest

from health_ledger.adapters.whoop_client import WhoopClient
from health_ledger.config import Settings
from health_ledger.containers import AppContainer
from health_ledger.domain.documents import Document, DocumentKey, integration_key
from health_ledger.domain.errors import TransactionConflictError
from health_ledger.services.documents import DocumentStore, DocumentUpdate
from health_ledger.services.expenditure import ExpenditureService
from health_ledger.services.ledger import DailyLedgerService
from health_ledger.services.tokens import TokenService
from health_ledger.services.weight import WeightLogService

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
NOW_MS = int(NOW.timestamp() * 1000)


@dataclass
class InMemoryDocumentStore(DocumentStore):
    """In-memory document store with optimistic revision checks."""

    documents: dict[DocumentKey, Document] = field(default_factory=dict)
    max_attempts: int = 5
    forced_conflicts: int = 0
    commits: int = 0
    conflicts: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def get(self, key: DocumentKey) -> Document | None:
        return self.documents.get(key)

    def run_transaction(
        self, key: DocumentKey, update: DocumentUpdate
    ) -> dict[str, object]:
        for _ in range(self.max_attempts):
            current = self.get(key)
            data = update(current)
            expected = current.revision if current else 0
            with self._lock:
                latest = self.documents.get(key)
                actual = latest.revision if latest else 0
                if self.forced_conflicts or actual != expected:
                    self.forced_conflicts = max(self.forced_conflicts - 1, 0)
                    self.conflicts += 1
                    continue
                self.documents[key] = Document(
                    key=key, data=copy.deepcopy(data), revision=expected + 1
                )
                self.commits += 1
                return data
        raise TransactionConflictError(key, self.max_attempts)

    def merge(self, key: DocumentKey, fields: dict[str, object]) -> dict[str, object]:
        def apply(current: Document | None) -> dict[str, object]:
            data = dict(current.data) if current else {}
            data.update(fields)
            return data

        return self.run_transaction(key, apply)

    def seed(self, key: DocumentKey, data: dict[str, object]) -> None:
        self.documents[key] = Document(key=key, data=data, revision=1)

    def data(self, key: DocumentKey) -> dict[str, object] | None:
        document = self.documents.get(key)
        return document.data if document else None


@dataclass
class FakeWhoopClient(WhoopClient):
    """Fake WHOOP client with queued responses."""

    cycle_responses: list[object] = field(default_factory=list)
    refresh_responses: list[object] = field(default_factory=list)
    exchange_responses: list[object] = field(default_factory=list)
    fetch_calls: list[str] = field(default_factory=list)
    refresh_calls: list[str] = field(default_factory=list)
    exchange_calls: list[str] = field(default_factory=list)
    refresh_delay_seconds: float = 0.0

    def authorization_url(self, state: str) -> str:
        return f"https://whoop.test/oauth/oauth2/auth?state={state}"

    async def fetch_cycles(
        self, access_token: str, start: datetime, end: datetime
    ) -> list[dict[str, object]]:
        self.fetch_calls.append(access_token)
        response = self.cycle_responses.pop(0) if self.cycle_responses else []
        if isinstance(response, Exception):
            raise response
        return response

    async def exchange_code(self, code: str) -> dict[str, object]:
        self.exchange_calls.append(code)
        response = (
            self.exchange_responses.pop(0)
            if self.exchange_responses
            else {
                "access_token": "access-exchanged",
                "refresh_token": "refresh-exchanged",
                "expires_in": 3600,
            }
        )
        if isinstance(response, Exception):
            raise response
        return response

    async def refresh(self, refresh_token: str) -> dict[str, object]:
        self.refresh_calls.append(refresh_token)
        if self.refresh_delay_seconds:
            await asyncio.sleep(self.refresh_delay_seconds)
        response = (
            self.refresh_responses.pop(0)
            if self.refresh_responses
            else {
                "access_token": f"access-refreshed-{len(self.refresh_calls)}",
                "refresh_token": f"refresh-rotated-{len(self.refresh_calls)}",
                "expires_in": 3600,
            }
        )
        if isinstance(response, Exception):
            raise response
        return response


def http_status_error(status_code: int, body: str = "") -> httpx.HTTPStatusError:
    """Build the error httpx raises from raise_for_status()."""
    request = httpx.Request("GET", "https://api.whoop.test/cycle")
    response = httpx.Response(status_code, text=body, request=request)
    return httpx.HTTPStatusError(
        f"HTTP {status_code}", request=request, response=response
    )


def seed_tokens(
    store: InMemoryDocumentStore,
    user_id: str = "user-1",
    *,
    access_token: str = "access-stored",
    refresh_token: str | None = "refresh-stored",
    expires_at: int | None = NOW_MS + 3_600_000,
) -> None:
    data: dict[str, object] = {"access_token": access_token}
    if refresh_token is not None:
        data["refresh_token"] = refresh_token
    if expires_at is not None:
        data["expires_at"] = expires_at
    store.seed(integration_key(user_id, "whoop"), data)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        api_token="api-token",
        whoop_client_id="client-id",
        whoop_client_secret="client-secret",
        whoop_redirect_uri="https://app.test/whoop/callback",
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def whoop_client() -> FakeWhoopClient:
    return FakeWhoopClient()


@pytest.fixture
def token_service(
    store: InMemoryDocumentStore, whoop_client: FakeWhoopClient
) -> TokenService:
    return TokenService(store=store, client=whoop_client, clock=lambda: NOW)


@pytest.fixture
def container(
    settings: Settings,
    store: InMemoryDocumentStore,
    whoop_client: FakeWhoopClient,
    token_service: TokenService,
) -> AppContainer:
    ledger_service = DailyLedgerService(store)

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        whoop_client=whoop_client,
        ledger_service=ledger_service,
        weight_service=WeightLogService(store),
        token_service=token_service,
        expenditure_service=ExpenditureService(
            client=whoop_client,
            token_service=token_service,
            ledger_service=ledger_service,
        ),
        close_resources=close_resources,
    )
