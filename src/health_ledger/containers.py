"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from health_ledger.adapters.supabase_document_store import SupabaseDocumentStore
from health_ledger.adapters.whoop_client import HttpxWhoopClient, WhoopClient
from health_ledger.config import Settings
from health_ledger.services.expenditure import ExpenditureService
from health_ledger.services.ledger import DailyLedgerService
from health_ledger.services.tokens import TokenService
from health_ledger.services.weight import WeightLogService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    whoop_client: WhoopClient
    ledger_service: DailyLedgerService
    weight_service: WeightLogService
    token_service: TokenService
    expenditure_service: ExpenditureService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    store = SupabaseDocumentStore(
        supabase_client, max_attempts=resolved_settings.store_max_attempts
    )
    whoop_client = HttpxWhoopClient.create(
        credentials=resolved_settings.oauth_credentials(),
        redirect_uri=resolved_settings.whoop_redirect_uri,
        api_base_url=resolved_settings.whoop_api_base_url,
        token_url=resolved_settings.whoop_token_url,
        authorize_url=resolved_settings.whoop_authorize_url,
        scopes=resolved_settings.whoop_scopes,
        timeout=resolved_settings.http_timeout_seconds,
    )
    ledger_service = DailyLedgerService(store)
    token_service = TokenService(
        store=store,
        client=whoop_client,
        refresh_margin_seconds=resolved_settings.token_refresh_margin_seconds,
    )
    expenditure_service = ExpenditureService(
        client=whoop_client,
        token_service=token_service,
        ledger_service=ledger_service,
    )

    async def close_resources() -> None:
        await whoop_client.close()

    return AppContainer(
        settings=resolved_settings,
        whoop_client=whoop_client,
        ledger_service=ledger_service,
        weight_service=WeightLogService(store),
        token_service=token_service,
        expenditure_service=expenditure_service,
        close_resources=close_resources,
    )
