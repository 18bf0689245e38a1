"""Tests for container wiring."""

import asyncio

from health_ledger.adapters.whoop_client import HttpxWhoopClient
from health_ledger.containers import build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert container.ledger_service is not None
    assert container.weight_service is not None
    assert container.expenditure_service.token_service is container.token_service
    assert isinstance(container.whoop_client, HttpxWhoopClient)
    assert container.whoop_client.redirect_uri == settings.whoop_redirect_uri
    assert container.token_service.refresh_margin_seconds == 60
    asyncio.run(container.close_resources())
