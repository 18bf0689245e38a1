"""ASGI entrypoint for the health ledger API."""

from health_ledger.api.app import create_app
from health_ledger.containers import build_container

app = create_app(build_container())
