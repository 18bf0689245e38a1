"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from health_ledger.api.models import (
    ExchangeCodeRequest,
    ExpenditureSyncRequest,
    ExtraExpenditureRequest,
    NutritionEntryRequest,
    WeightRequest,
)
from health_ledger.app_logging import configure_logging
from health_ledger.containers import AppContainer
from health_ledger.domain.errors import (
    AlreadyExistsError,
    FailedPreconditionError,
    InvalidArgumentError,
    LedgerError,
    TransactionConflictError,
)

_STATUS_BY_ERROR: list[tuple[type[LedgerError], int]] = [
    (InvalidArgumentError, status.HTTP_400_BAD_REQUEST),
    (AlreadyExistsError, status.HTTP_409_CONFLICT),
    (TransactionConflictError, status.HTTP_409_CONFLICT),
    (FailedPreconditionError, status.HTTP_412_PRECONDITION_FAILED),
]


def _container(request: Request) -> AppContainer:
    return request.app.state.container


async def require_api_token(
    request: Request, x_api_token: str | None = Header(default=None)
) -> None:
    """Ensure requests include the shared API token."""
    expected = _container(request).settings.api_token
    if not x_api_token or x_api_token != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    guarded = [Depends(require_api_token)]

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(_: Request, exc: LedgerError) -> JSONResponse:
        status_code = status.HTTP_502_BAD_GATEWAY
        for error_type, mapped in _STATUS_BY_ERROR:
            if isinstance(exc, error_type):
                status_code = mapped
                break
        body: dict[str, object] = {"error": exc.code, "message": exc.message}
        if isinstance(exc, FailedPreconditionError):
            body["reason"] = exc.reason
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.warning("Request failed: %s", exc.message)
        return JSONResponse(status_code=status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        _: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": InvalidArgumentError.code,
                "message": "Missing or malformed fields",
                "details": [
                    {"loc": list(error["loc"]), "msg": error["msg"]}
                    for error in exc.errors()
                ],
            },
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/ledger/entries", dependencies=guarded)
    async def add_entry(
        body: NutritionEntryRequest, request: Request
    ) -> dict[str, object]:
        """Record a nutrition entry into the day's ledger."""
        return _container(request).ledger_service.record_nutrition_entry(
            body.user_id, body.date_key, body.entry.to_entry()
        )

    @app.get("/ledger/{user_id}/{date_key}", dependencies=guarded)
    async def get_ledger(
        user_id: str, date_key: str, request: Request
    ) -> dict[str, object]:
        """Return the ledger for a day."""
        ledger = _container(request).ledger_service.get_ledger(user_id, date_key)
        if ledger is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return ledger.to_document()

    @app.post("/ledger/extra", dependencies=guarded)
    async def add_extra(
        body: ExtraExpenditureRequest, request: Request
    ) -> dict[str, object]:
        """Add locally tracked expenditure to a day."""
        ledger = _container(request).ledger_service.add_extra_expenditure(
            body.user_id, body.date_key, body.calories
        )
        return ledger.to_document()

    @app.post("/weight", dependencies=guarded)
    async def add_weight(body: WeightRequest, request: Request) -> dict[str, object]:
        """Record the day's weight measurement."""
        _container(request).weight_service.record_weight(
            body.user_id, body.date_key, body.weight
        )
        return {}

    @app.post("/whoop/exchange", dependencies=guarded)
    async def whoop_exchange(
        body: ExchangeCodeRequest, request: Request
    ) -> dict[str, object]:
        """Exchange an authorization code for stored tokens."""
        service = _container(request).token_service
        result = await service.exchange_authorization_code(body.user_id, body.code)
        return {
            "ok": True,
            "hasRefresh": result.has_refresh,
            "expires_in": result.expires_in,
        }

    @app.post("/whoop/sync", dependencies=guarded)
    async def whoop_sync(
        body: ExpenditureSyncRequest, request: Request
    ) -> dict[str, object]:
        """Sync the day's external expenditure into the ledger."""
        service = _container(request).expenditure_service
        result = await service.fetch_external_expenditure(
            body.user_id, body.start, body.end
        )
        return {"whoop_cals": result.whoop_cals, "calories_out": result.calories_out}

    @app.get("/whoop/status/{user_id}", dependencies=guarded)
    async def whoop_status(user_id: str, request: Request) -> dict[str, str]:
        """Report the user's integration token state."""
        state = _container(request).token_service.token_state(user_id)
        return {"state": state.value}

    @app.get("/whoop/authorize", dependencies=guarded)
    async def whoop_authorize(state: str, request: Request) -> dict[str, str]:
        """Return the URL that starts the WHOOP authorization flow."""
        return {"url": _container(request).whoop_client.authorization_url(state)}

    return app

