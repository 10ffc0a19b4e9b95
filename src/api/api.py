from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from time import perf_counter
from typing import Annotated, AsyncGenerator, Awaitable, Callable

from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker

from api.dependencies import get_asset_repository, get_purchase_engine, get_query_service
from api.schemas import AssetResponse, BuyRequest, ErrorResponse, QuoteResponse, SummaryResponse, TransactionResponse
from config import AppSettings, config
from db.db import create_db_engine
from db.repositories import AssetRepository
from domain.base_types import AssetId
from domain.catalog import quote_purchase
from domain.failures import FailureKind, InvalidQuantity, PurchaseFailure
from domain.ledger import LedgerOrder, Transaction
from importers.asset_catalog import load_assets
from services.purchase_engine import PurchaseEngine
from services.query_service import TransactionQueryService, placeholder_asset_name
from services.reconciliation import reconcile_supply

logger = logging.getLogger(__name__)

FAILURE_STATUS: dict[FailureKind, int] = {
    FailureKind.ASSET_NOT_FOUND: 404,
    FailureKind.INVALID_BUYER: 400,
    FailureKind.INVALID_QUANTITY: 400,
    FailureKind.INSUFFICIENT_SUPPLY: 409,
    FailureKind.BUSY: 503,
    FailureKind.STORAGE_FAILURE: 500,
}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def failure_response(failure: PurchaseFailure) -> JSONResponse:
    return error_response(FAILURE_STATUS[failure.kind], failure.message)


def prepare_catalog(session_factory: sessionmaker[Session], settings: AppSettings) -> None:
    with session_factory() as session:
        if settings.seed_assets_file is not None:
            inserted = AssetRepository(session).add_many(load_assets(settings.seed_assets_file))
            logger.info("Seeded %d assets from %s", inserted, settings.seed_assets_file)
        drifts = reconcile_supply(session)
        if drifts:
            logger.warning("Reconciled supply for %d assets against the ledger", len(drifts))


def create_app(
    *,
    settings: AppSettings | None = None,
    session_factory: sessionmaker[Session] | None = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(fastapi_app: FastAPI) -> AsyncGenerator[None, None]:
        app_settings = settings or config()
        engine = None
        factory = session_factory
        if factory is None:
            engine = create_db_engine(app_settings.database_url, echo=app_settings.db_echo)
            factory = sessionmaker(engine)
        prepare_catalog(factory, app_settings)
        fastapi_app.state.sessionmaker = factory
        fastapi_app.state.purchase_engine = PurchaseEngine(factory, lock_timeout=app_settings.lock_timeout_seconds)
        yield
        if engine is not None:
            engine.dispose()

    fastapi_app = FastAPI(lifespan=lifespan)

    @fastapi_app.middleware("http")
    async def log_process_time(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        start_time = perf_counter()
        response = await call_next(request)
        process_time = perf_counter() - start_time
        logger.info("Request time: %s %s: %.4fs", request.method, request.url, process_time)
        return response

    @fastapi_app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(400, f"Invalid request: {exc.errors()}")

    @fastapi_app.get("/transactions")
    def get_transactions(
        qs: Annotated[TransactionQueryService, Depends(get_query_service)],
        search: str | None = None,
        order: LedgerOrder = LedgerOrder.ASC,
    ) -> list[TransactionResponse]:
        return [
            TransactionResponse.from_domain(view.transaction, view.asset_name)
            for view in qs.list_transactions(search, order=order)
        ]

    @fastapi_app.get("/transactions/summary")
    def get_summary(qs: Annotated[TransactionQueryService, Depends(get_query_service)]) -> SummaryResponse:
        return SummaryResponse.from_domain(qs.summary())

    @fastapi_app.post("/buy", response_model=TransactionResponse, responses={400: {"model": ErrorResponse}})
    def buy(
        body: BuyRequest,
        engine: Annotated[PurchaseEngine, Depends(get_purchase_engine)],
        ar: Annotated[AssetRepository, Depends(get_asset_repository)],
    ) -> TransactionResponse | JSONResponse:
        result = engine.purchase(body.asset_id, body.buyer_name, body.quantity)
        if not isinstance(result, Transaction):
            return failure_response(result)

        asset = ar.get(result.asset_id)
        if asset is None or not asset.name.strip():
            return TransactionResponse.from_domain(result, placeholder_asset_name(result.asset_id))
        return TransactionResponse.from_domain(result, asset.name)

    @fastapi_app.get("/assets")
    def get_assets(ar: Annotated[AssetRepository, Depends(get_asset_repository)]) -> list[AssetResponse]:
        return [AssetResponse.from_domain(asset) for asset in ar.list()]

    @fastapi_app.get("/assets/{asset_id}", response_model=AssetResponse, responses={404: {"model": ErrorResponse}})
    def get_asset(
        asset_id: int, ar: Annotated[AssetRepository, Depends(get_asset_repository)]
    ) -> AssetResponse | JSONResponse:
        asset = ar.get(AssetId(asset_id))
        if asset is None:
            return error_response(404, f"Asset {asset_id} not found")
        return AssetResponse.from_domain(asset)

    @fastapi_app.get(
        "/assets/{asset_id}/quote", response_model=QuoteResponse, responses={400: {"model": ErrorResponse}}
    )
    def get_quote(
        asset_id: int, quantity: int, ar: Annotated[AssetRepository, Depends(get_asset_repository)]
    ) -> QuoteResponse | JSONResponse:
        asset = ar.get(AssetId(asset_id))
        if asset is None:
            return error_response(404, f"Asset {asset_id} not found")
        if quantity < 1:
            return error_response(400, InvalidQuantity(quantity=quantity).message)
        return QuoteResponse.from_domain(quote_purchase(asset, quantity))

    return fastapi_app


app = create_app()
