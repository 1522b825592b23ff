"""FastAPI read API for the web dashboard."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from prophit import __version__
from prophit.api.exceptions import MarketNotFoundError
from prophit.api.filters import keep_movement
from prophit.api.schemas import (
    CategoriesResponse,
    ErrorResponse,
    HealthResponse,
    HistoryResponse,
    MarketDetailResponse,
    MarketsListResponse,
    MovementItem,
    MovementsResponse,
    ServiceInfoResponse,
    StatsResponse,
)
from prophit.config import Settings, get_settings
from prophit.models import Market
from prophit.services import Services, build_services
from prophit.storage.base import now_ms

log = structlog.get_logger(__name__)

ALL_CATEGORIES = "all"
UNKNOWN_QUESTION = "Unknown Market"

_STATUS_CODES = {404: "not_found", 405: "method_not_allowed"}


def _error_json(code: str | None, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { success: false, error, code }."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message, code=code).model_dump(),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


router = APIRouter(prefix="/api/markets", tags=["markets"])


@router.get("", response_model=MarketsListResponse)
async def markets_list(
    category: str | None = Query(None, description="Category name; 'all' for no filter"),
    limit: int = Query(50, ge=1, le=500),
    services: Services = Depends(get_services),
) -> MarketsListResponse:
    """Active markets, most recently updated first. Fetches live when nothing is stored yet."""
    wanted = None if not category or category.lower() == ALL_CATEGORIES else category
    storage = services.storage
    markets = await run_in_threadpool(storage.list_markets, category=wanted)
    source = "storage"
    if not markets and not await run_in_threadpool(storage.list_markets, limit=1):
        fetched = await services.manager.fetch_active_markets(limit)
        markets = [m for m in fetched if wanted is None or m.category == wanted]
        source = "api"
    return MarketsListResponse(data=markets[:limit], source=source, total=len(markets))


@router.get("/movements", response_model=MovementsResponse)
def movements_list(
    limit: int = Query(50, ge=1, le=500),
    hours: int = Query(24, ge=1, le=24 * 30),
    services: Services = Depends(get_services),
) -> MovementsResponse:
    """Recent movements with market context, newest first. Yes/No noise on matches is dropped."""
    # Fetch more than asked so the display filter still leaves enough
    movements = services.storage.list_movements(hours=hours, limit=limit * 3)
    markets: dict[str, Market | None] = {}
    items: list[MovementItem] = []
    for movement in movements:
        if movement.market_id not in markets:
            markets[movement.market_id] = services.storage.get_market(movement.market_id)
        market = markets[movement.market_id]
        question = market.question if market else UNKNOWN_QUESTION
        if not keep_movement(movement.outcome, question):
            continue
        items.append(
            MovementItem(
                id=movement.id,
                market_id=movement.market_id,
                market_question=question,
                category=market.category if market else "Other",
                outcome=movement.outcome,
                change_percent=movement.change_percent,
                old_price=movement.old_price,
                new_price=movement.new_price,
                detected_at=movement.detected_at,
            )
        )
        if len(items) >= limit:
            break
    return MovementsResponse(data=items, total=len(items), timeframe=f"{hours}h")


@router.get("/categories", response_model=CategoriesResponse)
def categories_list(services: Services = Depends(get_services)) -> CategoriesResponse:
    return CategoriesResponse(data=services.storage.list_categories())


@router.get("/stats", response_model=StatsResponse)
def stats(services: Services = Depends(get_services)) -> StatsResponse:
    """Fetcher counters, storage counts and poller status."""
    storage_stats = services.storage.stats()
    storage_stats["movement_threshold"] = services.detector.threshold_percent
    return StatsResponse(
        data={
            "polymarket": services.manager.stats(),
            "storage": storage_stats,
            "polling": services.scheduler.status(),
            "timestamp": now_ms(),
        }
    )


@router.get(
    "/{market_id}",
    response_model=MarketDetailResponse,
    responses={404: {"description": "Market not found", "model": ErrorResponse}},
)
def market_detail(market_id: str, services: Services = Depends(get_services)) -> MarketDetailResponse:
    market = services.storage.get_market(market_id)
    if market is None:
        raise MarketNotFoundError(market_id)
    return MarketDetailResponse(data=market)


@router.get("/{market_id}/history", response_model=HistoryResponse)
def market_history(
    market_id: str,
    hours: int = Query(24, ge=1, le=24 * 30),
    outcome: str | None = Query(None, description="Only this outcome"),
    services: Services = Depends(get_services),
) -> HistoryResponse:
    """Price samples for the market in the last ``hours``, oldest first."""
    entries = services.storage.query_price_history(market_id, hours, outcome=outcome)
    return HistoryResponse(data=entries, market_id=market_id, timeframe=f"{hours}h")


def create_app(
    services: Services | None = None,
    *,
    settings: Settings | None = None,
    start_polling: bool = True,
) -> FastAPI:
    """Build the API. Without ``services`` they are built from ``settings`` at startup and closed at shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.services is None
        if owned:
            app.state.services = build_services(settings or get_settings())
        svc: Services = app.state.services
        if start_polling:
            svc.scheduler.start()
        log.info("api_started", storage=svc.storage.kind, polling=start_polling)
        yield
        svc.scheduler.stop()
        await svc.scheduler.wait()
        if owned:
            await svc.aclose()
        log.info("api_stopped")

    app = FastAPI(title="Prophit API", version=__version__, lifespan=lifespan)
    app.state.services = services
    app.state.started_at = time.time()
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = getattr(exc, "error_code", None) or _STATUS_CODES.get(exc.status_code, "http_error")
        return _error_json(code, str(exc.detail), exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        return _error_json("invalid_request", f"Invalid request parameters: {fields}", 422)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        log.exception("request_failed", path=request.url.path)
        return _error_json("internal_error", "Internal server error", 500)

    @app.get("/", response_model=ServiceInfoResponse)
    def service_info() -> ServiceInfoResponse:
        return ServiceInfoResponse(
            service="Prophit API",
            version=__version__,
            endpoints={
                "health": "/health",
                "markets": "/api/markets",
                "movements": "/api/markets/movements",
                "categories": "/api/markets/categories",
                "stats": "/api/markets/stats",
            },
        )

    @app.get("/health", response_model=HealthResponse)
    def health(request: Request) -> HealthResponse:
        return HealthResponse(
            timestamp=now_ms(),
            uptime_sec=round(time.time() - request.app.state.started_at, 3),
        )

    app.include_router(router)
    return app


def run_api(
    host: str = "127.0.0.1",
    port: int = 5000,
    profile: str | None = None,
    config_dir: Path | None = None,
    polling: bool = True,
) -> None:
    import uvicorn

    settings = get_settings(profile, config_dir)
    app = create_app(settings=settings, start_polling=polling)
    uvicorn.run(app, host=host, port=port, reload=False)
