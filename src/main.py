"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.networks import resolve_network
from config.settings import settings
from src.gm_clearing.api.router import router as quotes_router
from src.gm_common.errors import AppError
from src.gm_common.response import error_response
from src.gm_gateway.middleware.request_log import RequestLogMiddleware
from src.gm_market.api.router import router as market_router
from src.gm_market.application.reconciler import StateSnapshotReconciler
from src.gm_market.infrastructure.artifacts import load_broadcast_addresses
from src.gm_market.infrastructure.chain_reader import build_reader

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: resolve the network, start snapshot refresh. Shutdown: stop it."""
    # Startup: configuration errors abort here, there is no fallback network
    deployed = None
    if settings.BROADCAST_FILE:
        deployed = load_broadcast_addresses(settings.BROADCAST_FILE)
    network = resolve_network(settings.NETWORKS, settings.NETWORK, deployed)
    reader = build_reader(
        network,
        settings.ARTIFACTS_DIR,
        settings.ORACLE_ARTIFACT,
        settings.RPC_TIMEOUT_SECONDS,
    )
    reconciler = StateSnapshotReconciler(
        reader,
        holder=settings.HOLDER_ADDRESS,
        interval_seconds=settings.REFRESH_INTERVAL_SECONDS,
    )
    app.state.network_id = settings.NETWORK
    app.state.network = network
    app.state.reconciler = reconciler
    logger.info(
        "Network %s (chain %d) market=%s",
        settings.NETWORK,
        network.chain_id,
        network.contracts.gdp_market,
    )
    reconciler.start()
    yield
    # Shutdown
    await reconciler.close()
    await reader.aclose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(market_router, prefix="/api/v1")
app.include_router(quotes_router, prefix="/api/v1")


@app.get("/health")
async def health(request: Request) -> dict[str, str]:
    reconciler = getattr(request.app.state, "reconciler", None)
    status = reconciler.status.value if reconciler is not None else "EMPTY"
    return {"status": "ok", "version": "0.1.0", "snapshot": status}
