"""gm_market REST endpoints.

GET  /market/snapshot   — latest complete snapshot + status (FRESH/STALE/EMPTY)
POST /market/refresh    — re-read chain state (joins an in-flight round)
POST /market/holder     — switch the tracked wallet
GET  /market/network    — selected network, contract addresses, explorer links
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from config.networks import NetworkConfig, normalize_address
from src.gm_common.errors import InvalidInputError
from src.gm_common.response import ApiResponse, success_response
from src.gm_market.api.dependencies import get_network, get_reconciler
from src.gm_market.application.reconciler import StateSnapshotReconciler
from src.gm_market.application.schemas import (
    HolderRequest,
    NetworkResponse,
    RefreshResponse,
    SnapshotResponse,
)

router = APIRouter(prefix="/market", tags=["market"])


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@router.get("/snapshot")
async def get_snapshot(
    request: Request,
    reconciler: Annotated[StateSnapshotReconciler, Depends(get_reconciler)],
) -> ApiResponse:
    result = SnapshotResponse.from_reconciler(reconciler)
    return success_response(result.model_dump(), _request_id(request))


@router.post("/refresh")
async def refresh(
    request: Request,
    reconciler: Annotated[StateSnapshotReconciler, Depends(get_reconciler)],
    wait: bool = Query(True, description="Wait for the round to finish"),
) -> ApiResponse:
    """Called by the UI after a mint/redeem confirms, and on demand."""
    if wait:
        outcome = await reconciler.refresh()
        result = RefreshResponse(version=outcome.version, stale=outcome.stale, error=outcome.error)
    else:
        started = reconciler.request_refresh()
        snap = reconciler.snapshot
        result = RefreshResponse(
            started=started,
            version=snap.version if snap else 0,
            stale=reconciler.last_error is not None,
            error=reconciler.last_error,
        )
    return success_response(result.model_dump(), _request_id(request))


@router.post("/holder")
async def switch_holder(
    body: HolderRequest,
    request: Request,
    reconciler: Annotated[StateSnapshotReconciler, Depends(get_reconciler)],
) -> ApiResponse:
    holder = None
    if body.holder:
        try:
            holder = normalize_address(body.holder)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc
    reconciler.switch_holder(holder)
    return success_response({"holder": holder}, _request_id(request))


@router.get("/network")
async def get_network_info(
    request: Request,
    network: Annotated[tuple[str, NetworkConfig], Depends(get_network)],
    reconciler: Annotated[StateSnapshotReconciler, Depends(get_reconciler)],
) -> ApiResponse:
    network_id, config = network
    snap = reconciler.snapshot
    tokens = {
        "long_token": snap.market.long_token if snap else None,
        "short_token": snap.market.short_token if snap else None,
    }
    result = NetworkResponse.from_config(network_id, config, tokens)
    return success_response(result.model_dump(), _request_id(request))
