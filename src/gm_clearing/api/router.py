"""Quote endpoints — amounts and fee breakdowns that accompany wallet calls.

Nothing here signs or submits; the wallet executes approve/mint/pairRedeem/
redeemLong/redeemShort with the quoted numbers.

POST /quotes/mint          — fee + tokens out (Open only)
POST /quotes/pair-redeem   — fee + USDC out (Open only)
POST /quotes/redeem        — single-sided payout (Settled only)
GET  /quotes/payout        — payout estimate for the tracked holder
POST /quotes/simulate      — settlement split at a hypothetical GDP print
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.gm_clearing.application.schemas import (
    MintQuoteRequest,
    PairRedeemQuoteRequest,
    RedeemQuoteRequest,
    SimulateRequest,
)
from src.gm_clearing.application.service import QuoteApplicationService
from src.gm_common.enums import Side
from src.gm_common.response import ApiResponse, success_response
from src.gm_market.api.dependencies import get_reconciler
from src.gm_market.application.reconciler import StateSnapshotReconciler

router = APIRouter(prefix="/quotes", tags=["quotes"])


def get_quote_service(
    reconciler: Annotated[StateSnapshotReconciler, Depends(get_reconciler)],
) -> QuoteApplicationService:
    return QuoteApplicationService(reconciler)


QuoteService = Annotated[QuoteApplicationService, Depends(get_quote_service)]


def _ok(request: Request, data: dict) -> ApiResponse:
    return success_response(data, getattr(request.state, "request_id", None))


@router.post("/mint")
async def quote_mint(body: MintQuoteRequest, request: Request, svc: QuoteService) -> ApiResponse:
    result = svc.quote_mint(Side(body.side), body.usdc_in)
    return _ok(request, result.model_dump())


@router.post("/pair-redeem")
async def quote_pair_redeem(
    body: PairRedeemQuoteRequest, request: Request, svc: QuoteService
) -> ApiResponse:
    result = svc.quote_pair_redeem(body.token_in)
    return _ok(request, result.model_dump())


@router.post("/redeem")
async def quote_redeem(
    body: RedeemQuoteRequest, request: Request, svc: QuoteService
) -> ApiResponse:
    result = svc.quote_redeem(Side(body.side), body.token_in)
    return _ok(request, result.model_dump())


@router.get("/payout")
async def estimate_payout(request: Request, svc: QuoteService) -> ApiResponse:
    result = svc.estimate_payout()
    return _ok(request, result.model_dump())


@router.post("/simulate")
async def simulate(body: SimulateRequest, request: Request, svc: QuoteService) -> ApiResponse:
    result = svc.simulate(g_ppm=body.g_ppm, g_percent=body.g_percent)
    return _ok(request, result.model_dump())
