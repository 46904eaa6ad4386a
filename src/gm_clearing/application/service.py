"""QuoteApplicationService — phase-gated quotes against the current snapshot.

All methods are read-only and synchronous: they take the reconciler's latest
complete snapshot, check the phase gate, then call the pure calculators.
Quotes on a stale snapshot are still returned, flagged `meta.stale`.
"""

from src.gm_clearing.application.schemas import (
    MintQuoteResponse,
    PairRedeemQuoteResponse,
    PayoutResponse,
    RateOut,
    RedeemQuoteResponse,
    SimulationResponse,
    SnapshotMeta,
)
from src.gm_clearing.domain.fee import quote_mint, quote_pair_redeem
from src.gm_clearing.domain.redemption import (
    RedemptionRate,
    estimate_payout,
    quote_redeem,
    resolve_rate,
)
from src.gm_clearing.domain.settlement import (
    g_ppm_from_percent,
    project_rates,
    simulate_split,
    split_vault,
)
from src.gm_common.enums import MarketOperation, MarketPhase, Side, SnapshotStatus
from src.gm_common.errors import InvalidInputError
from src.gm_common.fixed_point import TOKEN_DECIMALS, USDC_DECIMALS, rescale
from src.gm_market.application.reconciler import StateSnapshotReconciler
from src.gm_market.domain.models import MarketSnapshot, MarketState
from src.gm_market.domain.phase import check_operation_allowed


def side_rate(market: MarketState, side: Side) -> RedemptionRate | None:
    if side is Side.LONG:
        return resolve_rate(market.long_redeem_numerator, market.long_redeem_denominator)
    return resolve_rate(market.short_redeem_numerator, market.short_redeem_denominator)


class QuoteApplicationService:
    def __init__(self, reconciler: StateSnapshotReconciler) -> None:
        self._reconciler = reconciler

    def _snapshot(self) -> tuple[MarketSnapshot, SnapshotMeta]:
        snapshot = self._reconciler.require_snapshot()
        stale = self._reconciler.status is SnapshotStatus.STALE
        return snapshot, SnapshotMeta.from_snapshot(snapshot, stale)

    def quote_mint(self, side: Side, usdc_in: int) -> MintQuoteResponse:
        snapshot, meta = self._snapshot()
        market = snapshot.market
        check_operation_allowed(market.phase, MarketOperation.MINT)
        quote = quote_mint(usdc_in, market.mint_fee_bps)
        return MintQuoteResponse.from_quote(quote, side.value, market.mint_fee_bps, meta)

    def quote_pair_redeem(self, token_in: int) -> PairRedeemQuoteResponse:
        snapshot, meta = self._snapshot()
        market = snapshot.market
        check_operation_allowed(market.phase, MarketOperation.PAIR_REDEEM)
        quote = quote_pair_redeem(token_in, market.pair_redeem_fee_bps)
        position = snapshot.position
        # balances are 18-decimal token units, token_in is 6-decimal
        units = rescale(token_in, USDC_DECIMALS, TOKEN_DECIMALS)
        sufficient = None if position is None else units <= position.pairable
        return PairRedeemQuoteResponse.from_quote(
            quote, market.pair_redeem_fee_bps, meta, sufficient
        )

    def quote_redeem(self, side: Side, token_in: int) -> RedeemQuoteResponse:
        snapshot, meta = self._snapshot()
        market = snapshot.market
        operation = (
            MarketOperation.REDEEM_LONG if side is Side.LONG else MarketOperation.REDEEM_SHORT
        )
        check_operation_allowed(market.phase, operation)
        rate = side_rate(market, side)
        payout = quote_redeem(token_in, rate)
        return RedeemQuoteResponse(
            meta=meta,
            side=side.value,
            token_in=token_in,
            rate=RateOut.from_rate(rate),
            payout=payout,
        )

    def estimate_payout(self) -> PayoutResponse:
        snapshot, meta = self._snapshot()
        position = snapshot.position
        if position is None:
            raise InvalidInputError("no holder is tracked; position unknown")
        long_rate = side_rate(snapshot.market, Side.LONG)
        short_rate = side_rate(snapshot.market, Side.SHORT)
        estimate = estimate_payout(
            position.long_balance, long_rate, position.short_balance, short_rate
        )
        return PayoutResponse.from_estimate(estimate, position, long_rate, short_rate, meta)

    def simulate(
        self, g_ppm: int | None = None, g_percent: str | None = None
    ) -> SimulationResponse:
        """Split at a hypothetical g; defaults to the oracle's current reading."""
        snapshot, meta = self._snapshot()
        if g_percent is not None:
            g_ppm = g_ppm_from_percent(g_percent)
        elif g_ppm is None:
            g_ppm = snapshot.oracle.g_ppm

        market = snapshot.market
        split = simulate_split(g_ppm, snapshot.leverage.k)
        pots = split_vault(market.vault_balance_micro, split)
        rates = project_rates(
            market.vault_balance_micro, market.long_supply, market.short_supply, split
        )

        actual_pots = None
        settled_here = (
            market.phase is MarketPhase.SETTLED
            and snapshot.oracle.finalized
            and snapshot.oracle.g_ppm == g_ppm
        )
        if settled_here:
            actual_pots = (market.long_pot_micro, market.short_pot_micro)
        return SimulationResponse.from_split(split, pots, rates, meta, actual_pots)
