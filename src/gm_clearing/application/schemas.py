"""Pydantic schemas for quote endpoints.

Amounts are ints in native units (USDC 6 decimals, tokens 18 decimals);
`*_display` fields are formatted strings for the UI and are never parsed back.
"""

from fractions import Fraction
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from src.gm_clearing.domain.fee import MintQuote, PairRedeemQuote
from src.gm_clearing.domain.redemption import PayoutEstimate, RedemptionRate
from src.gm_clearing.domain.settlement import SettlementSplit
from src.gm_common.fixed_point import (
    BPS_DENOMINATOR,
    TOKEN_DECIMALS,
    USDC_DECIMALS,
    apply_rate,
    bps_to_percent,
    ppm_to_percent,
    rescale,
    to_display,
    usdc_to_display,
)
from src.gm_market.domain.models import MarketSnapshot, Position

UNDETERMINED = "undetermined"


def fraction_to_str(value: Fraction) -> str:
    return f"{value.numerator}/{value.denominator}"


def share_to_percent(value: Fraction) -> str:
    """Exact share -> '52.50%' (truncated to 2 places, display only)."""
    bps = apply_rate(BPS_DENOMINATOR, value.numerator, value.denominator)
    return bps_to_percent(bps)


class SnapshotMeta(BaseModel):
    snapshot_version: int
    block_number: int
    stale: bool

    @classmethod
    def from_snapshot(cls, snapshot: MarketSnapshot, stale: bool) -> "SnapshotMeta":
        return cls(
            snapshot_version=snapshot.version,
            block_number=snapshot.block_number,
            stale=stale,
        )


class RateOut(BaseModel):
    numerator: int
    denominator: int
    display: str

    @classmethod
    def from_rate(cls, rate: RedemptionRate | None) -> "RateOut | None":
        if rate is None:
            return None
        return cls(
            numerator=rate.numerator,
            denominator=rate.denominator,
            display=fraction_to_str(rate.as_fraction()),
        )


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class MintQuoteRequest(BaseModel):
    side: Literal["LONG", "SHORT"]
    usdc_in: int = Field(gt=0, description="USDC to deposit, 6 decimals")


class PairRedeemQuoteRequest(BaseModel):
    token_in: int = Field(
        gt=0,
        description="LONG+SHORT pairs to burn, 6 decimals (1_000_000 = one pair)",
    )


class RedeemQuoteRequest(BaseModel):
    side: Literal["LONG", "SHORT"]
    token_in: int = Field(gt=0, description="Tokens of one side to redeem")


class SimulateRequest(BaseModel):
    """Hypothetical GDP print; give at most one. Neither = current oracle reading."""

    g_ppm: int | None = None
    g_percent: str | None = Field(default=None, examples=["0.3", "-1.25"])

    @model_validator(mode="after")
    def at_most_one(self) -> "SimulateRequest":
        if self.g_ppm is not None and self.g_percent is not None:
            raise ValueError("give g_ppm or g_percent, not both")
        return self


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class MintQuoteResponse(BaseModel):
    meta: SnapshotMeta
    side: str
    usdc_in: int
    fee: int
    fee_bps: int
    tokens_out: int
    tokens_out_units: int          # tokens_out re-scaled to 18 decimals
    fee_display: str
    tokens_out_display: str

    @classmethod
    def from_quote(
        cls, quote: MintQuote, side: str, fee_bps: int, meta: SnapshotMeta
    ) -> "MintQuoteResponse":
        return cls(
            meta=meta,
            side=side,
            usdc_in=quote.usdc_in,
            fee=quote.fee,
            fee_bps=fee_bps,
            tokens_out=quote.tokens_out,
            tokens_out_units=rescale(quote.tokens_out, USDC_DECIMALS, TOKEN_DECIMALS),
            fee_display=usdc_to_display(quote.fee),
            tokens_out_display=to_display(quote.tokens_out, USDC_DECIMALS),
        )


class PairRedeemQuoteResponse(BaseModel):
    meta: SnapshotMeta
    token_in: int
    token_in_units: int            # token_in re-scaled to 18 decimals
    fee: int
    fee_bps: int
    usdc_out: int
    usdc_out_display: str
    sufficient_balance: bool | None   # None when no holder is tracked

    @classmethod
    def from_quote(
        cls,
        quote: PairRedeemQuote,
        fee_bps: int,
        meta: SnapshotMeta,
        sufficient_balance: bool | None,
    ) -> "PairRedeemQuoteResponse":
        return cls(
            meta=meta,
            token_in=quote.token_in,
            token_in_units=rescale(quote.token_in, USDC_DECIMALS, TOKEN_DECIMALS),
            fee=quote.fee,
            fee_bps=fee_bps,
            usdc_out=quote.usdc_out,
            usdc_out_display=usdc_to_display(quote.usdc_out),
            sufficient_balance=sufficient_balance,
        )


class RedeemQuoteResponse(BaseModel):
    meta: SnapshotMeta
    side: str
    token_in: int
    rate: RateOut | None
    payout: int


class PayoutResponse(BaseModel):
    meta: SnapshotMeta
    holder: str
    long_balance: int
    short_balance: int
    long_rate: RateOut | None
    short_rate: RateOut | None
    long_payout: int | None
    short_payout: int | None
    total: int | None
    determined: bool
    total_display: str

    @classmethod
    def from_estimate(
        cls,
        estimate: PayoutEstimate,
        position: Position,
        long_rate: RedemptionRate | None,
        short_rate: RedemptionRate | None,
        meta: SnapshotMeta,
    ) -> "PayoutResponse":
        total = estimate.total
        return cls(
            meta=meta,
            holder=position.holder,
            long_balance=position.long_balance,
            short_balance=position.short_balance,
            long_rate=RateOut.from_rate(long_rate),
            short_rate=RateOut.from_rate(short_rate),
            long_payout=estimate.long_payout,
            short_payout=estimate.short_payout,
            total=total,
            determined=estimate.determined,
            total_display=UNDETERMINED if total is None else str(total),
        )


class SimulationResponse(BaseModel):
    meta: SnapshotMeta
    g_ppm: int
    g_display: str
    k: int
    long_share: str
    short_share: str
    long_share_display: str
    short_share_display: str
    clamped: bool
    projected_long_pot: int
    projected_short_pot: int
    projected_long_rate: RateOut | None
    projected_short_rate: RateOut | None
    # realized pots, only when the market settled at this same g
    actual_long_pot: int | None = None
    actual_short_pot: int | None = None

    @classmethod
    def from_split(
        cls,
        split: SettlementSplit,
        pots: tuple[int, int],
        rates: tuple[RedemptionRate | None, RedemptionRate | None],
        meta: SnapshotMeta,
        actual_pots: tuple[int, int] | None,
    ) -> "SimulationResponse":
        return cls(
            meta=meta,
            g_ppm=split.g_ppm,
            g_display=ppm_to_percent(split.g_ppm),
            k=split.k,
            long_share=fraction_to_str(split.long_share),
            short_share=fraction_to_str(split.short_share),
            long_share_display=share_to_percent(split.long_share),
            short_share_display=share_to_percent(split.short_share),
            clamped=split.clamped,
            projected_long_pot=pots[0],
            projected_short_pot=pots[1],
            projected_long_rate=RateOut.from_rate(rates[0]),
            projected_short_rate=RateOut.from_rate(rates[1]),
            actual_long_pot=actual_pots[0] if actual_pots else None,
            actual_short_pot=actual_pots[1] if actual_pots else None,
        )
