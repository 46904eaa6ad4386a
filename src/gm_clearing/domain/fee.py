"""Mint and pair-redeem quotes — same floor-bps formula in both directions.

Amounts are economic amounts: `tokens_out` is the net USDC-denominated
quantity minted 1:1, before any re-scaling to 18-decimal token units.
"""

from dataclasses import dataclass

from src.gm_common.errors import InvalidInputError
from src.gm_common.fixed_point import apply_fee_bps, require_int


@dataclass(frozen=True)
class MintQuote:
    usdc_in: int
    fee: int
    tokens_out: int


@dataclass(frozen=True)
class PairRedeemQuote:
    token_in: int
    fee: int
    usdc_out: int


def require_positive(name: str, amount: object) -> int:
    v = require_int(name, amount)
    if v <= 0:
        raise InvalidInputError(f"{name} must be positive, got {v}")
    return v


def quote_mint(usdc_in: int, mint_fee_bps: int) -> MintQuote:
    """fee = floor(usdc_in * bps / 10000); tokens_out = usdc_in - fee."""
    usdc_in = require_positive("usdc_in", usdc_in)
    fee, net = apply_fee_bps(usdc_in, mint_fee_bps)
    return MintQuote(usdc_in=usdc_in, fee=fee, tokens_out=net)


def quote_pair_redeem(token_in: int, pair_redeem_fee_bps: int) -> PairRedeemQuote:
    """Burn `token_in` of each side; fee = floor(token_in * bps / 10000)."""
    token_in = require_positive("token_in", token_in)
    fee, net = apply_fee_bps(token_in, pair_redeem_fee_bps)
    return PairRedeemQuote(token_in=token_in, fee=fee, usdc_out=net)
