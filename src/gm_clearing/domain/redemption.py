"""Post-settlement redemption rates.

A rate stays an exact numerator/denominator pair all the way to `apply_rate`;
it is never collapsed to a float, so estimates floor exactly like the
contract does.
"""

from dataclasses import dataclass
from fractions import Fraction

from src.gm_clearing.domain.fee import require_positive
from src.gm_common.errors import DivisionUndefinedError, InvalidInputError
from src.gm_common.fixed_point import apply_rate, require_uint


@dataclass(frozen=True)
class RedemptionRate:
    numerator: int
    denominator: int

    def __post_init__(self) -> None:
        require_uint("numerator", self.numerator)
        if require_uint("denominator", self.denominator) == 0:
            raise InvalidInputError("rate denominator must be positive")

    def apply(self, amount: int) -> int:
        return apply_rate(amount, self.numerator, self.denominator)

    def as_fraction(self) -> Fraction:
        """Reduced exact value, for display."""
        return Fraction(self.numerator, self.denominator)


@dataclass(frozen=True)
class PayoutEstimate:
    """Per-leg payouts; a leg is None while its rate is undefined and it holds tokens."""

    long_payout: int | None
    short_payout: int | None

    @property
    def determined(self) -> bool:
        return self.long_payout is not None and self.short_payout is not None

    @property
    def total(self) -> int | None:
        if self.long_payout is None or self.short_payout is None:
            return None
        return self.long_payout + self.short_payout


def resolve_rate(numerator: int, denominator: int) -> RedemptionRate | None:
    """None when denominator == 0 (settlement has not set the rate)."""
    numerator = require_uint("numerator", numerator)
    denominator = require_uint("denominator", denominator)
    if denominator == 0:
        return None
    return RedemptionRate(numerator=numerator, denominator=denominator)


def _leg_payout(name: str, balance: int, rate: RedemptionRate | None) -> int | None:
    balance = require_uint(name, balance)
    if rate is None:
        return 0 if balance == 0 else None
    return rate.apply(balance)


def estimate_payout(
    long_balance: int,
    long_rate: RedemptionRate | None,
    short_balance: int,
    short_rate: RedemptionRate | None,
) -> PayoutEstimate:
    """Sum of both legs at their rates; undetermined rather than zero before settlement."""
    return PayoutEstimate(
        long_payout=_leg_payout("long_balance", long_balance, long_rate),
        short_payout=_leg_payout("short_balance", short_balance, short_rate),
    )


def quote_redeem(token_in: int, rate: RedemptionRate | None) -> int:
    """Single-sided redemption output for `token_in` tokens."""
    token_in = require_positive("token_in", token_in)
    if rate is None:
        raise DivisionUndefinedError()
    return rate.apply(token_in)
