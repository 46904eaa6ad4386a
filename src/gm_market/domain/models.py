"""Domain models for gm_market — frozen dataclasses mirroring chain state.

Each record validates its own invariants on construction, so a snapshot that
exists is a snapshot that is internally consistent. Records are replaced
wholesale on refresh, never mutated.
"""

from dataclasses import dataclass
from datetime import datetime

from src.gm_common.enums import MarketPhase
from src.gm_common.errors import InvalidInputError
from src.gm_common.fixed_point import require_int, require_uint, validate_bps


def _check_rate_pair(side: str, numerator: int, denominator: int) -> None:
    # both zero (rate not set yet) or a real denominator
    if denominator == 0 and numerator != 0:
        raise InvalidInputError(
            f"{side} redemption rate has numerator {numerator} over a zero denominator"
        )


@dataclass(frozen=True)
class MarketState:
    phase: MarketPhase
    close_at: int                    # unix seconds
    mint_fee_bps: int
    pair_redeem_fee_bps: int
    vault_balance_micro: int         # USDC, 6 decimals
    long_pot_micro: int
    short_pot_micro: int
    long_redeem_numerator: int
    long_redeem_denominator: int
    short_redeem_numerator: int
    short_redeem_denominator: int
    long_token: str | None = None
    short_token: str | None = None
    long_supply: int = 0             # 18 decimals
    short_supply: int = 0            # 18 decimals

    def __post_init__(self) -> None:
        if not isinstance(self.phase, MarketPhase):
            raise InvalidInputError(f"phase must be a MarketPhase, got {self.phase!r}")
        validate_bps("mint_fee_bps", self.mint_fee_bps)
        validate_bps("pair_redeem_fee_bps", self.pair_redeem_fee_bps)
        for name in (
            "close_at",
            "vault_balance_micro",
            "long_pot_micro",
            "short_pot_micro",
            "long_redeem_numerator",
            "long_redeem_denominator",
            "short_redeem_numerator",
            "short_redeem_denominator",
            "long_supply",
            "short_supply",
        ):
            require_uint(name, getattr(self, name))
        _check_rate_pair("long", self.long_redeem_numerator, self.long_redeem_denominator)
        _check_rate_pair("short", self.short_redeem_numerator, self.short_redeem_denominator)


@dataclass(frozen=True)
class OracleReading:
    g_ppm: int          # signed, 1_000_000 = 100%
    finalized: bool

    def __post_init__(self) -> None:
        require_int("g_ppm", self.g_ppm)
        if not isinstance(self.finalized, bool):
            raise InvalidInputError("finalized must be a bool")


@dataclass(frozen=True)
class Position:
    holder: str
    long_balance: int = 0    # 18 decimals
    short_balance: int = 0   # 18 decimals
    usdc_balance: int = 0    # 6 decimals

    def __post_init__(self) -> None:
        for name in ("long_balance", "short_balance", "usdc_balance"):
            require_uint(name, getattr(self, name))

    @property
    def pairable(self) -> int:
        """Largest amount that can be pair-redeemed (equal LONG and SHORT)."""
        return min(self.long_balance, self.short_balance)


@dataclass(frozen=True)
class LeverageConfig:
    k: int

    def __post_init__(self) -> None:
        if require_int("k", self.k) <= 0:
            raise InvalidInputError(f"leverage k must be positive, got {self.k}")


@dataclass(frozen=True)
class MarketSnapshot:
    """One complete read round, pinned to a single block."""

    version: int
    block_number: int
    fetched_at: datetime
    market: MarketState
    oracle: OracleReading
    leverage: LeverageConfig
    position: Position | None = None
