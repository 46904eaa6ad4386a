"""Settlement split simulation: how the vault divides at a given GDP print.

    long_share  = clamp(1/2 + k * g / 2, 0, 1)
    short_share = 1 - long_share

with g = g_ppm / 1_000_000. Shares are exact Fractions; the vault split
floors the long side and gives the remainder to short, so nothing is
created or lost. Outside [0, 1] the share clamps, i.e. one side takes the
whole vault.
"""

from dataclasses import dataclass
from fractions import Fraction

from src.gm_clearing.domain.redemption import RedemptionRate, resolve_rate
from src.gm_common.errors import InvalidInputError
from src.gm_common.fixed_point import PPM_DENOMINATOR, apply_rate, require_int, require_uint

_HALF = Fraction(1, 2)
_ZERO = Fraction(0)
_ONE = Fraction(1)


@dataclass(frozen=True)
class SettlementSplit:
    g_ppm: int
    k: int
    long_share: Fraction
    short_share: Fraction
    clamped: bool


def simulate_split(g_ppm: int, k: int) -> SettlementSplit:
    g_ppm = require_int("g_ppm", g_ppm)
    if require_int("k", k) <= 0:
        raise InvalidInputError(f"leverage k must be positive, got {k}")

    raw = _HALF + Fraction(k * g_ppm, 2 * PPM_DENOMINATOR)
    long_share = min(max(raw, _ZERO), _ONE)
    return SettlementSplit(
        g_ppm=g_ppm,
        k=k,
        long_share=long_share,
        short_share=_ONE - long_share,
        clamped=long_share != raw,
    )


def g_ppm_from_percent(percent: str | int | Fraction) -> int:
    """Parse a percentage ("0.3", "-1.25", 2) into ppm exactly.

    Floats are refused: they cannot represent most decimal inputs exactly.
    """
    if isinstance(percent, (bool, float)):
        raise InvalidInputError("percent must be given as a string or integer, not float")
    try:
        value = Fraction(percent)
    except (ValueError, ZeroDivisionError, TypeError):
        raise InvalidInputError(f"not a number: {percent!r}") from None
    ppm = value * (PPM_DENOMINATOR // 100)
    if ppm.denominator != 1:
        raise InvalidInputError(f"{percent!r}% is finer than 1 ppm")
    return int(ppm)


def split_vault(vault_balance_micro: int, split: SettlementSplit) -> tuple[int, int]:
    """(long_pot, short_pot) for the vault at `split`; sums to the vault exactly."""
    vault = require_uint("vault_balance_micro", vault_balance_micro)
    long_pot = apply_rate(vault, split.long_share.numerator, split.long_share.denominator)
    return long_pot, vault - long_pot


def project_rates(
    vault_balance_micro: int,
    long_supply: int,
    short_supply: int,
    split: SettlementSplit,
) -> tuple[RedemptionRate | None, RedemptionRate | None]:
    """Per-token rates (pot / supply) the split would produce; None for an empty side."""
    long_pot, short_pot = split_vault(vault_balance_micro, split)
    return resolve_rate(long_pot, long_supply), resolve_rate(short_pot, short_supply)
