"""Integer fixed-point arithmetic mirroring the settlement contract.

All money and fee math is int, scaled to the token's native decimals:
  - USDC (settlement currency): 6 decimals ("micro")
  - LONG/SHORT position tokens: 18 decimals
  - fees: basis points out of 10_000
  - GDP delta: parts per million out of 1_000_000

Division floors (operands are non-negative), matching Solidity uint math.
Products above the EVM word maximum are rejected up front, the same way the
contract's checked arithmetic would revert. No float, no Decimal.
"""

from src.gm_common.errors import DivisionUndefinedError, InvalidInputError

BPS_DENOMINATOR = 10_000
PPM_DENOMINATOR = 1_000_000
USDC_DECIMALS = 6
TOKEN_DECIMALS = 18
MAX_UINT256 = 2**256 - 1


def require_int(name: str, value: object) -> int:
    """Reject bool and non-int values; return the value typed as int."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidInputError(f"{name} must be an integer, got {type(value).__name__}")
    return value


def require_uint(name: str, value: object) -> int:
    v = require_int(name, value)
    if v < 0:
        raise InvalidInputError(f"{name} must be non-negative, got {v}")
    if v > MAX_UINT256:
        raise InvalidInputError(f"{name} exceeds uint256 range")
    return v


def validate_bps(name: str, bps: object) -> int:
    """Validate that bps is an int in [0, 10000]."""
    v = require_int(name, bps)
    if not (0 <= v <= BPS_DENOMINATOR):
        raise InvalidInputError(f"{name} must be between 0 and {BPS_DENOMINATOR}, got {v}")
    return v


def _checked_mul(a: int, b: int) -> int:
    product = a * b
    if product > MAX_UINT256:
        raise InvalidInputError("amount too large: intermediate product overflows uint256")
    return product


def apply_fee_bps(amount: int, fee_bps: int) -> tuple[int, int]:
    """Split amount into (fee, net).

    fee = floor(amount * fee_bps / 10000), net = amount - fee
    """
    amount = require_uint("amount", amount)
    fee_bps = validate_bps("fee_bps", fee_bps)
    fee = _checked_mul(amount, fee_bps) // BPS_DENOMINATOR
    return fee, amount - fee


def apply_rate(amount: int, numerator: int, denominator: int) -> int:
    """payout = floor(amount * numerator / denominator)."""
    amount = require_uint("amount", amount)
    numerator = require_uint("numerator", numerator)
    denominator = require_uint("denominator", denominator)
    if denominator == 0:
        raise DivisionUndefinedError()
    return _checked_mul(amount, numerator) // denominator


# ---------------------------------------------------------------------------
# Display helpers. Inputs are already integer-correct; these only format.
# ---------------------------------------------------------------------------


def rescale(amount: int, from_decimals: int, to_decimals: int) -> int:
    """Re-express an amount in another decimal scale (floors when shrinking).

    rescale(995_000, 6, 18) == 995_000_000_000_000_000
    """
    if to_decimals >= from_decimals:
        return amount * 10 ** (to_decimals - from_decimals)
    return amount // 10 ** (from_decimals - to_decimals)


def to_display(amount: int, decimals: int = USDC_DECIMALS, places: int = 2) -> str:
    """Format a scaled int with thousands separators, truncating extra places.

    to_display(1_000_000) == "1.00"; to_display(-1_234_560_000, 6) == "-1,234.56"
    """
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), 10**decimals)
    if places == 0:
        return f"{sign}{whole:,}"
    frac_str = f"{frac:0{decimals}d}"[:places].ljust(places, "0")
    return f"{sign}{whole:,}.{frac_str}"


def usdc_to_display(micro: int) -> str:
    """1_000_000 -> "$1.00", -1_500_000 -> "-$1.50"."""
    text = to_display(micro, USDC_DECIMALS, 2)
    if text.startswith("-"):
        return f"-${text[1:]}"
    return f"${text}"


def bps_to_percent(bps: int) -> str:
    """50 -> '0.50%'."""
    return f"{to_display(bps, 2, 2)}%"


def ppm_to_percent(ppm: int) -> str:
    """3_000 -> '0.3000%', -12_500 -> '-1.2500%'."""
    return f"{to_display(ppm, 4, 4)}%"
