"""Global enums — values must match the settlement contract's encoding.

MarketPhase ordinals follow the contract's `Phase` enum declaration order,
which is how the `phase()` getter returns it over the wire (uint8).
"""

from enum import Enum, IntEnum


class MarketPhase(IntEnum):
    PENDING = 0
    OPEN = 1
    FROZEN = 2
    SETTLED = 3


class MarketOperation(str, Enum):
    """User-facing write operations; executed by the wallet, quoted here."""
    MINT = "MINT"
    PAIR_REDEEM = "PAIR_REDEEM"
    REDEEM_LONG = "REDEEM_LONG"
    REDEEM_SHORT = "REDEEM_SHORT"


class Side(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class SnapshotStatus(str, Enum):
    EMPTY = "EMPTY"   # no round has completed yet
    FRESH = "FRESH"
    STALE = "STALE"   # last round failed; previous snapshot retained
