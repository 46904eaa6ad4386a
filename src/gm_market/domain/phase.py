"""Market lifecycle: Pending -> Open -> Frozen -> Settled.

Phase is never derived from a local clock. The contract moves the market
(close time passing, oracle finalization) and this module only validates the
observed tag and answers which operations it permits.
"""

from src.gm_common.enums import MarketOperation, MarketPhase
from src.gm_common.errors import OperationNotPermittedError, UnknownPhaseError

_ALLOWED: dict[MarketPhase, frozenset[MarketOperation]] = {
    MarketPhase.PENDING: frozenset(),
    MarketPhase.OPEN: frozenset({MarketOperation.MINT, MarketOperation.PAIR_REDEEM}),
    MarketPhase.FROZEN: frozenset(),
    MarketPhase.SETTLED: frozenset(
        {MarketOperation.REDEEM_LONG, MarketOperation.REDEEM_SHORT}
    ),
}


def parse_phase(raw: object) -> MarketPhase:
    """Map the contract's uint8 phase to MarketPhase; anything else is UnknownPhase."""
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise UnknownPhaseError(raw)
    try:
        return MarketPhase(raw)
    except ValueError:
        raise UnknownPhaseError(raw) from None


def allowed_operations(phase: MarketPhase) -> frozenset[MarketOperation]:
    return _ALLOWED[phase]


def check_operation_allowed(phase: MarketPhase, operation: MarketOperation) -> None:
    """Raise OperationNotPermittedError unless `operation` is legal in `phase`."""
    if operation not in _ALLOWED[phase]:
        raise OperationNotPermittedError(operation.value, phase.name)


def is_forward_transition(previous: MarketPhase, observed: MarketPhase) -> bool:
    """True if `observed` can follow `previous` (same phase or later).

    Skips are allowed because a poll can miss an intermediate phase; going
    back never happens on a linear lifecycle.
    """
    return observed >= previous
