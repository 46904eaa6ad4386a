"""StateSnapshotReconciler — owns the one current MarketSnapshot.

Refresh protocol:
  1. one round = latest block number, then market/oracle/leverage/position
     reads pinned to that block, gathered concurrently
  2. full success -> a new snapshot (version + 1) replaces the old one in a
     single assignment; readers see the old record or the new one, never a mix
  3. any failure -> previous snapshot kept, status becomes STALE

At most one round is in flight. `refresh()` callers that arrive while a
round runs share it (same outcome, same version); the interval timer uses
`request_refresh()`, which skips instead of queueing. Rounds abandoned by
`close()` or `switch_holder()` are cancelled and their results discarded.
"""

import asyncio
import logging
from dataclasses import dataclass

from src.gm_common.datetime_utils import utc_now
from src.gm_common.enums import SnapshotStatus
from src.gm_common.errors import AppError, StaleSnapshotError
from src.gm_market.domain.models import (
    LeverageConfig,
    MarketSnapshot,
    MarketState,
    OracleReading,
)
from src.gm_market.domain.phase import is_forward_transition
from src.gm_market.domain.repository import MarketReaderProtocol

logger = logging.getLogger(__name__)

_ABANDONED = "refresh abandoned"


def _describe(exc: Exception) -> str:
    return f"{type(exc).__name__}: {exc}"


@dataclass(frozen=True)
class RefreshOutcome:
    snapshot: MarketSnapshot | None
    stale: bool
    error: str | None = None

    @property
    def version(self) -> int:
        return self.snapshot.version if self.snapshot else 0


class StateSnapshotReconciler:
    def __init__(
        self,
        reader: MarketReaderProtocol,
        holder: str | None = None,
        interval_seconds: float = 10.0,
    ) -> None:
        self._reader = reader
        self._holder = holder
        self._interval = interval_seconds
        self._snapshot: MarketSnapshot | None = None
        self._stale = False
        self._last_error: str | None = None
        self._version = 0
        self._generation = 0
        self._inflight: asyncio.Task[RefreshOutcome] | None = None
        self._runner: asyncio.Task[None] | None = None
        self._closed = False

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> MarketSnapshot | None:
        return self._snapshot

    @property
    def holder(self) -> str | None:
        return self._holder

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def status(self) -> SnapshotStatus:
        if self._snapshot is None:
            return SnapshotStatus.EMPTY
        return SnapshotStatus.STALE if self._stale else SnapshotStatus.FRESH

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def require_snapshot(self) -> MarketSnapshot:
        """Latest complete snapshot (possibly stale); StaleSnapshotError if none yet."""
        if self._snapshot is None:
            raise StaleSnapshotError(self._last_error or "no snapshot has been read yet")
        return self._snapshot

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def request_refresh(self) -> bool:
        """Start a round unless one is in flight. Returns True if a round started."""
        if self._closed:
            return False
        if self.in_flight:
            logger.debug("Refresh skipped: round already in flight")
            return False
        self._start_round()
        return True

    async def refresh(self) -> RefreshOutcome:
        """Refresh now, joining the in-flight round if there is one."""
        if self._closed:
            raise StaleSnapshotError("reconciler is closed")
        task = self._inflight
        if task is None or task.done():
            task = self._start_round()
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if task.cancelled() and not (current and current.cancelling()):
                return RefreshOutcome(self._snapshot, self._stale, _ABANDONED)
            raise

    def switch_holder(self, holder: str | None) -> None:
        """Track another wallet. Positions are never carried across identities."""
        if holder == self._holder:
            return
        self._abandon_inflight()
        self._holder = holder
        self._snapshot = None
        self._stale = False
        self._last_error = None
        logger.info("Holder switched to %s; snapshot cleared", holder)
        self.request_refresh()

    # ------------------------------------------------------------------
    # Interval task
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._runner is not None and not self._runner.done():
            return
        self._closed = False
        self._runner = asyncio.create_task(self._run_periodic(), name="snapshot-refresh")
        logger.info("Snapshot refresh every %.1fs (holder=%s)", self._interval, self._holder)

    async def close(self) -> None:
        self._closed = True
        runner, self._runner = self._runner, None
        inflight = self._abandon_inflight()
        pending = [t for t in (runner, inflight) if t is not None]
        if runner is not None:
            runner.cancel()
        # wait for the cancellations to land without re-raising them here
        await asyncio.gather(*pending, return_exceptions=True)

    async def _run_periodic(self) -> None:
        while True:
            self.request_refresh()
            await asyncio.sleep(self._interval)

    # ------------------------------------------------------------------
    # Round
    # ------------------------------------------------------------------

    def _start_round(self) -> asyncio.Task[RefreshOutcome]:
        task = asyncio.create_task(self._run_round(self._generation))
        task.add_done_callback(self._on_round_done)
        self._inflight = task
        return task

    def _abandon_inflight(self) -> asyncio.Task[RefreshOutcome] | None:
        self._generation += 1
        task, self._inflight = self._inflight, None
        if task is not None and not task.done():
            task.cancel()
        return task

    def _on_round_done(self, task: asyncio.Task[RefreshOutcome]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Refresh round crashed", exc_info=exc)

    async def _run_round(self, generation: int) -> RefreshOutcome:
        holder = self._holder
        try:
            block = await self._reader.latest_block()
        except AppError as exc:
            return self._fail(generation, exc.message)
        except Exception as exc:
            logger.error("Unexpected error reading block number", exc_info=exc)
            return self._fail(generation, _describe(exc))

        reads = [
            self._reader.read_market(block),
            self._reader.read_oracle(block),
            self._reader.read_leverage(block),
        ]
        if holder is not None:
            reads.append(self._reader.read_position(holder, block))
        results = await asyncio.gather(*reads, return_exceptions=True)

        errors: list[str] = []
        for result in results:
            if isinstance(result, AppError):
                errors.append(result.message)
            elif isinstance(result, Exception):
                logger.error("Unexpected error in refresh read", exc_info=result)
                errors.append(_describe(result))
            elif isinstance(result, BaseException):
                raise result
        if errors:
            return self._fail(generation, "; ".join(errors))

        market, oracle, leverage, *rest = results
        if generation != self._generation:
            logger.info("Discarding result of abandoned round at block %d", block)
            return RefreshOutcome(self._snapshot, self._stale, _ABANDONED)

        try:
            self._check_consistency(block, market, oracle, leverage)
        except AppError as exc:
            return self._fail(generation, exc.message)

        self._version += 1
        snapshot = MarketSnapshot(
            version=self._version,
            block_number=block,
            fetched_at=utc_now(),
            market=market,
            oracle=oracle,
            leverage=leverage,
            position=rest[0] if rest else None,
        )
        self._snapshot = snapshot
        self._stale = False
        self._last_error = None
        logger.debug("Snapshot v%d at block %d (%s)", snapshot.version, block, market.phase.name)
        return RefreshOutcome(snapshot=snapshot, stale=False)

    def _fail(self, generation: int, error: str) -> RefreshOutcome:
        if generation != self._generation:
            return RefreshOutcome(self._snapshot, self._stale, _ABANDONED)
        self._stale = True
        self._last_error = error
        kept = self._snapshot.version if self._snapshot else 0
        logger.warning("Refresh failed, keeping snapshot v%d: %s", kept, error)
        return RefreshOutcome(snapshot=self._snapshot, stale=True, error=error)

    def _check_consistency(
        self,
        block: int,
        market: MarketState,
        oracle: OracleReading,
        leverage: LeverageConfig,
    ) -> None:
        """Reject a round that contradicts the snapshot it would replace."""
        prev = self._snapshot
        if prev is None:
            return
        if block < prev.block_number:
            raise StaleSnapshotError(
                f"RPC block {block} is behind snapshot block {prev.block_number}"
            )
        if not is_forward_transition(prev.market.phase, market.phase):
            raise StaleSnapshotError(
                f"phase went back from {prev.market.phase.name} to {market.phase.name}"
            )
        if leverage.k != prev.leverage.k:
            raise StaleSnapshotError(f"leverage k changed from {prev.leverage.k} to {leverage.k}")
        if prev.oracle.finalized and oracle != prev.oracle:
            raise StaleSnapshotError("finalized oracle reading changed")
        if market.phase != prev.market.phase:
            logger.info("Market phase %s -> %s", prev.market.phase.name, market.phase.name)
