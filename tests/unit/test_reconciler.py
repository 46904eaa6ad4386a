# tests/unit/test_reconciler.py
"""Unit tests for StateSnapshotReconciler using a mock reader."""

import asyncio

import pytest

from src.gm_common.enums import MarketPhase, SnapshotStatus
from src.gm_common.errors import ChainReadError, StaleSnapshotError, UnknownPhaseError
from src.gm_market.application.reconciler import StateSnapshotReconciler
from src.gm_market.domain.models import LeverageConfig, OracleReading
from tests.factories import HOLDER, make_market, make_position, make_reader


def _gate_block(reader, gate: asyncio.Event, block: int = 100) -> None:
    """Hold latest_block() until `gate` is set, keeping the round in flight."""

    async def _slow() -> int:
        await gate.wait()
        return block

    reader.latest_block.side_effect = _slow


class TestRefresh:
    @pytest.mark.asyncio
    async def test_first_refresh_builds_snapshot(self):
        reader = make_reader(block=100)
        rec = StateSnapshotReconciler(reader)
        assert rec.status is SnapshotStatus.EMPTY

        outcome = await rec.refresh()

        assert outcome.stale is False
        assert outcome.version == 1
        assert rec.status is SnapshotStatus.FRESH
        assert rec.snapshot is outcome.snapshot
        assert rec.snapshot.block_number == 100

    @pytest.mark.asyncio
    async def test_reads_pinned_to_one_block(self):
        reader = make_reader(block=1234)
        rec = StateSnapshotReconciler(reader, holder=HOLDER)

        await rec.refresh()

        reader.read_market.assert_awaited_once_with(1234)
        reader.read_oracle.assert_awaited_once_with(1234)
        reader.read_leverage.assert_awaited_once_with(1234)
        reader.read_position.assert_awaited_once_with(HOLDER, 1234)

    @pytest.mark.asyncio
    async def test_no_holder_skips_position(self):
        reader = make_reader()
        rec = StateSnapshotReconciler(reader)

        await rec.refresh()

        reader.read_position.assert_not_awaited()
        assert rec.snapshot.position is None

    @pytest.mark.asyncio
    async def test_versions_increase(self):
        reader = make_reader()
        rec = StateSnapshotReconciler(reader)

        v1 = (await rec.refresh()).version
        v2 = (await rec.refresh()).version

        assert v2 == v1 + 1


class TestFailure:
    @pytest.mark.asyncio
    async def test_failed_read_keeps_previous_snapshot(self):
        reader = make_reader()
        rec = StateSnapshotReconciler(reader)
        first = (await rec.refresh()).snapshot

        reader.read_oracle.side_effect = ChainReadError("timeout")
        outcome = await rec.refresh()

        assert outcome.stale is True
        assert "timeout" in outcome.error
        assert rec.snapshot is first
        assert rec.status is SnapshotStatus.STALE
        assert rec.require_snapshot() is first

    @pytest.mark.asyncio
    async def test_recovers_after_failure(self):
        reader = make_reader()
        rec = StateSnapshotReconciler(reader)
        await rec.refresh()
        reader.latest_block.side_effect = ChainReadError("down")
        await rec.refresh()

        reader.latest_block.side_effect = None
        reader.latest_block.return_value = 101
        outcome = await rec.refresh()

        assert outcome.stale is False
        assert outcome.version == 2
        assert rec.status is SnapshotStatus.FRESH
        assert rec.last_error is None

    @pytest.mark.asyncio
    async def test_no_snapshot_yet(self):
        reader = make_reader()
        reader.read_market.side_effect = UnknownPhaseError(9)
        rec = StateSnapshotReconciler(reader)

        outcome = await rec.refresh()

        assert outcome.snapshot is None
        assert rec.status is SnapshotStatus.EMPTY
        with pytest.raises(StaleSnapshotError, match="Unknown market phase"):
            rec.require_snapshot()

    @pytest.mark.asyncio
    async def test_unexpected_read_error_marks_stale(self):
        reader = make_reader()
        rec = StateSnapshotReconciler(reader)
        first = (await rec.refresh()).snapshot

        reader.read_leverage.side_effect = RuntimeError("bug")
        outcome = await rec.refresh()

        assert outcome.stale is True
        assert outcome.error == "RuntimeError: bug"
        assert outcome.version == 1
        assert rec.snapshot is first
        assert rec.status is SnapshotStatus.STALE

    @pytest.mark.asyncio
    async def test_unexpected_block_error_marks_stale(self):
        reader = make_reader()
        rec = StateSnapshotReconciler(reader)
        await rec.refresh()

        reader.latest_block.side_effect = AttributeError("'str' object has no attribute 'get'")
        outcome = await rec.refresh()

        assert outcome.stale is True
        assert outcome.error.startswith("AttributeError")
        assert rec.snapshot.version == 1
        assert rec.status is SnapshotStatus.STALE


class TestConsistency:
    @pytest.mark.asyncio
    async def test_block_regression_rejected(self):
        reader = make_reader(block=100)
        rec = StateSnapshotReconciler(reader)
        await rec.refresh()

        reader.latest_block.return_value = 99
        outcome = await rec.refresh()

        assert outcome.stale is True
        assert "behind" in outcome.error
        assert rec.snapshot.block_number == 100

    @pytest.mark.asyncio
    async def test_phase_regression_rejected(self):
        reader = make_reader(market=make_market(phase=MarketPhase.FROZEN))
        rec = StateSnapshotReconciler(reader)
        await rec.refresh()

        reader.read_market.return_value = make_market(phase=MarketPhase.OPEN)
        outcome = await rec.refresh()

        assert outcome.stale is True
        assert rec.snapshot.market.phase is MarketPhase.FROZEN

    @pytest.mark.asyncio
    async def test_phase_skip_forward_accepted(self):
        reader = make_reader(market=make_market(phase=MarketPhase.OPEN))
        rec = StateSnapshotReconciler(reader)
        await rec.refresh()

        reader.read_market.return_value = make_market(
            phase=MarketPhase.SETTLED, long_redeem_numerator=1, long_redeem_denominator=2,
        )
        outcome = await rec.refresh()

        assert outcome.stale is False
        assert rec.snapshot.market.phase is MarketPhase.SETTLED

    @pytest.mark.asyncio
    async def test_leverage_change_rejected(self):
        reader = make_reader(k=10)
        rec = StateSnapshotReconciler(reader)
        await rec.refresh()

        reader.read_leverage.return_value = LeverageConfig(k=20)
        outcome = await rec.refresh()

        assert outcome.stale is True
        assert rec.snapshot.leverage.k == 10

    @pytest.mark.asyncio
    async def test_finalized_oracle_is_immutable(self):
        reader = make_reader(oracle=OracleReading(g_ppm=3_000, finalized=True))
        rec = StateSnapshotReconciler(reader)
        await rec.refresh()

        reader.read_oracle.return_value = OracleReading(g_ppm=4_000, finalized=True)
        outcome = await rec.refresh()

        assert outcome.stale is True
        assert rec.snapshot.oracle.g_ppm == 3_000

    @pytest.mark.asyncio
    async def test_oracle_cannot_unfinalize(self):
        reader = make_reader(oracle=OracleReading(g_ppm=3_000, finalized=True))
        rec = StateSnapshotReconciler(reader)
        await rec.refresh()

        reader.read_oracle.return_value = OracleReading(g_ppm=3_000, finalized=False)
        outcome = await rec.refresh()

        assert outcome.stale is True
        assert rec.snapshot.oracle.finalized is True

    @pytest.mark.asyncio
    async def test_unfinalized_oracle_may_move(self):
        reader = make_reader(oracle=OracleReading(g_ppm=3_000, finalized=False))
        rec = StateSnapshotReconciler(reader)
        await rec.refresh()

        reader.read_oracle.return_value = OracleReading(g_ppm=4_000, finalized=True)
        outcome = await rec.refresh()

        assert outcome.stale is False
        assert rec.snapshot.oracle == OracleReading(g_ppm=4_000, finalized=True)


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_refreshes_share_one_round(self):
        reader = make_reader()
        gate = asyncio.Event()
        _gate_block(reader, gate)
        rec = StateSnapshotReconciler(reader)

        t1 = asyncio.create_task(rec.refresh())
        t2 = asyncio.create_task(rec.refresh())
        await asyncio.sleep(0)
        gate.set()
        o1, o2 = await asyncio.gather(t1, t2)

        assert reader.latest_block.await_count == 1
        assert reader.read_market.await_count == 1
        assert o1.version == o2.version == 1
        assert o1.snapshot is o2.snapshot

    @pytest.mark.asyncio
    async def test_request_refresh_skips_when_in_flight(self):
        reader = make_reader()
        gate = asyncio.Event()
        _gate_block(reader, gate)
        rec = StateSnapshotReconciler(reader)

        assert rec.request_refresh() is True
        assert rec.in_flight
        assert rec.request_refresh() is False

        gate.set()
        outcome = await rec.refresh()
        assert outcome.version == 1
        assert reader.latest_block.await_count == 1
        assert not rec.in_flight


class TestSwitchHolder:
    @pytest.mark.asyncio
    async def test_clears_snapshot_and_reads_new_position(self):
        other = "0x" + "77" * 20
        reader = make_reader(position=make_position(holder=other, long_balance=5))
        rec = StateSnapshotReconciler(reader, holder=HOLDER)
        await rec.refresh()

        rec.switch_holder(other)
        assert rec.snapshot is None
        assert rec.holder == other

        outcome = await rec.refresh()
        assert outcome.snapshot.position.holder == other
        reader.read_position.assert_awaited_with(other, 100)

    @pytest.mark.asyncio
    async def test_same_holder_is_noop(self):
        reader = make_reader()
        rec = StateSnapshotReconciler(reader, holder=HOLDER)
        await rec.refresh()

        rec.switch_holder(HOLDER)

        assert rec.snapshot is not None
        assert not rec.in_flight

    @pytest.mark.asyncio
    async def test_abandoned_round_is_discarded(self):
        reader = make_reader()
        gate = asyncio.Event()
        _gate_block(reader, gate)
        rec = StateSnapshotReconciler(reader, holder=HOLDER)

        waiter = asyncio.create_task(rec.refresh())
        await asyncio.sleep(0)
        rec.switch_holder(None)
        gate.set()

        abandoned = await waiter
        assert abandoned.error == "refresh abandoned"

        outcome = await rec.refresh()
        assert outcome.stale is False
        assert outcome.snapshot.position is None
        reader.read_position.assert_not_awaited()


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_periodic_refresh(self):
        reader = make_reader()
        rec = StateSnapshotReconciler(reader, interval_seconds=0.01)

        rec.start()
        for _ in range(100):
            if rec.snapshot is not None:
                break
            await asyncio.sleep(0.01)
        await rec.close()

        assert rec.snapshot is not None
        assert reader.latest_block.await_count >= 1

    @pytest.mark.asyncio
    async def test_closed_reconciler_refuses_work(self):
        reader = make_reader()
        rec = StateSnapshotReconciler(reader)
        await rec.close()

        assert rec.request_refresh() is False
        with pytest.raises(StaleSnapshotError, match="closed"):
            await rec.refresh()

    @pytest.mark.asyncio
    async def test_close_cancels_in_flight_round(self):
        reader = make_reader()
        gate = asyncio.Event()
        _gate_block(reader, gate)
        rec = StateSnapshotReconciler(reader)
        rec.request_refresh()
        await asyncio.sleep(0)

        await rec.close()

        assert not rec.in_flight
        assert rec.snapshot is None
