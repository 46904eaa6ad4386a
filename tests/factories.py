"""Builders for domain records used across unit and integration tests."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

from src.gm_common.enums import MarketPhase
from src.gm_market.domain.models import (
    LeverageConfig,
    MarketSnapshot,
    MarketState,
    OracleReading,
    Position,
)

HOLDER = "0x" + "66" * 20
LONG_TOKEN = "0x" + "44" * 20
SHORT_TOKEN = "0x" + "55" * 20


def make_market(**kwargs) -> MarketState:
    defaults = dict(
        phase=MarketPhase.OPEN, close_at=1_767_225_600,
        mint_fee_bps=50, pair_redeem_fee_bps=30,
        vault_balance_micro=10_000_000, long_pot_micro=0, short_pot_micro=0,
        long_redeem_numerator=0, long_redeem_denominator=0,
        short_redeem_numerator=0, short_redeem_denominator=0,
        long_token=LONG_TOKEN, short_token=SHORT_TOKEN,
        long_supply=10 * 10**18, short_supply=10 * 10**18,
    )
    defaults.update(kwargs)
    return MarketState(**defaults)


def make_settled_market(**kwargs) -> MarketState:
    defaults = dict(
        phase=MarketPhase.SETTLED,
        long_pot_micro=5_150_000, short_pot_micro=4_850_000,
        long_redeem_numerator=3, long_redeem_denominator=4,
        short_redeem_numerator=1, short_redeem_denominator=4,
    )
    defaults.update(kwargs)
    return make_market(**defaults)


def make_position(**kwargs) -> Position:
    defaults = dict(holder=HOLDER, long_balance=0, short_balance=0, usdc_balance=0)
    defaults.update(kwargs)
    return Position(**defaults)


def make_snapshot(
    market: MarketState | None = None,
    oracle: OracleReading | None = None,
    k: int = 10,
    position: Position | None = None,
    version: int = 1,
    block_number: int = 100,
) -> MarketSnapshot:
    return MarketSnapshot(
        version=version,
        block_number=block_number,
        fetched_at=datetime.now(UTC),
        market=market or make_market(),
        oracle=oracle or OracleReading(g_ppm=3_000, finalized=False),
        leverage=LeverageConfig(k=k),
        position=position,
    )


def make_reader(
    block: int = 100,
    market: MarketState | None = None,
    oracle: OracleReading | None = None,
    k: int = 10,
    position: Position | None = None,
) -> MagicMock:
    """Mock conforming to MarketReaderProtocol."""
    reader = MagicMock()
    reader.latest_block = AsyncMock(return_value=block)
    reader.read_market = AsyncMock(return_value=market or make_market())
    reader.read_oracle = AsyncMock(
        return_value=oracle or OracleReading(g_ppm=3_000, finalized=False)
    )
    reader.read_leverage = AsyncMock(return_value=LeverageConfig(k=k))
    reader.read_position = AsyncMock(return_value=position or make_position())
    reader.aclose = AsyncMock()
    return reader
