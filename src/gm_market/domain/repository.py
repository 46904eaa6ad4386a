# src/gm_market/domain/repository.py
"""Reader Protocol — the chain-facing read interface of the reconciler.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure provides the JSON-RPC implementation. Every read of one
refresh round is pinned to the same block so the round is a consistent cut.
"""

from typing import Protocol

from src.gm_market.domain.models import LeverageConfig, MarketState, OracleReading, Position


class MarketReaderProtocol(Protocol):
    async def latest_block(self) -> int: ...

    async def read_market(self, block: int) -> MarketState: ...

    async def read_oracle(self, block: int) -> OracleReading: ...

    async def read_leverage(self, block: int) -> LeverageConfig: ...

    async def read_position(self, holder: str, block: int) -> Position: ...
