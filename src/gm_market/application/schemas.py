"""Pydantic schemas for gm_market API responses.

Rates are shown as exact "numerator/denominator" strings, or "undetermined"
while the contract has not set them. Datetimes are ISO 8601 UTC.
"""

from pydantic import BaseModel

from config.networks import NetworkConfig
from src.gm_common.datetime_utils import from_unix
from src.gm_common.fixed_point import (
    TOKEN_DECIMALS,
    bps_to_percent,
    ppm_to_percent,
    to_display,
    usdc_to_display,
)
from src.gm_market.application.reconciler import StateSnapshotReconciler
from src.gm_market.domain.models import MarketState, OracleReading, Position
from src.gm_market.domain.phase import allowed_operations

UNDETERMINED = "undetermined"


def _rate_display(numerator: int, denominator: int) -> str:
    if denominator == 0:
        return UNDETERMINED
    return f"{numerator}/{denominator}"


# ---------------------------------------------------------------------------
# Snapshot parts
# ---------------------------------------------------------------------------


class MarketOut(BaseModel):
    phase: str
    close_at: int
    close_at_iso: str
    mint_fee_bps: int
    mint_fee_display: str
    pair_redeem_fee_bps: int
    pair_redeem_fee_display: str
    vault_balance_micro: int
    vault_balance_display: str
    long_pot_micro: int
    short_pot_micro: int
    long_redeem_numerator: int
    long_redeem_denominator: int
    long_rate_display: str
    short_redeem_numerator: int
    short_redeem_denominator: int
    short_rate_display: str
    long_token: str | None
    short_token: str | None
    long_supply: int
    short_supply: int
    allowed_operations: list[str]

    @classmethod
    def from_domain(cls, m: MarketState) -> "MarketOut":
        return cls(
            phase=m.phase.name,
            close_at=m.close_at,
            close_at_iso=from_unix(m.close_at).isoformat(),
            mint_fee_bps=m.mint_fee_bps,
            mint_fee_display=bps_to_percent(m.mint_fee_bps),
            pair_redeem_fee_bps=m.pair_redeem_fee_bps,
            pair_redeem_fee_display=bps_to_percent(m.pair_redeem_fee_bps),
            vault_balance_micro=m.vault_balance_micro,
            vault_balance_display=usdc_to_display(m.vault_balance_micro),
            long_pot_micro=m.long_pot_micro,
            short_pot_micro=m.short_pot_micro,
            long_redeem_numerator=m.long_redeem_numerator,
            long_redeem_denominator=m.long_redeem_denominator,
            long_rate_display=_rate_display(m.long_redeem_numerator, m.long_redeem_denominator),
            short_redeem_numerator=m.short_redeem_numerator,
            short_redeem_denominator=m.short_redeem_denominator,
            short_rate_display=_rate_display(
                m.short_redeem_numerator, m.short_redeem_denominator
            ),
            long_token=m.long_token,
            short_token=m.short_token,
            long_supply=m.long_supply,
            short_supply=m.short_supply,
            allowed_operations=sorted(op.value for op in allowed_operations(m.phase)),
        )


class OracleOut(BaseModel):
    g_ppm: int
    g_display: str
    finalized: bool

    @classmethod
    def from_domain(cls, o: OracleReading) -> "OracleOut":
        return cls(g_ppm=o.g_ppm, g_display=ppm_to_percent(o.g_ppm), finalized=o.finalized)


class PositionOut(BaseModel):
    holder: str
    long_balance: int
    short_balance: int
    usdc_balance: int
    long_display: str
    short_display: str
    usdc_display: str

    @classmethod
    def from_domain(cls, p: Position) -> "PositionOut":
        return cls(
            holder=p.holder,
            long_balance=p.long_balance,
            short_balance=p.short_balance,
            usdc_balance=p.usdc_balance,
            long_display=to_display(p.long_balance, TOKEN_DECIMALS, 4),
            short_display=to_display(p.short_balance, TOKEN_DECIMALS, 4),
            usdc_display=usdc_to_display(p.usdc_balance),
        )


# ---------------------------------------------------------------------------
# Snapshot / refresh responses
# ---------------------------------------------------------------------------


class SnapshotResponse(BaseModel):
    status: str
    last_error: str | None
    version: int
    block_number: int | None
    fetched_at: str | None
    leverage_k: int | None
    market: MarketOut | None
    oracle: OracleOut | None
    position: PositionOut | None

    @classmethod
    def from_reconciler(cls, reconciler: StateSnapshotReconciler) -> "SnapshotResponse":
        snap = reconciler.snapshot
        if snap is None:
            return cls(
                status=reconciler.status.value,
                last_error=reconciler.last_error,
                version=0,
                block_number=None,
                fetched_at=None,
                leverage_k=None,
                market=None,
                oracle=None,
                position=None,
            )
        return cls(
            status=reconciler.status.value,
            last_error=reconciler.last_error,
            version=snap.version,
            block_number=snap.block_number,
            fetched_at=snap.fetched_at.isoformat(),
            leverage_k=snap.leverage.k,
            market=MarketOut.from_domain(snap.market),
            oracle=OracleOut.from_domain(snap.oracle),
            position=PositionOut.from_domain(snap.position) if snap.position else None,
        )


class RefreshResponse(BaseModel):
    started: bool | None = None     # set for non-waiting requests
    version: int
    stale: bool
    error: str | None = None


class HolderRequest(BaseModel):
    holder: str | None = None


# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------


class ContractLinkOut(BaseModel):
    name: str
    address: str
    explorer_url: str | None


class NetworkResponse(BaseModel):
    network: str
    chain_id: int
    name: str
    rpc_url: str
    contracts: list[ContractLinkOut]

    @classmethod
    def from_config(
        cls,
        network_id: str,
        network: NetworkConfig,
        tokens: dict[str, str | None],
    ) -> "NetworkResponse":
        addresses = {**network.contracts.model_dump(), **tokens}
        return cls(
            network=network_id,
            chain_id=network.chain_id,
            name=network.name,
            rpc_url=network.rpc_url,
            contracts=[
                ContractLinkOut(
                    name=name,
                    address=address,
                    explorer_url=network.contract_url(address),
                )
                for name, address in addresses.items()
                if address
            ],
        )
