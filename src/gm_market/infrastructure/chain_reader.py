"""JSON-RPC implementation of MarketReaderProtocol.

Each read is one JSON-RPC batch of `eth_call`s pinned to the round's block.
Selectors for the market and oracle getters come from Foundry artifacts;
ERC-20 getters use their standard selectors.
"""

import logging
from typing import Any

import httpx

from config.networks import NetworkConfig
from src.gm_common.errors import ChainReadError, NetworkConfigError
from src.gm_market.domain.models import LeverageConfig, MarketState, OracleReading, Position
from src.gm_market.domain.phase import parse_phase
from src.gm_market.infrastructure.abi import (
    decode_address,
    decode_bool,
    decode_int,
    decode_uint,
    encode_call,
)
from src.gm_market.infrastructure.artifacts import load_method_identifiers

logger = logging.getLogger(__name__)

ERC20_BALANCE_OF = "70a08231"   # balanceOf(address)
ERC20_TOTAL_SUPPLY = "18160ddd"  # totalSupply()

MARKET_ARTIFACT = "GDPMarket"

# MarketState field -> getter signature on the market contract
MARKET_GETTERS: dict[str, str] = {
    "phase": "phase()",
    "close_at": "closeAt()",
    "mint_fee_bps": "mintFeeBps()",
    "pair_redeem_fee_bps": "pairRedeemFeeBps()",
    "long_pot_micro": "longPot()",
    "short_pot_micro": "shortPot()",
    "long_redeem_numerator": "longRedeemNumerator()",
    "long_redeem_denominator": "longRedeemDenominator()",
    "short_redeem_numerator": "shortRedeemNumerator()",
    "short_redeem_denominator": "shortRedeemDenominator()",
}
TOKEN_GETTERS: dict[str, str] = {
    "long_token": "longToken()",
    "short_token": "shortToken()",
}
LEVERAGE_GETTER = "k()"
ORACLE_GETTERS: dict[str, str] = {
    "g_ppm": "gPpm()",
    "finalized": "finalized()",
}


def _require_selectors(contract: str, table: dict[str, str], signatures: list[str]) -> None:
    missing = [sig for sig in signatures if sig not in table]
    if missing:
        raise NetworkConfigError(f"{contract} artifact lacks getters: {', '.join(missing)}")


class JsonRpcMarketReader:
    def __init__(
        self,
        network: NetworkConfig,
        market_selectors: dict[str, str],
        oracle_selectors: dict[str, str],
        client: httpx.AsyncClient | None = None,
        timeout: float = 5.0,
    ) -> None:
        _require_selectors(
            "market",
            market_selectors,
            [*MARKET_GETTERS.values(), *TOKEN_GETTERS.values(), LEVERAGE_GETTER],
        )
        _require_selectors("oracle", oracle_selectors, list(ORACLE_GETTERS.values()))
        self._network = network
        self._market_selectors = market_selectors
        self._oracle_selectors = oracle_selectors
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._request_id = 0
        # LONG/SHORT token addresses are fixed at deployment; read once
        self._tokens: tuple[str, str] | None = None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # JSON-RPC transport
    # ------------------------------------------------------------------

    async def _post(self, payload: Any) -> Any:
        try:
            resp = await self._client.post(self._network.rpc_url, json=payload)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as exc:
            raise ChainReadError(f"{type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            raise ChainReadError(f"RPC returned invalid JSON: {exc}") from exc

    async def _batch(self, calls: list[tuple[str, list[Any]]]) -> list[Any]:
        base = self._request_id
        self._request_id += len(calls)
        payload = [
            {"jsonrpc": "2.0", "id": base + i, "method": method, "params": params}
            for i, (method, params) in enumerate(calls)
        ]
        body = await self._post(payload)
        if isinstance(body, dict):
            # whole batch rejected
            raise ChainReadError(f"RPC error: {body.get('error', body)}")
        if not isinstance(body, list):
            raise ChainReadError(f"unexpected RPC response: {body!r}")

        by_id = {item.get("id"): item for item in body if isinstance(item, dict)}
        results = []
        for i, (method, _) in enumerate(calls):
            item = by_id.get(base + i)
            if item is None:
                raise ChainReadError(f"no response for {method} (id {base + i})")
            if "error" in item:
                error = item["error"]
                message = error.get("message", error) if isinstance(error, dict) else error
                raise ChainReadError(f"{method}: {message}")
            results.append(item.get("result"))
        return results

    async def _call_many(self, block: int, calls: list[tuple[str, str]]) -> list[str]:
        """eth_call each (to, data) at `block`, in one batch."""
        tag = hex(block)
        results = await self._batch(
            [("eth_call", [{"to": to, "data": data}, tag]) for to, data in calls]
        )
        logger.debug("eth_call batch of %d at block %d", len(calls), block)
        return results

    def _market_call(self, signature: str) -> tuple[str, str]:
        return (
            self._network.contracts.gdp_market,
            encode_call(self._market_selectors[signature]),
        )

    # ------------------------------------------------------------------
    # MarketReaderProtocol
    # ------------------------------------------------------------------

    async def latest_block(self) -> int:
        (result,) = await self._batch([("eth_blockNumber", [])])
        try:
            return int(result, 16)
        except (TypeError, ValueError) as exc:
            raise ChainReadError(f"invalid block number: {result!r}") from exc

    async def _token_addresses(self, block: int) -> tuple[str, str]:
        if self._tokens is None:
            long_raw, short_raw = await self._call_many(
                block, [self._market_call(sig) for sig in TOKEN_GETTERS.values()]
            )
            self._tokens = (decode_address(long_raw), decode_address(short_raw))
            logger.info("Position tokens: long=%s short=%s", *self._tokens)
        return self._tokens

    async def read_market(self, block: int) -> MarketState:
        long_token, short_token = await self._token_addresses(block)
        usdc = self._network.contracts.usdc
        market = self._network.contracts.gdp_market

        calls = [self._market_call(sig) for sig in MARKET_GETTERS.values()]
        calls += [
            (usdc, encode_call(ERC20_BALANCE_OF, market)),
            (long_token, encode_call(ERC20_TOTAL_SUPPLY)),
            (short_token, encode_call(ERC20_TOTAL_SUPPLY)),
        ]
        raw = await self._call_many(block, calls)
        fields = dict(zip(MARKET_GETTERS, raw))
        vault_raw, long_supply_raw, short_supply_raw = raw[len(MARKET_GETTERS):]

        return MarketState(
            phase=parse_phase(decode_uint(fields.pop("phase"))),
            vault_balance_micro=decode_uint(vault_raw),
            long_token=long_token,
            short_token=short_token,
            long_supply=decode_uint(long_supply_raw),
            short_supply=decode_uint(short_supply_raw),
            **{name: decode_uint(value) for name, value in fields.items()},
        )

    async def read_oracle(self, block: int) -> OracleReading:
        oracle = self._network.contracts.oracle
        g_raw, finalized_raw = await self._call_many(
            block,
            [(oracle, encode_call(self._oracle_selectors[sig])) for sig in ORACLE_GETTERS.values()],
        )
        return OracleReading(g_ppm=decode_int(g_raw), finalized=decode_bool(finalized_raw))

    async def read_leverage(self, block: int) -> LeverageConfig:
        (k_raw,) = await self._call_many(block, [self._market_call(LEVERAGE_GETTER)])
        return LeverageConfig(k=decode_uint(k_raw))

    async def read_position(self, holder: str, block: int) -> Position:
        long_token, short_token = await self._token_addresses(block)
        long_raw, short_raw, usdc_raw = await self._call_many(
            block,
            [
                (long_token, encode_call(ERC20_BALANCE_OF, holder)),
                (short_token, encode_call(ERC20_BALANCE_OF, holder)),
                (self._network.contracts.usdc, encode_call(ERC20_BALANCE_OF, holder)),
            ],
        )
        return Position(
            holder=holder,
            long_balance=decode_uint(long_raw),
            short_balance=decode_uint(short_raw),
            usdc_balance=decode_uint(usdc_raw),
        )


def build_reader(
    network: NetworkConfig,
    artifacts_dir: str,
    oracle_artifact: str,
    timeout: float,
) -> JsonRpcMarketReader:
    """Reader wired with selectors from the Foundry build output."""
    return JsonRpcMarketReader(
        network=network,
        market_selectors=load_method_identifiers(artifacts_dir, MARKET_ARTIFACT),
        oracle_selectors=load_method_identifiers(artifacts_dir, oracle_artifact),
        timeout=timeout,
    )
