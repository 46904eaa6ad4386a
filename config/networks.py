"""Network table: network id -> RPC endpoint, explorer and contract addresses.

Selected once at startup by `resolve_network`. An unknown id or a required
contract left at the zero address is a configuration error; there is no
fallback to another network.
"""

import re

from pydantic import BaseModel, Field, field_validator

from src.gm_common.errors import NetworkConfigError

ZERO_ADDRESS = "0x" + "0" * 40
_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

# Foundry contract names (as they appear in broadcast files) -> address field
BROADCAST_CONTRACT_NAMES = {
    "GDPMarket": "gdp_market",
    "MockUSDC": "usdc",
    "USDC": "usdc",
    "USGDPOracle": "oracle",
    "MockGDPOracle": "oracle",
}


def normalize_address(value: str) -> str:
    """Validate a 0x-prefixed 20-byte hex address and lowercase it."""
    if not isinstance(value, str) or not _ADDRESS_RE.match(value):
        raise ValueError(f"not a 20-byte hex address: {value!r}")
    return value.lower()


class ContractAddresses(BaseModel):
    gdp_market: str = ZERO_ADDRESS
    usdc: str = ZERO_ADDRESS
    oracle: str = ZERO_ADDRESS

    @field_validator("gdp_market", "usdc", "oracle")
    @classmethod
    def check_address(cls, v: str) -> str:
        return normalize_address(v)

    def unset(self) -> list[str]:
        return [name for name, addr in self.model_dump().items() if addr == ZERO_ADDRESS]


class NetworkConfig(BaseModel):
    chain_id: int = Field(gt=0)
    name: str
    rpc_url: str
    explorer_url: str | None = None
    contracts: ContractAddresses = Field(default_factory=ContractAddresses)

    def contract_url(self, address: str | None) -> str | None:
        """Block explorer link for an address; None on explorer-less chains."""
        if not self.explorer_url or not address:
            return None
        return f"{self.explorer_url.rstrip('/')}/address/{address}"


DEFAULT_NETWORKS: dict[str, NetworkConfig] = {
    "mainnet": NetworkConfig(
        chain_id=1,
        name="Mainnet",
        rpc_url="https://eth-mainnet.g.alchemy.com/v2/demo",
        explorer_url="https://etherscan.io",
        contracts=ContractAddresses(usdc="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"),
    ),
    "sepolia": NetworkConfig(
        chain_id=11155111,
        name="Sepolia",
        rpc_url="https://rpc.sepolia.org",
        explorer_url="https://sepolia.etherscan.io",
    ),
    "local": NetworkConfig(
        chain_id=31337,
        name="Local Anvil",
        rpc_url="http://localhost:8546",
    ),
}


def resolve_network(
    networks: dict[str, NetworkConfig],
    network_id: str,
    deployed: dict[str, str] | None = None,
) -> NetworkConfig:
    """Pick the configured network and check that it is usable.

    `deployed` maps Foundry contract names to addresses (from a broadcast
    file) and takes precedence over the table's addresses.
    """
    base = networks.get(network_id)
    if base is None:
        known = ", ".join(sorted(networks)) or "<none>"
        raise NetworkConfigError(f"unknown network {network_id!r} (known: {known})")

    overrides: dict[str, str] = {}
    for contract_name, address in (deployed or {}).items():
        field = BROADCAST_CONTRACT_NAMES.get(contract_name)
        if field is not None:
            overrides[field] = address

    try:
        contracts = ContractAddresses(**{**base.contracts.model_dump(), **overrides})
    except ValueError as exc:
        raise NetworkConfigError(f"invalid deployed address: {exc}") from exc

    missing = contracts.unset()
    if missing:
        raise NetworkConfigError(
            f"network {network_id!r} has no address for: {', '.join(missing)}"
        )
    return base.model_copy(update={"contracts": contracts})
