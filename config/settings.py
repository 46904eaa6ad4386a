from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from config.networks import DEFAULT_NETWORKS, NetworkConfig, normalize_address


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Network — must name an entry of NETWORKS (validated at startup, no fallback)
    NETWORK: str = "local"
    # JSON override of the whole table, e.g. NETWORKS='{"local": {...}}'
    NETWORKS: dict[str, NetworkConfig] = Field(
        default_factory=lambda: dict(DEFAULT_NETWORKS)
    )

    # Foundry output: artifacts supply function selectors, broadcast supplies addresses
    ARTIFACTS_DIR: str = "contracts/out"
    ORACLE_ARTIFACT: str = "USGDPOracle"
    BROADCAST_FILE: str | None = None

    # Wallet whose position is tracked; None = market-only view
    HOLDER_ADDRESS: str | None = None

    # Reconciler
    REFRESH_INTERVAL_SECONDS: float = Field(default=10.0, gt=0)
    RPC_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0)

    # App
    APP_NAME: str = "GDP Market"
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    @field_validator("HOLDER_ADDRESS")
    @classmethod
    def check_holder(cls, v: str | None) -> str | None:
        return normalize_address(v) if v else None


settings = Settings()
