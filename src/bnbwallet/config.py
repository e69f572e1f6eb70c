"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Chain RPC Endpoints
    # ======================
    bsc_rpc_url: str = Field(
        default="https://bsc-dataseed.binance.org", description="BNB Chain mainnet RPC URL"
    )
    bsc_testnet_rpc_url: str = Field(
        default="https://data-seed-prebsc-1-s1.binance.org:8545",
        description="BNB Chain testnet RPC URL",
    )
    default_chain_id: int = Field(default=56, description="Initial active chain ID")

    # ======================
    # Collaborator behaviour
    # ======================
    dry_run: bool = Field(default=True, description="Use the in-memory chain client (no real RPC)")
    rpc_timeout: float = Field(default=30.0, description="HTTP timeout for JSON-RPC calls (seconds)")
    collaborator_timeout: float = Field(
        default=45.0, description="Upper bound for a single key provider / chain client call (seconds)"
    )
    read_retry_attempts: int = Field(
        default=3, description="Attempts for read-only balance queries on transient errors"
    )
    read_retry_backoff: float = Field(
        default=0.5, description="Base backoff between read retries (seconds)"
    )
    session_lock_timeout: Optional[float] = Field(
        default=60.0, description="Max wait for the session lock (None = wait forever)"
    )

    # ======================
    # Transactions / keystore
    # ======================
    native_transfer_gas: int = Field(default=21000, description="Gas limit for BNB transfers")
    token_transfer_gas: int = Field(default=100000, description="Gas limit for BEP20 transfers")
    keystore_kdf: str = Field(default="scrypt", description="KDF used for keystore export")
    keystore_iterations: Optional[int] = Field(
        default=None, description="KDF work factor for keystore export (None = library default)"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def get_rpc_urls(self) -> dict[int, str]:
        """RPC URL per supported chain ID."""
        return {
            56: self.bsc_rpc_url,
            97: self.bsc_testnet_rpc_url,
        }

    def get_safe_dict(self) -> dict:
        """Return settings dict suitable for health output."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "default_chain_id": self.default_chain_id,
            "chains": {
                "56": {"rpc": self.bsc_rpc_url},
                "97": {"rpc": self.bsc_testnet_rpc_url},
            },
            "timeouts": {
                "rpc": self.rpc_timeout,
                "collaborator": self.collaborator_timeout,
                "session_lock": self.session_lock_timeout,
            },
            "read_retry_attempts": self.read_retry_attempts,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
