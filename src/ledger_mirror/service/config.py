"""Configuration primitives for the Ledger Mirror service."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from ..ledger.network import NetworkConfig


@dataclass(slots=True)
class LedgerMirrorConfig:
    """Runtime configuration for the Ledger Mirror service.

    Configuration Sources (priority order):
    1. Direct constructor arguments
    2. Environment variables (MIRROR_*, STELLAR_*)
    3. Default values

    Attributes:
        network: Stellar network, passphrase and Horizon URL (default: testnet)
        port: Service port (default: 4950)
        db_path: SQLite database path (default: data/ledger_mirror.db)
        asset_code: Asset tracked for employee trustlines (default: ORGUSD)
        asset_issuer: Default issuer when a request omits one
        ledger_timeout_seconds: Per-request Horizon timeout (default: 10)
        ledger_max_attempts: Attempts per Horizon query (default: 3)
        ledger_retry_base_delay: First backoff delay in seconds (default: 0.5)
        breaker_failure_threshold: Failures before the breaker opens (default: 5)
        breaker_reset_seconds: Open-breaker cool-down (default: 30)
        base_fee: Fee bid per operation in stroops (default: 100)
        tx_timeout_seconds: Validity window of built transactions (default: 300)
        default_page_limit: Audit list page size when unspecified (default: 20)
        max_page_limit: Largest accepted audit page size (default: 100)
    """

    network: NetworkConfig = field(default_factory=NetworkConfig.for_network)
    port: int = 4950
    db_path: str = "data/ledger_mirror.db"
    asset_code: str = "ORGUSD"
    asset_issuer: str | None = None
    ledger_timeout_seconds: float = 10.0
    ledger_max_attempts: int = 3
    ledger_retry_base_delay: float = 0.5
    breaker_failure_threshold: int = 5
    breaker_reset_seconds: float = 30.0
    base_fee: int = 100
    tx_timeout_seconds: int = 300
    default_page_limit: int = 20
    max_page_limit: int = 100
    cors_origins: list[str] = field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    )

    @classmethod
    def from_env(cls) -> LedgerMirrorConfig:
        """Create configuration from environment variables.

        Optional:
            STELLAR_NETWORK / STELLAR_NETWORK_PASSPHRASE / STELLAR_HORIZON_URL
            MIRROR_PORT: Service port (default: 4950)
            MIRROR_DB_PATH: SQLite database path
            MIRROR_ASSET_CODE: Tracked asset code (default: ORGUSD)
            MIRROR_ASSET_ISSUER: Default asset issuer
            MIRROR_LEDGER_TIMEOUT: Horizon timeout in seconds (default: 10)
            MIRROR_LEDGER_MAX_ATTEMPTS: Attempts per Horizon query (default: 3)
            MIRROR_BASE_FEE: Fee bid in stroops (default: 100)
            MIRROR_TX_TIMEOUT: Transaction validity window in seconds (default: 300)
            MIRROR_CORS_ORIGINS: Comma-separated allowed origins
        """
        config = cls(
            network=NetworkConfig.from_env(),
            port=int(os.environ.get("MIRROR_PORT", "4950")),
            db_path=os.environ.get("MIRROR_DB_PATH", "data/ledger_mirror.db"),
            asset_code=os.environ.get("MIRROR_ASSET_CODE", "ORGUSD"),
            asset_issuer=os.environ.get("MIRROR_ASSET_ISSUER") or None,
            ledger_timeout_seconds=float(os.environ.get("MIRROR_LEDGER_TIMEOUT", "10")),
            ledger_max_attempts=int(os.environ.get("MIRROR_LEDGER_MAX_ATTEMPTS", "3")),
            base_fee=int(os.environ.get("MIRROR_BASE_FEE", "100")),
            tx_timeout_seconds=int(os.environ.get("MIRROR_TX_TIMEOUT", "300")),
        )

        origins = os.environ.get("MIRROR_CORS_ORIGINS", "")
        if origins:
            config.cors_origins = [o.strip() for o in origins.split(",") if o.strip()]

        if config.ledger_max_attempts < 1:
            raise ValueError("MIRROR_LEDGER_MAX_ATTEMPTS must be at least 1")
        if config.tx_timeout_seconds <= 0:
            raise ValueError("MIRROR_TX_TIMEOUT must be positive")

        return config


__all__ = ["LedgerMirrorConfig"]
