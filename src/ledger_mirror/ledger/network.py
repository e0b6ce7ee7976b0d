"""Stellar network selection."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum

from stellar_sdk import Network


class StellarNetwork(str, Enum):
    """Supported Stellar networks."""

    TESTNET = "testnet"
    MAINNET = "mainnet"


_NETWORK_DEFAULTS: dict[StellarNetwork, tuple[str, str]] = {
    StellarNetwork.TESTNET: (
        Network.TESTNET_NETWORK_PASSPHRASE,
        "https://horizon-testnet.stellar.org",
    ),
    StellarNetwork.MAINNET: (
        Network.PUBLIC_NETWORK_PASSPHRASE,
        "https://horizon.stellar.org",
    ),
}


@dataclass(frozen=True, slots=True)
class NetworkConfig:
    """Resolved network name, passphrase and Horizon URL."""

    network: StellarNetwork
    network_passphrase: str
    horizon_url: str

    @classmethod
    def for_network(
        cls,
        name: str = "testnet",
        *,
        network_passphrase: str | None = None,
        horizon_url: str | None = None,
    ) -> NetworkConfig:
        """Build a config for ``name``, with optional overrides.

        ``mainnet`` and ``public`` select the public network; anything else
        falls back to testnet.
        """
        network = (
            StellarNetwork.MAINNET
            if name.lower() in ("mainnet", "public")
            else StellarNetwork.TESTNET
        )
        default_passphrase, default_url = _NETWORK_DEFAULTS[network]
        return cls(
            network=network,
            network_passphrase=network_passphrase or default_passphrase,
            horizon_url=(horizon_url or default_url).rstrip("/"),
        )

    @classmethod
    def from_env(cls) -> NetworkConfig:
        """Resolve from environment variables.

        Optional:
            STELLAR_NETWORK: 'testnet' | 'mainnet' (default: testnet)
            STELLAR_NETWORK_PASSPHRASE: Override the default passphrase
            STELLAR_HORIZON_URL: Override the default Horizon URL
        """
        return cls.for_network(
            os.environ.get("STELLAR_NETWORK", "testnet"),
            network_passphrase=os.environ.get("STELLAR_NETWORK_PASSPHRASE") or None,
            horizon_url=os.environ.get("STELLAR_HORIZON_URL") or None,
        )


__all__ = ["NetworkConfig", "StellarNetwork"]
