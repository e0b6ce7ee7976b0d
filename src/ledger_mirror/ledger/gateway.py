"""Ledger gateway - read-only queries against the Stellar Horizon API.

The gateway is the only component that talks to the ledger. It turns
Horizon's HTTP outcomes into the service's error taxonomy:

- 404 -> ``AccountNotFound`` / ``TransactionNotFound`` (expected outcomes)
- 400 -> ``ValidationError``
- anything else that is not a 2xx, timeouts, transport errors and
  malformed bodies -> ``LedgerUnavailable`` (retried, then surfaced)
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Protocol

import httpx

from ..errors import (
    AccountNotFound,
    LedgerMirrorError,
    LedgerUnavailable,
    NotFoundError,
    TransactionNotFound,
    ValidationError,
)
from .circuit_breaker import CircuitBreaker
from .network import NetworkConfig
from .retry import RetryConfig, call_with_retry
from .types import AccountSnapshot, ConnectionStatus, LedgerTransaction

logger = logging.getLogger(__name__)


class LedgerGateway(Protocol):
    """Query interface over the remote ledger."""

    def load_account(self, address: str) -> AccountSnapshot:
        """Return current balances and sequence for ``address``.

        Raises:
            AccountNotFound: The address was never funded
            LedgerUnavailable: The query failed
        """
        ...

    def fetch_transaction(self, tx_hash: str) -> LedgerTransaction:
        """Return finalized transaction facts for ``tx_hash``.

        Raises:
            TransactionNotFound: No finalized transaction with that hash
            LedgerUnavailable: The query failed
        """
        ...

    def ping(self) -> ConnectionStatus:
        """Probe connectivity. Never raises."""
        ...


class HorizonGateway:
    """``LedgerGateway`` backed by a Horizon server.

    Example:
        with HorizonGateway(NetworkConfig.for_network("testnet")) as gateway:
            account = gateway.load_account("GABC...")
            entry = account.find_balance("ORGUSD", issuer)
    """

    def __init__(
        self,
        network: NetworkConfig,
        *,
        timeout: float = 10.0,
        retry: RetryConfig | None = None,
        breaker: CircuitBreaker | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._network = network
        self._retry = retry or RetryConfig()
        self._breaker = breaker or CircuitBreaker(name="horizon")
        self._sleep = sleep
        self._client = httpx.Client(
            base_url=network.horizon_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @property
    def network(self) -> NetworkConfig:
        return self._network

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    def __enter__(self) -> HorizonGateway:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def load_account(self, address: str) -> AccountSnapshot:
        data = self._get_json(
            f"/accounts/{address}",
            not_found=lambda: AccountNotFound(address),
            operation="load_account",
        )
        try:
            return AccountSnapshot.from_horizon(data)
        except (KeyError, ValueError, TypeError) as e:
            raise LedgerUnavailable(f"Malformed account response for {address}: {e}") from e

    def fetch_transaction(self, tx_hash: str) -> LedgerTransaction:
        data = self._get_json(
            f"/transactions/{tx_hash}",
            not_found=lambda: TransactionNotFound(tx_hash),
            operation="fetch_transaction",
        )
        try:
            return LedgerTransaction.from_horizon(data)
        except (KeyError, ValueError, TypeError) as e:
            raise LedgerUnavailable(
                f"Malformed transaction response for {tx_hash}: {e}"
            ) from e

    def ping(self) -> ConnectionStatus:
        start = time.perf_counter()
        try:
            data = self._request_json("/fee_stats", not_found=None)
            ledger_sequence = int(data["last_ledger"])
        except (LedgerMirrorError, KeyError, ValueError, TypeError) as e:
            return ConnectionStatus(
                connected=False,
                network=self._network.network.value,
                horizon_url=self._network.horizon_url,
                latency_ms=(time.perf_counter() - start) * 1000,
                error=str(e) or type(e).__name__,
            )
        return ConnectionStatus(
            connected=True,
            network=self._network.network.value,
            horizon_url=self._network.horizon_url,
            latency_ms=(time.perf_counter() - start) * 1000,
            ledger_sequence=ledger_sequence,
        )

    # -----------------------------------------------------------------------
    # HTTP plumbing
    # -----------------------------------------------------------------------

    def _get_json(
        self,
        path: str,
        *,
        not_found: Callable[[], NotFoundError],
        operation: str,
    ) -> dict[str, Any]:
        logger.debug(f"Horizon {operation}: GET {path}")
        return call_with_retry(
            lambda: self._breaker.call(lambda: self._request_json(path, not_found)),
            self._retry,
            operation=operation,
            sleep=self._sleep,
        )

    def _request_json(
        self,
        path: str,
        not_found: Callable[[], NotFoundError] | None,
    ) -> dict[str, Any]:
        try:
            response = self._client.get(path)
        except httpx.TimeoutException as e:
            raise LedgerUnavailable(f"Horizon request timed out: GET {path}") from e
        except httpx.HTTPError as e:
            raise LedgerUnavailable(f"Horizon request failed: GET {path}: {e}") from e

        if response.status_code == 404 and not_found is not None:
            raise not_found()
        if response.status_code == 400:
            raise ValidationError(f"Horizon rejected request: GET {path}")
        if response.status_code >= 300:
            raise LedgerUnavailable(
                f"Horizon returned HTTP {response.status_code} for GET {path}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise LedgerUnavailable(f"Horizon returned a non-JSON body for GET {path}") from e
        if not isinstance(data, dict):
            raise LedgerUnavailable(f"Horizon returned an unexpected body for GET {path}")
        return data


__all__ = ["HorizonGateway", "LedgerGateway"]
