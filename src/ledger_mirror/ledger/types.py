"""Typed values for what the ledger reports.

Horizon answers with loosely-typed JSON; these dataclasses pin down the
fields the service relies on so matching and comparison are exact.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

NATIVE_ASSET_TYPE = "native"


@dataclass(frozen=True, slots=True)
class BalanceEntry:
    """One balance line of an account.

    ``balance`` is kept as the decimal string Horizon reports; it is never
    parsed so no precision is lost.
    """

    asset_type: str
    balance: str
    asset_code: str | None = None
    asset_issuer: str | None = None

    @property
    def is_native(self) -> bool:
        return self.asset_type == NATIVE_ASSET_TYPE

    @classmethod
    def from_horizon(cls, data: dict[str, Any]) -> BalanceEntry:
        return cls(
            asset_type=str(data["asset_type"]),
            balance=str(data["balance"]),
            asset_code=data.get("asset_code"),
            asset_issuer=data.get("asset_issuer"),
        )


@dataclass(frozen=True, slots=True)
class AccountSnapshot:
    """Current state of a ledger account as of one query."""

    account_id: str
    sequence: int
    balances: tuple[BalanceEntry, ...] = ()

    def find_balance(self, asset_code: str, asset_issuer: str) -> BalanceEntry | None:
        """Return the non-native balance for exactly (asset_code, asset_issuer)."""
        for entry in self.balances:
            if entry.is_native:
                continue
            if entry.asset_code == asset_code and entry.asset_issuer == asset_issuer:
                return entry
        return None

    @classmethod
    def from_horizon(cls, data: dict[str, Any]) -> AccountSnapshot:
        """Parse a Horizon ``/accounts/{id}`` response.

        Raises:
            KeyError, ValueError, TypeError: If the response is malformed
        """
        return cls(
            account_id=str(data["account_id"]),
            sequence=int(data["sequence"]),
            balances=tuple(BalanceEntry.from_horizon(b) for b in data.get("balances", [])),
        )


@dataclass(frozen=True, slots=True)
class LedgerTransaction:
    """Finalized transaction facts, as captured into an audit record."""

    hash: str
    ledger: int
    created_at: str
    source_account: str
    fee_charged: str
    operation_count: int
    envelope_xdr: str
    result_xdr: str
    successful: bool
    memo_type: str = "none"
    memo: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Canonical dict stored verbatim and compared field-by-field on verify."""
        return asdict(self)

    @classmethod
    def from_horizon(cls, data: dict[str, Any]) -> LedgerTransaction:
        """Parse a Horizon ``/transactions/{hash}`` response.

        Raises:
            KeyError, ValueError, TypeError: If the response is malformed
        """
        return cls(
            hash=str(data["hash"]).lower(),
            ledger=int(data["ledger"]),
            created_at=str(data["created_at"]),
            source_account=str(data["source_account"]),
            fee_charged=str(data["fee_charged"]),
            operation_count=int(data["operation_count"]),
            envelope_xdr=str(data["envelope_xdr"]),
            result_xdr=str(data["result_xdr"]),
            successful=bool(data["successful"]),
            memo_type=str(data.get("memo_type", "none")),
            memo=data.get("memo"),
        )


@dataclass(slots=True)
class ConnectionStatus:
    """Outcome of a ledger connectivity probe."""

    connected: bool
    network: str
    horizon_url: str
    latency_ms: float
    ledger_sequence: int | None = None
    error: str | None = None


__all__ = [
    "AccountSnapshot",
    "BalanceEntry",
    "ConnectionStatus",
    "LedgerTransaction",
    "NATIVE_ASSET_TYPE",
]
