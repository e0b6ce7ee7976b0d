"""Test configuration and shared fixtures for pytest."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from stellar_sdk import Keypair

from ledger_mirror.errors import AccountNotFound, LedgerUnavailable, TransactionNotFound
from ledger_mirror.ledger.types import (
    AccountSnapshot,
    BalanceEntry,
    ConnectionStatus,
    LedgerTransaction,
)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "conformance: API contract conformance tests")


class StubLedger:
    """In-process stand-in for the ledger gateway.

    Tests mutate ``accounts`` and ``transactions`` to simulate what the
    ledger currently reports.
    """

    def __init__(self) -> None:
        self.accounts: dict[str, AccountSnapshot] = {}
        self.transactions: dict[str, LedgerTransaction] = {}
        self.unavailable = False
        self.calls: list[tuple[str, str]] = []

    def load_account(self, address: str) -> AccountSnapshot:
        self.calls.append(("load_account", address))
        if self.unavailable:
            raise LedgerUnavailable("stub ledger is down")
        if address not in self.accounts:
            raise AccountNotFound(address)
        return self.accounts[address]

    def fetch_transaction(self, tx_hash: str) -> LedgerTransaction:
        self.calls.append(("fetch_transaction", tx_hash))
        if self.unavailable:
            raise LedgerUnavailable("stub ledger is down")
        if tx_hash not in self.transactions:
            raise TransactionNotFound(tx_hash)
        return self.transactions[tx_hash]

    def ping(self) -> ConnectionStatus:
        return ConnectionStatus(
            connected=not self.unavailable,
            network="testnet",
            horizon_url="https://horizon.stub",
            latency_ms=0.1,
            ledger_sequence=None if self.unavailable else 4242,
            error="stub ledger is down" if self.unavailable else None,
        )

    # -- helpers ------------------------------------------------------------

    def fund(self, address: str, sequence: int = 1000, xlm: str = "100.0000000") -> None:
        self.accounts[address] = AccountSnapshot(
            account_id=address,
            sequence=sequence,
            balances=(BalanceEntry(asset_type="native", balance=xlm),),
        )

    def add_trustline(
        self,
        address: str,
        asset_code: str,
        asset_issuer: str,
        balance: str = "0.0000000",
    ) -> None:
        account = self.accounts[address]
        asset_type = "credit_alphanum4" if len(asset_code) <= 4 else "credit_alphanum12"
        entry = BalanceEntry(
            asset_type=asset_type,
            balance=balance,
            asset_code=asset_code,
            asset_issuer=asset_issuer,
        )
        self.accounts[address] = replace(account, balances=account.balances + (entry,))

    def remove_trustlines(self, address: str) -> None:
        account = self.accounts[address]
        native = tuple(b for b in account.balances if b.is_native)
        self.accounts[address] = replace(account, balances=native)

    def publish(self, transaction: LedgerTransaction) -> None:
        self.transactions[transaction.hash] = transaction

    def calls_to(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)


class TickingClock:
    """Deterministic time provider advancing a fixed step per call."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)):
        self.now = start or datetime(2025, 1, 1, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
def ledger() -> StubLedger:
    return StubLedger()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def wallet() -> str:
    return Keypair.random().public_key


@pytest.fixture
def issuer() -> str:
    return Keypair.random().public_key


@pytest.fixture
def make_transaction():
    """Factory for finalized transactions with distinct hashes."""
    counter = {"n": 0}

    def _make(source_account: str | None = None, **overrides) -> LedgerTransaction:
        counter["n"] += 1
        fields = {
            "hash": f"{counter['n']:064x}",
            "ledger": 50_000 + counter["n"],
            "created_at": "2025-01-01T00:00:00Z",
            "source_account": source_account or Keypair.random().public_key,
            "fee_charged": "100",
            "operation_count": 1,
            "envelope_xdr": "AAAAAgAAAAB" + "A" * 40,
            "result_xdr": "AAAAAAAAAGQAAAAAAAAAAQAAAAAAAAABAAAAAAAAAAA=",
            "successful": True,
            "memo_type": "text",
            "memo": f"payroll-{counter['n']}",
        }
        fields.update(overrides)
        return LedgerTransaction(**fields)

    return _make
