"""Employee wallet lookup.

Employees are managed elsewhere; the trustline service only needs the
wallet currently bound to an employee.
"""

from __future__ import annotations

import sqlite3
import threading
from typing import Protocol

from ..errors import StorageError
from .database import Database


class EmployeeDirectory(Protocol):
    """Read-only view of employee wallets."""

    def wallet_address_for(self, employee_id: int) -> str | None:
        """Wallet of an active employee, or None if unknown, deleted or unbound."""
        ...


class SqliteEmployeeDirectory:
    """Reads the ``employees`` table of the shared database."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def wallet_address_for(self, employee_id: int) -> str | None:
        try:
            with self._db.reading() as conn:
                row = conn.execute(
                    "SELECT wallet_address FROM employees WHERE id = ? AND deleted_at IS NULL",
                    (employee_id,),
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to look up employee {employee_id}: {e}") from e

        if row is None:
            return None
        return row["wallet_address"] or None


class InMemoryEmployeeDirectory:
    """Dict-backed ``EmployeeDirectory``."""

    def __init__(self, wallets: dict[int, str | None] | None = None) -> None:
        self._lock = threading.Lock()
        self._wallets: dict[int, str | None] = dict(wallets or {})

    def bind(self, employee_id: int, wallet_address: str | None) -> None:
        with self._lock:
            self._wallets[employee_id] = wallet_address

    def remove(self, employee_id: int) -> None:
        with self._lock:
            self._wallets.pop(employee_id, None)

    def wallet_address_for(self, employee_id: int) -> str | None:
        with self._lock:
            return self._wallets.get(employee_id) or None


__all__ = ["EmployeeDirectory", "InMemoryEmployeeDirectory", "SqliteEmployeeDirectory"]
