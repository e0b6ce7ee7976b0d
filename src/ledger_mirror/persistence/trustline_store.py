"""Trustline store - one status record per (employee, asset code, issuer)."""

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime
from typing import Protocol

from ..errors import StorageError
from .database import Database, to_db_timestamp
from .records import TrustlineRecord, TrustlineStatus


class TrustlineStore(Protocol):
    """Storage contract for trustline status records."""

    def upsert(self, record: TrustlineRecord) -> TrustlineRecord:
        """Insert, or on natural-key conflict overwrite wallet, status and
        last-checked time. Returns the stored record.
        """
        ...

    def get_by_employee(self, employee_id: int) -> TrustlineRecord | None:
        """Most recently checked record for the employee, if any."""
        ...

    def list_for_employee(self, employee_id: int) -> list[TrustlineRecord]:
        """All records for the employee, most recently checked first."""
        ...


class SqliteTrustlineStore:
    """``TrustlineStore`` on the shared SQLite database."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def upsert(self, record: TrustlineRecord) -> TrustlineRecord:
        try:
            with self._db.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO employee_trustlines
                        (employee_id, wallet_address, asset_code, asset_issuer,
                         status, last_checked_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(employee_id, asset_code, asset_issuer) DO UPDATE SET
                        wallet_address = excluded.wallet_address,
                        status = excluded.status,
                        last_checked_at = excluded.last_checked_at,
                        updated_at = datetime('now')
                    """,
                    (
                        record.employee_id,
                        record.wallet_address,
                        record.asset_code,
                        record.asset_issuer,
                        record.status.value,
                        to_db_timestamp(record.last_checked_at),
                    ),
                )
                row = conn.execute(
                    """
                    SELECT employee_id, wallet_address, asset_code, asset_issuer,
                           status, last_checked_at
                    FROM employee_trustlines
                    WHERE employee_id = ? AND asset_code = ? AND asset_issuer = ?
                    """,
                    record.natural_key,
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to upsert trustline for employee {record.employee_id}: {e}"
            ) from e

        return self._row_to_record(row)

    def get_by_employee(self, employee_id: int) -> TrustlineRecord | None:
        records = self.list_for_employee(employee_id)
        return records[0] if records else None

    def list_for_employee(self, employee_id: int) -> list[TrustlineRecord]:
        try:
            with self._db.reading() as conn:
                rows = conn.execute(
                    """
                    SELECT employee_id, wallet_address, asset_code, asset_issuer,
                           status, last_checked_at
                    FROM employee_trustlines
                    WHERE employee_id = ?
                    ORDER BY last_checked_at DESC, id DESC
                    """,
                    (employee_id,),
                ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to read trustlines for employee {employee_id}: {e}"
            ) from e

        return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> TrustlineRecord:
        return TrustlineRecord(
            employee_id=row["employee_id"],
            wallet_address=row["wallet_address"],
            asset_code=row["asset_code"],
            asset_issuer=row["asset_issuer"],
            status=TrustlineStatus(row["status"]),
            last_checked_at=datetime.fromisoformat(row["last_checked_at"]),
        )


class InMemoryTrustlineStore:
    """Process-local ``TrustlineStore`` for tests and ephemeral runs."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[tuple[int, str, str], tuple[int, TrustlineRecord]] = {}
        self._next_id = 0

    def upsert(self, record: TrustlineRecord) -> TrustlineRecord:
        stored = record.model_copy()
        with self._lock:
            existing = self._records.get(record.natural_key)
            if existing is None:
                self._next_id += 1
                row_id = self._next_id
            else:
                row_id = existing[0]
            self._records[record.natural_key] = (row_id, stored)
        return stored.model_copy()

    def get_by_employee(self, employee_id: int) -> TrustlineRecord | None:
        records = self.list_for_employee(employee_id)
        return records[0] if records else None

    def list_for_employee(self, employee_id: int) -> list[TrustlineRecord]:
        with self._lock:
            entries = [
                entry for key, entry in self._records.items() if key[0] == employee_id
            ]
        entries.sort(key=lambda e: (e[1].last_checked_at, e[0]), reverse=True)
        return [record.model_copy() for _, record in entries]


__all__ = ["InMemoryTrustlineStore", "SqliteTrustlineStore", "TrustlineStore"]
