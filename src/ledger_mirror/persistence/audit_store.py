"""Audit store - insert-once persistence for audit records."""

from __future__ import annotations

import json
import sqlite3
import threading
from datetime import datetime
from typing import Protocol

from ..errors import ConflictIgnored, StorageError
from .database import Database, to_db_timestamp
from .records import AuditRecord


class AuditStore(Protocol):
    """Storage contract for immutable audit records."""

    def insert(self, record: AuditRecord) -> None:
        """Store a new record.

        Raises:
            ConflictIgnored: A record with the same hash already exists
            StorageError: The store failed
        """
        ...

    def get(self, tx_hash: str) -> AuditRecord | None:
        ...

    def list_page(
        self,
        offset: int,
        limit: int,
        source_account: str | None = None,
    ) -> tuple[list[AuditRecord], int]:
        """Return one page, newest first, and the total matching count."""
        ...


class SqliteAuditStore:
    """``AuditStore`` on the shared SQLite database."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def insert(self, record: AuditRecord) -> None:
        try:
            with self._db.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO audit_records (tx_hash, source_account, payload, fetched_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        record.tx_hash,
                        record.source_account,
                        json.dumps(record.payload, sort_keys=True, separators=(",", ":")),
                        to_db_timestamp(record.fetched_at),
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise ConflictIgnored(record.tx_hash) from e
        except sqlite3.Error as e:
            raise StorageError(f"Failed to store audit record {record.tx_hash}: {e}") from e

    def get(self, tx_hash: str) -> AuditRecord | None:
        try:
            with self._db.reading() as conn:
                row = conn.execute(
                    """
                    SELECT tx_hash, source_account, payload, fetched_at
                    FROM audit_records
                    WHERE tx_hash = ?
                    """,
                    (tx_hash,),
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read audit record {tx_hash}: {e}") from e

        return self._row_to_record(row) if row is not None else None

    def list_page(
        self,
        offset: int,
        limit: int,
        source_account: str | None = None,
    ) -> tuple[list[AuditRecord], int]:
        where = "WHERE source_account = ?" if source_account is not None else ""
        params: tuple = (source_account,) if source_account is not None else ()

        try:
            with self._db.reading() as conn:
                total = conn.execute(
                    f"SELECT COUNT(*) AS count FROM audit_records {where}",
                    params,
                ).fetchone()["count"]
                rows = conn.execute(
                    f"""
                    SELECT tx_hash, source_account, payload, fetched_at
                    FROM audit_records
                    {where}
                    ORDER BY fetched_at DESC, id DESC
                    LIMIT ? OFFSET ?
                    """,
                    params + (limit, offset),
                ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to list audit records: {e}") from e

        return [self._row_to_record(row) for row in rows], total

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> AuditRecord:
        return AuditRecord(
            tx_hash=row["tx_hash"],
            source_account=row["source_account"],
            payload=json.loads(row["payload"]),
            fetched_at=datetime.fromisoformat(row["fetched_at"]),
        )


class InMemoryAuditStore:
    """Process-local ``AuditStore`` for tests and ephemeral runs."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, tuple[int, AuditRecord]] = {}
        self._next_id = 0

    def insert(self, record: AuditRecord) -> None:
        with self._lock:
            if record.tx_hash in self._records:
                raise ConflictIgnored(record.tx_hash)
            self._next_id += 1
            self._records[record.tx_hash] = (self._next_id, record)

    def get(self, tx_hash: str) -> AuditRecord | None:
        with self._lock:
            entry = self._records.get(tx_hash)
        return entry[1] if entry else None

    def list_page(
        self,
        offset: int,
        limit: int,
        source_account: str | None = None,
    ) -> tuple[list[AuditRecord], int]:
        with self._lock:
            entries = [
                entry
                for entry in self._records.values()
                if source_account is None or entry[1].source_account == source_account
            ]
        entries.sort(key=lambda e: (e[1].fetched_at, e[0]), reverse=True)
        return [record for _, record in entries[offset:offset + limit]], len(entries)

    def __len__(self) -> int:
        return len(self._records)


__all__ = ["AuditStore", "InMemoryAuditStore", "SqliteAuditStore"]
