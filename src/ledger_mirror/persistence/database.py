"""SQLite database shared by the audit, trustline and employee stores.

One connection per process, opened for use from worker threads; every
store operation runs under the connection lock as its own transaction.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

IN_MEMORY = ":memory:"


def to_db_timestamp(value: datetime) -> str:
    """UTC ISO-8601 with fixed microsecond precision, so text order is time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


SCHEMA_SQL = """
-- Immutable audit copies of finalized ledger transactions
CREATE TABLE IF NOT EXISTS audit_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tx_hash TEXT NOT NULL UNIQUE,
    source_account TEXT NOT NULL,
    payload TEXT NOT NULL,
    fetched_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_audit_records_source ON audit_records(source_account);
CREATE INDEX IF NOT EXISTS idx_audit_records_fetched_at ON audit_records(fetched_at);

-- Append-only: no updates, ever
CREATE TRIGGER IF NOT EXISTS trg_audit_records_immutable
BEFORE UPDATE ON audit_records
BEGIN
    SELECT RAISE(ABORT, 'audit records are immutable');
END;

-- Employee wallets are owned by the HR surface; created here so a fresh
-- database is usable on its own
CREATE TABLE IF NOT EXISTS employees (
    id INTEGER PRIMARY KEY,
    wallet_address TEXT,
    deleted_at TEXT
);

-- Per-employee trustline status
CREATE TABLE IF NOT EXISTS employee_trustlines (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    employee_id INTEGER NOT NULL,
    wallet_address TEXT NOT NULL,
    asset_code TEXT NOT NULL,
    asset_issuer TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'none'
        CHECK (status IN ('none', 'pending', 'established')),
    last_checked_at TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE (employee_id, asset_code, asset_issuer)
);

CREATE INDEX IF NOT EXISTS idx_employee_trustlines_wallet ON employee_trustlines(wallet_address);
CREATE INDEX IF NOT EXISTS idx_employee_trustlines_status ON employee_trustlines(status);
"""


class Database:
    """SQLite connection holder with schema bootstrap.

    Example:
        with Database("data/ledger_mirror.db") as db:
            audit_store = SqliteAuditStore(db)
            trustline_store = SqliteTrustlineStore(db)
    """

    def __init__(self, db_path: str | Path | None = None) -> None:
        """Open the database, creating file, directory and schema if needed.

        Args:
            db_path: Path to SQLite database file, or ``":memory:"``.
                Defaults to data/ledger_mirror.db
        """
        if db_path is None:
            db_path = Path.cwd() / "data" / "ledger_mirror.db"

        if str(db_path) != IN_MEMORY:
            db_path = Path(db_path)
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self.db_path = str(db_path)
        self._lock = threading.RLock()
        self._conn: sqlite3.Connection | None = None
        self._ensure_connection()
        self._ensure_schema()

    def _ensure_connection(self) -> None:
        """Ensure database connection is established."""
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            # Enable WAL mode for better concurrency
            self._conn.execute("PRAGMA journal_mode = WAL")
            # Sync only at critical moments (WAL provides durability)
            self._conn.execute("PRAGMA synchronous = NORMAL")
            # Wait up to 5 seconds if database is locked
            self._conn.execute("PRAGMA busy_timeout = 5000")

    def _ensure_schema(self) -> None:
        with self._lock:
            conn = self._get_conn()
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    def _get_conn(self) -> sqlite3.Connection:
        self._ensure_connection()
        assert self._conn is not None
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run statements atomically; commit on success, roll back on error."""
        with self._lock:
            conn = self._get_conn()
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()

    @contextmanager
    def reading(self) -> Iterator[sqlite3.Connection]:
        """Borrow the connection for read-only queries."""
        with self._lock:
            yield self._get_conn()

    def ping(self) -> None:
        """Run a trivial query; raises ``sqlite3.Error`` if unusable."""
        with self.reading() as conn:
            conn.execute("SELECT 1")

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> Database:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


__all__ = ["Database", "IN_MEMORY", "SCHEMA_SQL", "to_db_timestamp"]
