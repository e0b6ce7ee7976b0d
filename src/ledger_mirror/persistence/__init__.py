"""Persistence layer - audit records, trustline status and employee wallets."""

from .audit_store import AuditStore, InMemoryAuditStore, SqliteAuditStore
from .database import Database
from .employees import EmployeeDirectory, InMemoryEmployeeDirectory, SqliteEmployeeDirectory
from .records import AuditRecord, TrustlineRecord, TrustlineStatus
from .trustline_store import InMemoryTrustlineStore, SqliteTrustlineStore, TrustlineStore

__all__ = [
    "AuditRecord",
    "AuditStore",
    "Database",
    "EmployeeDirectory",
    "InMemoryAuditStore",
    "InMemoryEmployeeDirectory",
    "InMemoryTrustlineStore",
    "SqliteAuditStore",
    "SqliteEmployeeDirectory",
    "SqliteTrustlineStore",
    "TrustlineRecord",
    "TrustlineStatus",
    "TrustlineStore",
]
