"""Error taxonomy shared by the gateway, stores and services.

Every failure that crosses a service boundary is one of these, so callers
branch on meaning instead of digging HTTP status codes out of client errors.
"""

from __future__ import annotations


class LedgerMirrorError(Exception):
    """Base exception for all labeled service errors."""

    status_code: int = 500
    reason: str = "internal_error"
    retryable: bool = False

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(LedgerMirrorError):
    """Malformed input: bad hash, bad address, bad pagination bounds."""

    status_code = 400
    reason = "validation_error"


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class NotFoundError(LedgerMirrorError):
    """An entity is absent, either locally or on the ledger."""

    status_code = 404
    reason = "not_found"


class TransactionNotFound(NotFoundError):
    """The ledger has no finalized transaction for the hash."""

    reason = "transaction_not_found"

    def __init__(self, tx_hash: str):
        super().__init__(f"Transaction {tx_hash} not found on the ledger.")
        self.tx_hash = tx_hash


class AccountNotFound(NotFoundError):
    """The address has never been funded on the ledger."""

    reason = "account_not_found"

    def __init__(self, address: str):
        super().__init__(f"Account {address} not found on the ledger.")
        self.address = address


class AuditRecordNotFound(NotFoundError):
    """No audit record is stored for the hash."""

    reason = "audit_record_not_found"

    def __init__(self, tx_hash: str):
        super().__init__(f"Audit record {tx_hash} not found. Store it first.")
        self.tx_hash = tx_hash


class EmployeeNotFound(NotFoundError):
    """The employee does not exist, has no wallet, or has no trustline record."""

    reason = "employee_not_found"

    def __init__(self, employee_id: int, message: str | None = None):
        super().__init__(message or f"No trustline record for employee {employee_id}.")
        self.employee_id = employee_id


# ---------------------------------------------------------------------------
# Ledger / storage failures
# ---------------------------------------------------------------------------


class LedgerUnavailable(LedgerMirrorError):
    """The ledger query failed for a reason other than not-found.

    No judgment about the data was made; the caller may retry.
    """

    status_code = 503
    reason = "ledger_unavailable"
    retryable = True


class StorageError(LedgerMirrorError):
    """The local store failed."""

    status_code = 500
    reason = "storage_error"


class ConflictIgnored(LedgerMirrorError):
    """A duplicate insert hit a uniqueness constraint.

    Internal only: services resolve it by returning the existing record.
    """

    status_code = 409
    reason = "conflict"

    def __init__(self, key: str):
        super().__init__(f"Record {key} already exists.")
        self.key = key


__all__ = [
    "AccountNotFound",
    "AuditRecordNotFound",
    "ConflictIgnored",
    "EmployeeNotFound",
    "LedgerMirrorError",
    "LedgerUnavailable",
    "NotFoundError",
    "StorageError",
    "TransactionNotFound",
    "ValidationError",
]
