"""Audit trail service - mirror finalized ledger transactions locally.

Stored records are never rewritten. Re-auditing a hash returns the record
already on file, and verification reports drift instead of repairing it.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Callable

from ..errors import ConflictIgnored, StorageError
from ..ledger.gateway import LedgerGateway
from ..persistence.audit_store import AuditStore
from ..persistence.records import AuditRecord
from .logging import get_logger
from .models import AuditPage, VerificationResult
from .validation import normalize_tx_hash, require_address, require_page_bounds

logger = get_logger(__name__)

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100


class AuditService:
    """Fetch, store, list and verify audit records.

    Example:
        service = AuditService(gateway, SqliteAuditStore(db))
        record = service.fetch_and_store(tx_hash)
        result = service.verify(tx_hash)
        if not result.verified:
            print(result.mismatches)
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        store: AuditStore,
        *,
        max_page_limit: int = MAX_PAGE_LIMIT,
        time_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._max_page_limit = max_page_limit
        self._time_provider = time_provider or (lambda: datetime.now(timezone.utc))

    def fetch_and_store(self, tx_hash: str) -> AuditRecord:
        """Capture the ledger's copy of a transaction, once.

        Raises:
            ValidationError: Malformed hash
            TransactionNotFound: The ledger has no such finalized transaction
            LedgerUnavailable: The ledger query failed
        """
        tx_hash = normalize_tx_hash(tx_hash)

        existing = self._store.get(tx_hash)
        if existing is not None:
            logger.info("audit_record_exists", tx_hash=tx_hash)
            return existing

        transaction = self._gateway.fetch_transaction(tx_hash)
        record = AuditRecord(
            tx_hash=tx_hash,
            source_account=transaction.source_account,
            payload=transaction.to_payload(),
            fetched_at=self._time_provider(),
        )

        try:
            self._store.insert(record)
        except ConflictIgnored:
            # Another request stored this hash between our lookup and insert
            logger.info("audit_record_insert_conflict", tx_hash=tx_hash)
        else:
            logger.info(
                "audit_record_stored",
                tx_hash=tx_hash,
                source_account=record.source_account,
                ledger=transaction.ledger,
            )

        # Always answer with the stored form so repeat calls serialize identically
        stored = self._store.get(tx_hash)
        if stored is None:
            raise StorageError(f"Audit record {tx_hash} was written but cannot be read back")
        return stored

    def get_by_hash(self, tx_hash: str) -> AuditRecord | None:
        """Local lookup only; never touches the ledger."""
        return self._store.get(normalize_tx_hash(tx_hash))

    def list(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        source_account: str | None = None,
    ) -> AuditPage:
        """List stored records, most recently audited first.

        Raises:
            ValidationError: page < 1, limit outside 1..max, or bad address
        """
        require_page_bounds(page, limit, self._max_page_limit)
        if source_account is not None:
            require_address(source_account, "sourceAccount")

        records, total = self._store.list_page(
            offset=(page - 1) * limit,
            limit=limit,
            source_account=source_account,
        )
        total_pages = math.ceil(total / limit)
        return AuditPage(
            data=records,
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_more=page < total_pages,
        )

    def verify(self, tx_hash: str) -> VerificationResult:
        """Re-fetch a stored transaction and compare it field by field.

        Returns ``record=None`` if nothing is stored for the hash; the ledger
        is not consulted in that case.

        Raises:
            TransactionNotFound: The record exists locally but the ledger no
                longer serves the transaction
            LedgerUnavailable: The ledger query failed
        """
        tx_hash = normalize_tx_hash(tx_hash)

        record = self._store.get(tx_hash)
        if record is None:
            return VerificationResult(verified=False, record=None)

        live = self._gateway.fetch_transaction(tx_hash)
        mismatches = diff_payloads(record.payload, live.to_payload())

        if mismatches:
            logger.warning(
                "audit_verification_drift",
                tx_hash=tx_hash,
                mismatches=mismatches,
            )
        else:
            logger.info("audit_verification_passed", tx_hash=tx_hash)

        return VerificationResult(
            verified=not mismatches,
            record=record,
            mismatches=mismatches,
        )


def diff_payloads(stored: dict[str, Any], live: dict[str, Any]) -> list[str]:
    """Names of fields that differ, including fields present on one side only."""
    missing = object()
    return sorted(
        key
        for key in stored.keys() | live.keys()
        if stored.get(key, missing) != live.get(key, missing)
    )


__all__ = ["AuditService", "DEFAULT_PAGE_LIMIT", "MAX_PAGE_LIMIT", "diff_payloads"]
