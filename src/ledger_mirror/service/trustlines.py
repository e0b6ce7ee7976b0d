"""Trustline reconciliation service.

Status per (employee, asset) moves ``none <-> pending -> {established, none}``.
``none`` and ``established`` are what the ledger last said; ``pending`` only
records that a sign request went out, and the next refresh replaces it with
ledger truth.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from ..errors import AccountNotFound
from ..ledger.builder import TrustTransactionBuilder
from ..ledger.gateway import LedgerGateway
from ..persistence.employees import EmployeeDirectory
from ..persistence.records import TrustlineRecord, TrustlineStatus
from ..persistence.trustline_store import TrustlineStore
from .logging import get_logger
from .models import TrustlineCheck, TrustlinePrompt
from .validation import require_address, require_asset_code, require_employee_id

logger = get_logger(__name__)

DEFAULT_ASSET_CODE = "ORGUSD"


class TrustlineService:
    """Check, refresh and prompt employee trustlines."""

    def __init__(
        self,
        gateway: LedgerGateway,
        store: TrustlineStore,
        employees: EmployeeDirectory,
        builder: TrustTransactionBuilder,
        *,
        asset_code: str = DEFAULT_ASSET_CODE,
        time_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._employees = employees
        self._builder = builder
        self.asset_code = require_asset_code(asset_code)
        self._time_provider = time_provider or (lambda: datetime.now(timezone.utc))

    def check_trustline(
        self,
        wallet_address: str,
        asset_code: str,
        asset_issuer: str,
    ) -> TrustlineCheck:
        """Ask the ledger whether ``wallet_address`` trusts the asset.

        An unfunded wallet has no trustlines, so it reports ``exists=False``.

        Raises:
            ValidationError: Malformed address or asset
            LedgerUnavailable: The ledger query failed
        """
        require_address(wallet_address, "walletAddress")
        require_asset_code(asset_code)
        require_address(asset_issuer, "assetIssuer")

        try:
            account = self._gateway.load_account(wallet_address)
        except AccountNotFound:
            logger.info("trustline_check_unfunded", wallet_address=wallet_address)
            return TrustlineCheck(exists=False)

        entry = account.find_balance(asset_code, asset_issuer)
        if entry is None:
            return TrustlineCheck(exists=False)
        return TrustlineCheck(exists=True, balance=entry.balance)

    def refresh_employee_trustline(
        self,
        employee_id: int,
        asset_issuer: str,
    ) -> TrustlineRecord | None:
        """Reconcile the employee's stored status with the ledger.

        Returns None when the employee is unknown or has no wallet bound.
        Otherwise the stored status is overwritten with what the ledger
        reports, clearing any ``pending`` state.
        """
        require_employee_id(employee_id)
        require_address(asset_issuer, "assetIssuer")

        wallet_address = self._employees.wallet_address_for(employee_id)
        if not wallet_address:
            logger.info("trustline_refresh_skipped", employee_id=employee_id)
            return None

        check = self.check_trustline(wallet_address, self.asset_code, asset_issuer)
        status = TrustlineStatus.ESTABLISHED if check.exists else TrustlineStatus.NONE

        record = self._store.upsert(
            TrustlineRecord(
                employee_id=employee_id,
                wallet_address=wallet_address,
                asset_code=self.asset_code,
                asset_issuer=asset_issuer,
                status=status,
                last_checked_at=self._time_provider(),
            )
        )
        logger.info(
            "trustline_refreshed",
            employee_id=employee_id,
            wallet_address=wallet_address,
            status=record.status.value,
        )
        return record

    def get_employee_trustline(self, employee_id: int) -> TrustlineRecord | None:
        """Local lookup only; never touches the ledger."""
        return self._store.get_by_employee(require_employee_id(employee_id))

    def build_trustline_transaction(
        self,
        wallet_address: str,
        asset_code: str,
        asset_issuer: str,
    ) -> str:
        """Build the unsigned changeTrust XDR for the wallet to sign.

        Raises:
            AccountNotFound: The wallet is unfunded, so no transaction can be
                sourced from it
            LedgerUnavailable: The ledger query failed
        """
        require_address(wallet_address, "walletAddress")
        require_asset_code(asset_code)
        require_address(asset_issuer, "assetIssuer")

        account = self._gateway.load_account(wallet_address)
        return self._builder.build_trust_operation(account, asset_code, asset_issuer)

    def mark_pending(
        self,
        employee_id: int,
        wallet_address: str,
        asset_issuer: str,
    ) -> TrustlineRecord:
        """Record that a sign prompt was just issued. No ledger call."""
        require_employee_id(employee_id)
        require_address(wallet_address, "walletAddress")
        require_address(asset_issuer, "assetIssuer")

        record = self._store.upsert(
            TrustlineRecord(
                employee_id=employee_id,
                wallet_address=wallet_address,
                asset_code=self.asset_code,
                asset_issuer=asset_issuer,
                status=TrustlineStatus.PENDING,
                last_checked_at=self._time_provider(),
            )
        )
        logger.info("trustline_marked_pending", employee_id=employee_id)
        return record

    def prompt(
        self,
        employee_id: int,
        wallet_address: str,
        asset_issuer: str,
    ) -> TrustlinePrompt:
        """Build the sign request, then mark the trustline pending.

        Nothing is marked if the transaction cannot be built.
        """
        require_employee_id(employee_id)
        xdr = self.build_trustline_transaction(wallet_address, self.asset_code, asset_issuer)
        record = self.mark_pending(employee_id, wallet_address, asset_issuer)
        return TrustlinePrompt(
            xdr=xdr,
            network_passphrase=self._builder.network_passphrase,
            record=record,
        )


__all__ = ["DEFAULT_ASSET_CODE", "TrustlineService"]
