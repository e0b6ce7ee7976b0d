"""FastAPI router for the Ledger Mirror service.

Implements the API endpoints for:
- Audit trail (/audit/*)
- Trustline reconciliation (/trustlines/*)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Query, status

from ..errors import AuditRecordNotFound, EmployeeNotFound, ValidationError
from ..persistence.records import AuditRecord, TrustlineRecord
from .config import LedgerMirrorConfig
from .models import (
    AuditPage,
    PromptRequest,
    RefreshRequest,
    TrustlineCheckResponse,
    TrustlinePrompt,
    VerifyResponse,
)

if TYPE_CHECKING:
    from .audit import AuditService
    from .trustlines import TrustlineService


def build_router(
    audit: AuditService,
    trustlines: TrustlineService,
    config: LedgerMirrorConfig,
) -> APIRouter:
    """Build the Ledger Mirror API router."""
    router = APIRouter()

    def resolve_issuer(asset_issuer: str | None) -> str:
        issuer = asset_issuer or config.asset_issuer
        if not issuer:
            raise ValidationError("assetIssuer is required.")
        return issuer

    # -----------------------------------------------------------------------
    # Audit Endpoints
    # -----------------------------------------------------------------------

    @router.get("/audit", response_model=AuditPage)
    def list_audit_records(
        page: int = Query(default=1),
        limit: int = Query(default=config.default_page_limit),
        source_account: str | None = Query(default=None, alias="sourceAccount"),
    ) -> AuditPage:
        """List audit records with pagination and optional source filter."""
        return audit.list(page=page, limit=limit, source_account=source_account)

    @router.post(
        "/audit/{tx_hash}",
        response_model=AuditRecord,
        status_code=status.HTTP_201_CREATED,
    )
    def create_audit_record(tx_hash: str) -> AuditRecord:
        """Fetch a transaction from the ledger and store an immutable record."""
        return audit.fetch_and_store(tx_hash)

    @router.get("/audit/{tx_hash}", response_model=AuditRecord)
    def get_audit_record(tx_hash: str) -> AuditRecord:
        """Get a stored audit record by transaction hash."""
        record = audit.get_by_hash(tx_hash)
        if record is None:
            raise AuditRecordNotFound(tx_hash)
        return record

    @router.get("/audit/{tx_hash}/verify", response_model=VerifyResponse)
    def verify_audit_record(tx_hash: str) -> VerifyResponse:
        """Re-fetch from the ledger and compare with the stored record."""
        result = audit.verify(tx_hash)
        if result.record is None:
            raise AuditRecordNotFound(tx_hash)
        return VerifyResponse(
            tx_hash=result.record.tx_hash,
            verified=result.verified,
            record=result.record,
            mismatches=result.mismatches,
        )

    # -----------------------------------------------------------------------
    # Trustline Endpoints
    # -----------------------------------------------------------------------

    @router.get("/trustlines/check/{wallet_address}", response_model=TrustlineCheckResponse)
    def check_wallet(
        wallet_address: str,
        asset_issuer: str | None = Query(default=None, alias="assetIssuer"),
        asset_code: str | None = Query(default=None, alias="assetCode"),
    ) -> TrustlineCheckResponse:
        """Detect trustline status for any wallet on the ledger."""
        issuer = resolve_issuer(asset_issuer)
        code = asset_code or trustlines.asset_code
        check = trustlines.check_trustline(wallet_address, code, issuer)
        return TrustlineCheckResponse(
            exists=check.exists,
            balance=check.balance,
            wallet_address=wallet_address,
            asset_code=code,
            asset_issuer=issuer,
        )

    @router.get("/trustlines/employees/{employee_id}", response_model=TrustlineRecord)
    def get_employee_status(employee_id: int) -> TrustlineRecord:
        """Get stored trustline status for an employee."""
        record = trustlines.get_employee_trustline(employee_id)
        if record is None:
            raise EmployeeNotFound(employee_id)
        return record

    @router.post(
        "/trustlines/employees/{employee_id}/refresh",
        response_model=TrustlineRecord,
    )
    def refresh_employee(
        employee_id: int,
        request: RefreshRequest | None = None,
    ) -> TrustlineRecord:
        """Re-check the ledger and update the stored trustline status."""
        issuer = resolve_issuer(request.asset_issuer if request else None)
        record = trustlines.refresh_employee_trustline(employee_id, issuer)
        if record is None:
            raise EmployeeNotFound(
                employee_id,
                f"Employee {employee_id} not found or has no wallet address.",
            )
        return record

    @router.post("/trustlines/prompt", response_model=TrustlinePrompt)
    def prompt_trustline(request: PromptRequest) -> TrustlinePrompt:
        """Build an unsigned changeTrust transaction and mark the trustline pending."""
        return trustlines.prompt(
            request.employee_id,
            request.wallet_address,
            resolve_issuer(request.asset_issuer),
        )

    return router


__all__ = ["build_router"]
