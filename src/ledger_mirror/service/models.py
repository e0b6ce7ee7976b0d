"""Pydantic models backing the Ledger Mirror API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..persistence.records import AuditRecord, TrustlineRecord
from .validation import MAX_DB_INTEGER


# ---------------------------------------------------------------------------
# Audit Models
# ---------------------------------------------------------------------------


class AuditPage(BaseModel):
    """One page of audit records, newest first."""

    data: list[AuditRecord]
    total: int = Field(description="Records matching the filter, across all pages")
    page: int
    limit: int
    total_pages: int
    has_more: bool


class VerificationResult(BaseModel):
    """Outcome of re-checking a stored record against the ledger.

    ``record`` is None when nothing was stored for the hash.
    """

    verified: bool
    record: AuditRecord | None = None
    mismatches: list[str] = Field(default_factory=list)


class VerifyResponse(VerificationResult):
    """Verification result as returned over HTTP."""

    tx_hash: str


# ---------------------------------------------------------------------------
# Trustline Models
# ---------------------------------------------------------------------------


class TrustlineCheck(BaseModel):
    """Whether a wallet currently trusts an asset.

    ``balance`` is the ledger's decimal string, passed through untouched.
    """

    exists: bool
    balance: str | None = None


class TrustlineCheckResponse(TrustlineCheck):
    """Trustline check as returned over HTTP."""

    wallet_address: str
    asset_code: str
    asset_issuer: str


class TrustlinePrompt(BaseModel):
    """Unsigned changeTrust transaction plus the pending record it opened."""

    xdr: str = Field(description="Base64 XDR of the unsigned transaction envelope")
    network_passphrase: str
    record: TrustlineRecord


class RefreshRequest(BaseModel):
    """Body of POST /trustlines/employees/{employee_id}/refresh."""

    model_config = ConfigDict(populate_by_name=True)

    asset_issuer: str | None = Field(default=None, alias="assetIssuer")


class PromptRequest(BaseModel):
    """Body of POST /trustlines/prompt."""

    model_config = ConfigDict(populate_by_name=True)

    employee_id: int = Field(alias="employeeId", ge=1, le=MAX_DB_INTEGER)
    wallet_address: str = Field(alias="walletAddress")
    asset_issuer: str | None = Field(default=None, alias="assetIssuer")


# ---------------------------------------------------------------------------
# Error Models
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    reason: str | None = None
    retryable: bool = False
    correlation_id: str | None = None


__all__ = [
    "AuditPage",
    "ErrorResponse",
    "PromptRequest",
    "RefreshRequest",
    "TrustlineCheck",
    "TrustlineCheckResponse",
    "TrustlinePrompt",
    "VerificationResult",
    "VerifyResponse",
]
