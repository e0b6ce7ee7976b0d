"""Persisted record types."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TrustlineStatus(str, Enum):
    """Last reconciled trustline state for an (employee, asset) pair.

    ``pending`` is local bookkeeping only: a sign request went out and the
    ledger has not been re-checked since.
    """

    NONE = "none"
    PENDING = "pending"
    ESTABLISHED = "established"


class AuditRecord(BaseModel):
    """Immutable local copy of a finalized ledger transaction."""

    model_config = ConfigDict(frozen=True)

    tx_hash: str = Field(min_length=64, max_length=64)
    source_account: str
    payload: dict[str, Any]
    fetched_at: datetime


class TrustlineRecord(BaseModel):
    """Trustline status of one employee wallet for one asset."""

    employee_id: int
    wallet_address: str
    asset_code: str
    asset_issuer: str
    status: TrustlineStatus
    last_checked_at: datetime

    @property
    def natural_key(self) -> tuple[int, str, str]:
        return (self.employee_id, self.asset_code, self.asset_issuer)


__all__ = ["AuditRecord", "TrustlineRecord", "TrustlineStatus"]
