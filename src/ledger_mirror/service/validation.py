"""Input checks applied at the service boundary."""

from __future__ import annotations

import re

from stellar_sdk import StrKey

from ..errors import ValidationError

_TX_HASH_RE = re.compile(r"[0-9a-fA-F]{64}")
_ASSET_CODE_RE = re.compile(r"[A-Za-z0-9]{1,12}")

MAX_DB_INTEGER = 2**63 - 1


def normalize_tx_hash(tx_hash: str) -> str:
    """Return the lowercase hash, or raise if it is not 64 hex characters."""
    if not isinstance(tx_hash, str) or not _TX_HASH_RE.fullmatch(tx_hash):
        raise ValidationError("Invalid transaction hash: expected 64 hex characters.")
    return tx_hash.lower()


def require_address(address: str, field: str = "address") -> str:
    """Raise unless ``address`` is a valid ed25519 ledger address (G...)."""
    if not isinstance(address, str) or not StrKey.is_valid_ed25519_public_key(address):
        raise ValidationError(f"Invalid {field}: expected a 56-character ledger address.")
    return address


def require_asset_code(asset_code: str) -> str:
    if not isinstance(asset_code, str) or not _ASSET_CODE_RE.fullmatch(asset_code):
        raise ValidationError("Invalid asset code: expected 1-12 alphanumeric characters.")
    return asset_code


def require_page_bounds(page: int, limit: int, max_limit: int) -> None:
    if page < 1:
        raise ValidationError("page must be at least 1.")
    if limit < 1 or limit > max_limit:
        raise ValidationError(f"limit must be between 1 and {max_limit}.")
    # SQLite integers are signed 64-bit; OFFSET must fit
    if (page - 1) * limit > MAX_DB_INTEGER:
        raise ValidationError("page is beyond the last possible record.")


def require_employee_id(employee_id: int) -> int:
    if employee_id < 1 or employee_id > MAX_DB_INTEGER:
        raise ValidationError(f"employeeId must be between 1 and {MAX_DB_INTEGER}.")
    return employee_id


__all__ = [
    "MAX_DB_INTEGER",
    "normalize_tx_hash",
    "require_address",
    "require_asset_code",
    "require_employee_id",
    "require_page_bounds",
]
