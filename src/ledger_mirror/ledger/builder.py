"""Unsigned changeTrust transaction construction.

Pure: takes an account snapshot already loaded from the ledger and produces
the base64 XDR envelope a wallet signs to start accepting an asset.
"""

from __future__ import annotations

from stellar_sdk import Account, Asset, TransactionBuilder

from ..errors import ValidationError
from .types import AccountSnapshot

DEFAULT_BASE_FEE = 100  # stroops
DEFAULT_TX_TIMEOUT_SECONDS = 300


class TrustTransactionBuilder:
    """Builds single-operation trust transactions for one network."""

    def __init__(
        self,
        network_passphrase: str,
        *,
        base_fee: int = DEFAULT_BASE_FEE,
        timeout_seconds: int = DEFAULT_TX_TIMEOUT_SECONDS,
    ):
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.network_passphrase = network_passphrase
        self.base_fee = base_fee
        self.timeout_seconds = timeout_seconds

    def build_trust_operation(
        self,
        account: AccountSnapshot,
        asset_code: str,
        asset_issuer: str,
    ) -> str:
        """Build an unsigned changeTrust envelope sourced from ``account``.

        The transaction uses the next sequence number of the account, bids
        ``base_fee`` and expires ``timeout_seconds`` from now.

        Returns:
            Base64 XDR of the unsigned transaction envelope

        Raises:
            ValidationError: If the asset code or issuer is malformed
        """
        try:
            asset = Asset(asset_code, asset_issuer)
            source = Account(account.account_id, account.sequence)
        except ValueError as e:
            raise ValidationError(f"Invalid asset or account: {e}") from e

        envelope = (
            TransactionBuilder(
                source_account=source,
                network_passphrase=self.network_passphrase,
                base_fee=self.base_fee,
            )
            .append_change_trust_op(asset=asset, source=account.account_id)
            .set_timeout(self.timeout_seconds)
            .build()
        )
        return envelope.to_xdr()


__all__ = [
    "DEFAULT_BASE_FEE",
    "DEFAULT_TX_TIMEOUT_SECONDS",
    "TrustTransactionBuilder",
]
