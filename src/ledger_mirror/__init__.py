"""
Ledger Mirror - Ledger audit trail and trustline reconciliation service.

Mirrors finalized Stellar transactions into an immutable local audit trail
and keeps per-employee trustline status reconciled with the live ledger.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
