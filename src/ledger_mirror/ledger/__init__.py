"""Ledger access layer - Horizon queries, value types and transaction building."""

from .builder import TrustTransactionBuilder
from .gateway import HorizonGateway, LedgerGateway
from .network import NetworkConfig, StellarNetwork
from .types import AccountSnapshot, BalanceEntry, ConnectionStatus, LedgerTransaction

__all__ = [
    "AccountSnapshot",
    "BalanceEntry",
    "ConnectionStatus",
    "HorizonGateway",
    "LedgerGateway",
    "LedgerTransaction",
    "NetworkConfig",
    "StellarNetwork",
    "TrustTransactionBuilder",
]
