"""Service layer - reconciliation services and the FastAPI application."""

from .app import create_app
from .audit import AuditService
from .config import LedgerMirrorConfig
from .trustlines import TrustlineService

__all__ = ["AuditService", "LedgerMirrorConfig", "TrustlineService", "create_app"]
