"""FastAPI application factory for the Ledger Mirror service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..errors import LedgerMirrorError
from ..ledger.builder import TrustTransactionBuilder
from ..ledger.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from ..ledger.gateway import HorizonGateway, LedgerGateway
from ..ledger.retry import RetryConfig
from ..persistence.audit_store import AuditStore, SqliteAuditStore
from ..persistence.database import Database
from ..persistence.employees import EmployeeDirectory, SqliteEmployeeDirectory
from ..persistence.trustline_store import SqliteTrustlineStore, TrustlineStore
from .audit import AuditService
from .config import LedgerMirrorConfig
from .middleware import CorrelationIdMiddleware, get_correlation_id
from .models import ErrorResponse
from .router import build_router
from .trustlines import TrustlineService

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 5


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for startup/shutdown."""
    logger.info("Starting Ledger Mirror service...")

    yield

    logger.info("Shutting down Ledger Mirror service...")
    gateway = getattr(app.state, "gateway", None)
    if isinstance(gateway, HorizonGateway):
        gateway.close()
    database: Database | None = getattr(app.state, "database", None)
    if database is not None:
        database.close()
    logger.info("Ledger Mirror service shutdown complete")


def build_gateway(config: LedgerMirrorConfig) -> HorizonGateway:
    """Horizon gateway wired with the configured timeout, retry and breaker."""
    return HorizonGateway(
        config.network,
        timeout=config.ledger_timeout_seconds,
        retry=RetryConfig(
            max_attempts=config.ledger_max_attempts,
            base_delay=config.ledger_retry_base_delay,
        ),
        breaker=CircuitBreaker(
            name="horizon",
            config=CircuitBreakerConfig(
                failure_threshold=config.breaker_failure_threshold,
                timeout_seconds=config.breaker_reset_seconds,
            ),
        ),
    )


async def _handle_service_error(request: Request, exc: LedgerMirrorError) -> JSONResponse:
    body = ErrorResponse(
        detail=exc.message,
        reason=exc.reason,
        retryable=exc.retryable,
        correlation_id=get_correlation_id(request),
    )
    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if exc.retryable else None
    if exc.status_code >= 500:
        logger.error(f"{exc.reason}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
        headers=headers,
    )


def create_app(
    config: LedgerMirrorConfig,
    *,
    gateway: LedgerGateway | None = None,
    database: Database | None = None,
    audit_store: AuditStore | None = None,
    trustline_store: TrustlineStore | None = None,
    employees: EmployeeDirectory | None = None,
) -> FastAPI:
    """Create and configure the Ledger Mirror FastAPI application.

    Any collaborator not supplied is built from ``config``: a Horizon gateway
    and SQLite stores on ``config.db_path``.
    """
    app = FastAPI(
        title="Ledger Mirror",
        description="Ledger audit trail and trustline reconciliation service",
        version=__version__,
        lifespan=_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)
    app.add_exception_handler(LedgerMirrorError, _handle_service_error)

    if gateway is None:
        gateway = build_gateway(config)
    if database is None and any(
        collaborator is None for collaborator in (audit_store, trustline_store, employees)
    ):
        database = Database(config.db_path)
    if audit_store is None:
        audit_store = SqliteAuditStore(database)
    if trustline_store is None:
        trustline_store = SqliteTrustlineStore(database)
    if employees is None:
        employees = SqliteEmployeeDirectory(database)

    audit_service = AuditService(
        gateway,
        audit_store,
        max_page_limit=config.max_page_limit,
    )
    trustline_service = TrustlineService(
        gateway,
        trustline_store,
        employees,
        TrustTransactionBuilder(
            config.network.network_passphrase,
            base_fee=config.base_fee,
            timeout_seconds=config.tx_timeout_seconds,
        ),
        asset_code=config.asset_code,
    )

    app.include_router(build_router(audit_service, trustline_service, config))

    app.state.config = config
    app.state.gateway = gateway
    app.state.database = database
    app.state.audit_service = audit_service
    app.state.trustline_service = trustline_service

    @app.get("/healthz")
    def healthz() -> dict[str, Any]:
        """Health check with database and ledger connectivity."""
        checks: dict[str, Any] = {}
        all_healthy = True

        if database is not None:
            try:
                database.ping()
                checks["database"] = {"status": "healthy"}
            except Exception as e:
                checks["database"] = {"status": "unhealthy", "error": str(e)}
                all_healthy = False
        else:
            checks["database"] = {"status": "not_configured"}

        ledger = gateway.ping()
        checks["ledger"] = {
            "status": "healthy" if ledger.connected else "unhealthy",
            "network": ledger.network,
            "horizon_url": ledger.horizon_url,
            "latency_ms": round(ledger.latency_ms, 2),
            "ledger_sequence": ledger.ledger_sequence,
        }
        if not ledger.connected:
            checks["ledger"]["error"] = ledger.error
            all_healthy = False

        return {
            "status": "ok" if all_healthy else "degraded",
            "service": "ledger-mirror",
            "version": __version__,
            "checks": checks,
        }

    @app.get("/ready")
    def ready() -> dict[str, Any]:
        """Readiness probe - true when the local store answers."""
        is_ready = True
        if database is not None:
            try:
                database.ping()
            except Exception:
                is_ready = False
        return {"ready": is_ready, "service": "ledger-mirror"}

    return app


def create_app_from_env() -> FastAPI:
    """Create app using environment variable configuration."""
    return create_app(LedgerMirrorConfig.from_env())


__all__ = ["build_gateway", "create_app", "create_app_from_env"]
