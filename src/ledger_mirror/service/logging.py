"""structlog setup for the Ledger Mirror service.

Every event carries the service name plus whatever request context the
middleware bound (correlation id, tx hash). Output is one JSON object per
line unless the process is attached to a terminal.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

# Loggers whose INFO chatter duplicates our own request logging
_MUTED_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def _wants_json(json_output: bool | None) -> bool:
    if json_output is not None:
        return json_output
    return os.getenv("MIRROR_LOG_JSON") == "1" or not sys.stderr.isatty()


def _service_stamp(service_name: str):
    def stamp(_logger: Any, _method: str, event_dict: dict) -> dict:
        event_dict.setdefault("service", service_name)
        return event_dict

    return stamp


def _base_processors(service_name: str) -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _service_stamp(service_name),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(
    level: str = "INFO",
    json_output: bool | None = None,
    service_name: str = "ledger-mirror",
) -> None:
    """Install structlog as the formatter for the root logger.

    Args:
        level: Root log level name
        json_output: True or False forces the renderer; None picks JSON
            unless stderr is a terminal (``MIRROR_LOG_JSON=1`` overrides)
        service_name: Value of the ``service`` field on every event
    """
    processors = _base_processors(service_name)
    if _wants_json(json_output):
        processors.append(structlog.processors.format_exc_info)
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # uvicorn and httpx log through the stdlib; give them the same renderer
    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper()))

    for name in _MUTED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """Attach fields to every event logged from the current request.

    Example:
        bind_context(correlation_id="abc123", tx_hash="9f...")
        logger.info("audit_record_stored")  # carries both fields
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


__all__ = [
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
]
