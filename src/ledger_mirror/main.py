"""Ledger Mirror main entry point."""

from __future__ import annotations

import argparse
import os
import sys

import uvicorn

from ledger_mirror.service.logging import configure_logging


def main() -> int:
    """Main entry point for the Ledger Mirror service."""
    parser = argparse.ArgumentParser(
        prog="ledger-mirror",
        description="Ledger Mirror - ledger audit trail and trustline reconciliation service",
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("MIRROR_PORT", "4950")),
        help="Port to listen on (default: 4950)",
    )
    parser.add_argument(
        "--db-path",
        default=None,
        help="SQLite database path (default: $MIRROR_DB_PATH or data/ledger_mirror.db)",
    )
    parser.add_argument(
        "--network",
        choices=["testnet", "mainnet"],
        default=None,
        help="Stellar network (default: $STELLAR_NETWORK or testnet)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Force JSON log output (default: auto-detect)",
    )

    args = parser.parse_args()

    configure_logging(
        level=args.log_level.upper(),
        json_output=args.json_logs if args.json_logs else None,
    )

    # The app factory reads its configuration from the environment
    if args.db_path:
        os.environ["MIRROR_DB_PATH"] = args.db_path
    if args.network:
        os.environ["STELLAR_NETWORK"] = args.network
    os.environ["MIRROR_PORT"] = str(args.port)

    try:
        uvicorn.run(
            "ledger_mirror.service.app:create_app_from_env",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=args.log_level,
            factory=True,
        )
        return 0
    except KeyboardInterrupt:
        print("\nShutting down...")
        return 0
    except Exception as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
