"""
Command-line interface for the ledger bridge.

Provides CLI commands for operating the service:
- run: Start the API server
- check: Connect to both ledgers and report their state
- history: Print one page of a subject's public cross-reference history
- config: Print the effective configuration (keys are never shown)

Usage:
    ledger-bridge run [--port PORT] [--host HOST]
    ledger-bridge check
    ledger-bridge history SUBJECT_ID [--page N] [--limit N]
    ledger-bridge config

Configuration comes from config/server.ini and BRIDGE_* environment
variables; see :mod:`ledger_bridge.config`.
"""

import argparse
import sys


def cmd_run(args: argparse.Namespace) -> int:
    """
    Start the API server under uvicorn.

    Returns:
        0 on clean shutdown, 1 on startup error
    """
    from ledger_bridge.api.server import start_server

    try:
        start_server(host=args.host, port=args.port)
    except KeyboardInterrupt:
        print("\nShutting down.")
    except (OSError, ValueError) as e:
        print(f"Error starting server: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """
    Connect to both ledgers and print chain ids and the public record count.

    Returns:
        0 when both ledgers answer, 1 otherwise
    """
    from ledger_bridge.chain.errors import LedgerError
    from ledger_bridge.services.container import build_services

    try:
        services = build_services()
    except (OSError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    try:
        print(f"Private ledger: chain {services.private.chain_id()}, contract {services.private.address}")
        print(f"Public ledger:  chain {services.public.chain_id()}, contract {services.public.address}")
        print(f"Public records: {services.store.count_records()}")
        print(f"Catalog items:  {services.catalog.item_count()}")
    except LedgerError as e:
        print(f"Ledger check failed: {e}", file=sys.stderr)
        return 1
    finally:
        services.close()
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    """
    Print one page of a subject's cross-reference history, newest first.

    Returns:
        0 on success, 1 on error
    """
    from ledger_bridge.chain.errors import LedgerError
    from ledger_bridge.services.container import build_services

    try:
        services = build_services()
    except (OSError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    try:
        report = services.store.history(args.subject_id, page=args.page, limit=args.limit)
    except (LedgerError, ValueError) as e:
        print(f"Error reading history: {e}", file=sys.stderr)
        return 1
    finally:
        services.close()

    pagination = report.pagination
    print(
        f"Subject {args.subject_id}: {pagination.total_records} record(s), "
        f"page {pagination.current_page}/{pagination.total_pages}"
    )
    for entry in report.records:
        record = entry.record
        print(
            f"  #{record.record_id:<6} {entry.kind:<8} {entry.formatted_timestamp}  "
            f"{record.private_tx_id}  {record.initiator}"
        )
    if pagination.has_next_page:
        print(f"  (more: --page {pagination.current_page + 1})")
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Print the effective configuration summary."""
    from ledger_bridge.config import print_config_summary

    print_config_summary()
    return 0


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="ledger-bridge",
        description="Ledger Bridge - private/public ledger confirmation service",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Run the API server",
        description="Start the FastAPI server (default host/port from config/server.ini).",
    )
    run_parser.add_argument(
        "--port",
        "-p",
        type=int,
        help="API server port (default: 8000, or BRIDGE_PORT env var)",
    )
    run_parser.add_argument(
        "--host",
        type=str,
        help="Host to bind to (default: 0.0.0.0, or BRIDGE_HOST env var)",
    )
    run_parser.set_defaults(func=cmd_run)

    # check command
    check_parser = subparsers.add_parser(
        "check",
        help="Check connectivity to both ledgers",
        description="Read chain ids, the public record count and the catalog item count.",
    )
    check_parser.set_defaults(func=cmd_check)

    # history command
    history_parser = subparsers.add_parser(
        "history",
        help="Show a subject's public cross-reference history",
    )
    history_parser.add_argument("subject_id", help="Item id whose records to list")
    history_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    history_parser.add_argument("--limit", type=int, default=10, help="Page size (default: 10)")
    history_parser.set_defaults(func=cmd_history)

    # config command
    config_parser = subparsers.add_parser("config", help="Show the effective configuration")
    config_parser.set_defaults(func=cmd_config)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
