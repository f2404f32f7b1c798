# ruff: noqa: T201

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from orgsync.adapters.payload import parse_organization
from orgsync.app import delete_company, initialize_database, reconcile_company
from orgsync.config import ConfigurationError, configure_logging, get_reconcile_config
from orgsync.domain.model import TransactionMode
from orgsync.domain.reconciliation import Persisted, classify_identifier

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from orgsync.config import ReconcileConfig
    from orgsync.domain.reconciliation.identity import PersistedId

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile organization trees")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_db = subparsers.add_parser("init-db", help="Create the database schema")
    init_db.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy URI to use instead of the configured database",
    )

    save = subparsers.add_parser("save", help="Save a company tree from a JSON payload")
    save.add_argument("payload", type=str, help="Path to the JSON payload ('-' for stdin)")
    save.add_argument(
        "--owner-id",
        type=str,
        help="Owner to save the company for (overrides the payload)",
    )
    _add_mode_argument(save)

    delete = subparsers.add_parser("delete", help="Delete a company and its dependants")
    delete.add_argument("company_id", type=str, help="Persisted id of the company")
    delete.add_argument(
        "--owner-id",
        type=str,
        help="Only delete the company when it belongs to this owner",
    )
    _add_mode_argument(delete)

    return parser.parse_args(list(argv))


def _add_mode_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--mode",
        type=str,
        choices=[mode.value for mode in TransactionMode],
        help="Transaction mode (defaults to ORGSYNC_TRANSACTION_MODE or best_effort)",
    )


def _parse_company_id(value: str) -> PersistedId:
    identity = classify_identifier(value)
    if not isinstance(identity, Persisted):
        raise ValueError(f"Not a persisted company id: {value}")
    return identity.id


def _read_payload(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _resolve_config(mode: str | None) -> ReconcileConfig:
    config = get_reconcile_config()
    if mode is None:
        return config
    return dataclasses.replace(config, transaction_mode=TransactionMode(mode))


def _emit(document: dict[str, object]) -> None:
    print(json.dumps(document, indent=2, default=str))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    try:
        configure_logging()
    except ConfigurationError:
        configure_logging(level=logging.INFO)
        log.exception("CLI validation error")
        sys.exit(2)
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        config = None
        payload = None
        company_id: PersistedId | None = None
        if parsed_args.command in {"save", "delete"}:
            config = _resolve_config(parsed_args.mode)
        if parsed_args.command == "save":
            payload = parse_organization(_read_payload(parsed_args.payload))
        elif parsed_args.command == "delete":
            company_id = _parse_company_id(parsed_args.company_id)
    except (ValueError, OSError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "init-db":
            initialize_database(database_uri=parsed_args.database_uri)
            _emit({"initialized": True})
        elif parsed_args.command == "save" and payload is not None:
            result = reconcile_company(payload, owner_id=parsed_args.owner_id, config=config)
            _emit(result.to_dict())
        elif parsed_args.command == "delete" and company_id is not None:
            deletion = delete_company(company_id, owner_id=parsed_args.owner_id, config=config)
            _emit(deletion.to_dict())
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during reconciliation")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
