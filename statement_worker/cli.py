"""Operator commands for documents the worker has already finished with."""

import argparse
import sys

from statement_worker.config.settings import Settings
from statement_worker.database.connection import close_pool, init_pool
from statement_worker.database.repositories.document_repository import DocumentRepository
from statement_worker.database.repositories.transaction_repository import TransactionRepository
from statement_worker.logging.logger import Log
from statement_worker.processor.exceptions import ProcessorError
from statement_worker.processor.month_retry import MonthRetryService
from statement_worker.processor.processor import build_orchestrator


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="statement-worker-admin",
        description="Requeue failed statements or retry the months a statement is missing",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    requeue_parser = subparsers.add_parser(
        "requeue", help="Send an errored document back to the queue"
    )
    requeue_parser.add_argument("document_id", help="ID of the document in error")

    retry_parser = subparsers.add_parser(
        "retry-months",
        help="Re-extract the failed months of a complete document from its cached text",
    )
    retry_parser.add_argument("document_id", help="ID of the partially extracted document")

    return parser


def cmd_requeue(document_id: str) -> int:
    DocumentRepository().reset_for_retry(document_id)
    Log.info(f"Document {document_id} queued for another attempt")
    return 0


def cmd_retry_months(settings: Settings, document_id: str) -> int:
    service = MonthRetryService(
        DocumentRepository(),
        TransactionRepository(settings.flag_confidence_threshold),
        build_orchestrator(settings),
    )
    metadata = service.retry(document_id)
    remaining = metadata["failed_months"]
    Log.info(
        f"Month retry finished for {document_id}",
        transactions=metadata["transaction_count"],
        still_failed=",".join(remaining) or "none",
    )
    return 1 if remaining else 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)
    if not parsed.command:
        parser.print_help()
        return 1

    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)
    try:
        if parsed.command == "requeue":
            return cmd_requeue(parsed.document_id)
        return cmd_retry_months(settings, parsed.document_id)
    except ProcessorError as exc:
        Log.error(f"{parsed.command} failed for {parsed.document_id}: {exc}")
        return 1
    finally:
        close_pool()


if __name__ == "__main__":
    sys.exit(main())
