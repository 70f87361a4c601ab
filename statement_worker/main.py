from statement_worker.config.settings import Settings
from statement_worker.database.connection import close_pool, init_pool
from statement_worker.database.repositories.document_repository import DocumentRepository
from statement_worker.logging.logger import Log
from statement_worker.processor.processor import build_processor
from statement_worker.worker.document_runner import DocumentRunner
from statement_worker.worker.guard import ProcessingGuard
from statement_worker.worker.worker import Worker


def main() -> None:
    """Entry point: settings -> logging -> database pool -> poll loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    Log.info(
        "Statement worker starting",
        env=settings.app_env,
        provider=settings.extraction_provider,
        pdf_engine=settings.pdf_engine,
    )
    init_pool(settings)

    try:
        runner = DocumentRunner(build_processor(settings), ProcessingGuard())
        Worker(DocumentRepository(), runner, settings).run()
    finally:
        close_pool()
        Log.info("Statement worker stopped")


if __name__ == "__main__":
    main()
