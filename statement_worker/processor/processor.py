from pathlib import Path

from statement_worker.config.settings import Settings
from statement_worker.database.repositories.document_repository import DocumentRepository
from statement_worker.database.repositories.transaction_repository import TransactionRepository
from statement_worker.extraction.factory import ExtractorFactory
from statement_worker.logging.logger import Log
from statement_worker.pdf.factory import PdfExtractorFactory
from statement_worker.processor.classifier import TextNormalizer
from statement_worker.processor.file_loader import FileLoader
from statement_worker.processor.orchestrator import ChunkExtractionOrchestrator
from statement_worker.processor.pipeline import PipelineContext, PipelineStep
from statement_worker.processor.steps import (
    ClaimDocumentStep,
    DedupGateStep,
    ExtractTransactionsStep,
    FinalizeStep,
    LoadDocumentStep,
    MarkFailedStep,
    NormalizeStep,
    PersistTransactionsStep,
)


class Processor:
    """Runs the document processing pipeline.

    Pipeline: claim -> load -> dedup gate -> normalize -> extract -> persist -> finalize.
    A step that finishes the document (the dedup gate on a duplicate, or
    finalize) sets ``context.completed`` and the remaining steps are skipped.
    Any exception runs the failure step and is re-raised.
    """

    def __init__(self, steps: list[PipelineStep], failed_step: PipelineStep) -> None:
        self._steps = steps
        self._failed_step = failed_step

    def process(self, document_id: str) -> PipelineContext:
        Log.info(f"Processing document {document_id}")
        context = PipelineContext(document_id=document_id)
        try:
            for step in self._steps:
                context = step.run(context)
                if context.completed:
                    break
        except Exception as exc:
            context.error_message = str(exc) or type(exc).__name__
            self._failed_step.run(context)
            raise
        return context


def build_orchestrator(settings: Settings) -> ChunkExtractionOrchestrator:
    return ChunkExtractionOrchestrator(
        ExtractorFactory.create(settings),
        chunk_delay_seconds=settings.chunk_delay_seconds,
        max_period_months=settings.max_period_months,
        header_context_lines=settings.header_context_lines,
        image_pages_per_call=settings.image_pages_per_call,
        dedupe=settings.dedupe_transactions,
        verify_balances=settings.verify_balance_chain,
    )


def build_processor(
    settings: Settings,
    files_root: Path | None = None,
) -> Processor:
    """Build a Processor with all required adapters."""
    file_loader = FileLoader(files_root=files_root or Path(settings.files_root))
    doc_repo = DocumentRepository()
    txn_repo = TransactionRepository(settings.flag_confidence_threshold)
    normalizer = TextNormalizer(
        PdfExtractorFactory.create(settings),
        chars_per_page=settings.image_based_chars_per_page,
    )
    orchestrator = build_orchestrator(settings)
    steps: list[PipelineStep] = [
        ClaimDocumentStep(doc_repo),
        LoadDocumentStep(file_loader),
        DedupGateStep(doc_repo, txn_repo),
        NormalizeStep(normalizer),
        ExtractTransactionsStep(orchestrator, PdfExtractorFactory.create_renderer(settings)),
        PersistTransactionsStep(txn_repo),
        FinalizeStep(doc_repo, text_limit=settings.metadata_text_limit),
    ]
    return Processor(steps=steps, failed_step=MarkFailedStep(doc_repo, txn_repo))
