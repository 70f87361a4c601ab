from datetime import datetime, timezone

import psycopg

from statement_worker.database.repositories.document_repository import DocumentRepository
from statement_worker.database.repositories.transaction_repository import TransactionRepository
from statement_worker.logging.logger import Log
from statement_worker.pdf.base import BasePageRenderer
from statement_worker.processor.classifier import TextNormalizer, classify_format
from statement_worker.processor.exceptions import ExtractionFailedError
from statement_worker.processor.file_loader import FileLoader
from statement_worker.processor.fingerprint import fingerprint
from statement_worker.processor.models import (
    DocumentFormat,
    Pipeline,
    ProcessingMetadata,
    StatementDocument,
)
from statement_worker.processor.orchestrator import ChunkExtractionOrchestrator
from statement_worker.processor.pipeline import PipelineContext, PipelineStep


def partial_extraction_message(failed_labels: list[str]) -> str:
    return (
        f"Partial extraction: {', '.join(failed_labels)} could not be processed. "
        "All other months extracted successfully."
    )


def _require_document(context: PipelineContext) -> StatementDocument:
    if context.document is None:
        raise ValueError("PipelineContext.document must be set by ClaimDocumentStep")
    return context.document


class ClaimDocumentStep(PipelineStep):
    def __init__(self, doc_repo: DocumentRepository) -> None:
        self._doc_repo = doc_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        context.document = self._doc_repo.claim(context.document_id)
        context.claimed = True
        Log.info(f"Document {context.document_id} marked as processing")
        return context


class MarkFailedStep(PipelineStep):
    """Moves a claimed document to error, removing rows this attempt wrote."""

    def __init__(self, doc_repo: DocumentRepository, txn_repo: TransactionRepository) -> None:
        self._doc_repo = doc_repo
        self._txn_repo = txn_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        if not context.claimed:
            # Never claimed by this attempt, so the row belongs to someone else.
            Log.warning(
                f"Document {context.document_id} was not claimed, leaving status untouched"
            )
            return context
        if context.transactions_written:
            try:
                removed = self._txn_repo.delete_for_document(context.document_id)
            except psycopg.Error as exc:
                Log.exception(f"Failed to remove transactions of {context.document_id}: {exc}")
            else:
                Log.warning(
                    f"Removed {removed} transactions written before the failure",
                    document_id=context.document_id,
                )
        self._doc_repo.mark_error(context.document_id, context.error_message)
        Log.error(f"Document {context.document_id} marked as error: {context.error_message}")
        return context


class LoadDocumentStep(PipelineStep):
    def __init__(self, file_loader: FileLoader) -> None:
        self._file_loader = file_loader

    def run(self, context: PipelineContext) -> PipelineContext:
        document = _require_document(context)
        context.raw_bytes = self._file_loader.load(document)
        Log.info(f"Loaded {len(context.raw_bytes)} bytes for document {context.document_id}")
        return context


class DedupGateStep(PipelineStep):
    """Reuses the transactions of an identical, already processed upload."""

    def __init__(
        self,
        doc_repo: DocumentRepository,
        txn_repo: TransactionRepository,
    ) -> None:
        self._doc_repo = doc_repo
        self._txn_repo = txn_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        document = _require_document(context)
        context.file_hash = fingerprint(context.raw_bytes)
        self._doc_repo.update_file_hash(context.document_id, context.file_hash)

        donor_id = self._doc_repo.find_completed_by_hash(context.file_hash, context.document_id)
        if donor_id is None:
            return context

        Log.info(f"Document {context.document_id} has the same content as {donor_id}")
        try:
            copied = self._txn_repo.copy_from_document(donor_id, document)
            context.transactions_written = copied > 0
        except psycopg.Error as exc:
            Log.warning(f"Failed to copy transactions from {donor_id}, processing normally: {exc}")
            return context
        if copied == 0:
            Log.warning(f"Document {donor_id} has no transactions to copy, processing normally")
            return context

        metadata = ProcessingMetadata(
            file_hash=context.file_hash,
            pipeline=Pipeline.DUPLICATE.value,
            transaction_count=copied,
            copied_from=donor_id,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )
        context.duplicate_of = donor_id
        context.pipeline = Pipeline.DUPLICATE.value
        context.transaction_count = copied
        context.metadata = metadata.to_dict()
        self._doc_repo.mark_complete(context.document_id, context.metadata)
        context.completed = True
        Log.info(f"Copied {copied} transactions from {donor_id} to {context.document_id}")
        return context


class NormalizeStep(PipelineStep):
    def __init__(self, normalizer: TextNormalizer) -> None:
        self._normalizer = normalizer

    def run(self, context: PipelineContext) -> PipelineContext:
        document = _require_document(context)
        context.format = classify_format(document.mime_type, document.file_name)
        context.normalized = self._normalizer.normalize(context.format, context.raw_bytes)
        Log.info(
            f"Normalized document {context.document_id}",
            format=context.format.value,
            chars=len(context.normalized.text),
            image_based=context.normalized.is_image_based,
        )
        return context


class ExtractTransactionsStep(PipelineStep):
    def __init__(
        self,
        orchestrator: ChunkExtractionOrchestrator,
        page_renderer: BasePageRenderer,
    ) -> None:
        self._orchestrator = orchestrator
        self._page_renderer = page_renderer

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.normalized is None:
            raise ValueError("PipelineContext.normalized must be set before extraction")

        if context.normalized.is_image_based:
            pages = self._page_renderer.render(context.raw_bytes)
            Log.info(f"Rendered {len(pages)} pages for document {context.document_id}")
            context.pipeline = Pipeline.IMAGE.value
            context.result = self._orchestrator.run_images(pages)
        else:
            if not context.normalized.text.strip():
                raise ExtractionFailedError(f"Document {context.document_id} contains no text")
            context.pipeline = (
                Pipeline.TEXT.value
                if context.format is DocumentFormat.PDF
                else Pipeline.TABULAR.value
            )
            context.result = self._orchestrator.run(context.normalized.text)

        Log.info(
            f"Extracted {len(context.result.transactions)} transactions "
            f"from document {context.document_id}",
            pipeline=context.pipeline,
            failed=",".join(context.result.failed_labels) or None,
        )
        return context


class PersistTransactionsStep(PipelineStep):
    def __init__(self, txn_repo: TransactionRepository) -> None:
        self._txn_repo = txn_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.result is None:
            raise ValueError("PipelineContext.result must be set before persist")
        document = _require_document(context)
        context.transaction_count = self._txn_repo.replace_for_document(
            document, context.result.transactions
        )
        context.transactions_written = True
        Log.info(f"Stored {context.transaction_count} transactions for document {document.id}")
        return context


class FinalizeStep(PipelineStep):
    def __init__(self, doc_repo: DocumentRepository, text_limit: int = 100_000) -> None:
        self._doc_repo = doc_repo
        self._text_limit = text_limit

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.result is None:
            raise ValueError("PipelineContext.result must be set before finalize")
        metadata = ProcessingMetadata.from_orchestration(
            context.result,
            file_hash=context.file_hash,
            pipeline=context.pipeline or Pipeline.TEXT.value,
            normalized=context.normalized,
            text_limit=self._text_limit,
            completed_at=datetime.now(timezone.utc),
        )
        failed = context.result.failed_labels
        error_message = partial_extraction_message(failed) if failed else None
        context.metadata = metadata.to_dict()
        self._doc_repo.mark_complete(
            context.document_id, context.metadata, error_message=error_message
        )
        context.completed = True
        if error_message:
            Log.warning(f"Document {context.document_id} completed with gaps: {error_message}")
        else:
            Log.info(f"Document {context.document_id} marked as complete")
        return context
