from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from statement_worker.database.connection import get_connection
from statement_worker.database.models import DocumentRecord, QueuedDocument
from statement_worker.processor.exceptions import (
    DocumentAlreadyClaimedError,
    DocumentNotFoundError,
    InvalidStatusTransitionError,
)
from statement_worker.processor.models import StatementDocument
from statement_worker.processor.state import DocumentStatus, allowed_sources

_DOCUMENT_COLUMNS = """
    id, organization_id, client_id, storage_path, mime_type,
    file_name, status, file_hash
"""


class DocumentRepository:
    """Database operations for the documents table.

    Status writes are conditional on the current status, so a move the
    lifecycle does not allow updates zero rows and raises instead.
    """

    def list_queued(self, limit: int) -> list[QueuedDocument]:
        """Oldest queued documents first. Documents in processing are never returned."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, created_at
                    FROM documents
                    WHERE status = %s
                    ORDER BY created_at
                    LIMIT %s
                    """,
                    (DocumentStatus.QUEUED.value, limit),
                )
                rows = cur.fetchall()
        return [QueuedDocument(id=str(row["id"]), created_at=row["created_at"]) for row in rows]

    def find_by_id(self, document_id: str) -> StatementDocument:
        """Find a document by ID.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return self._to_document(row)

    def claim(self, document_id: str) -> StatementDocument:
        """Move a queued document to processing and return it.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
            DocumentAlreadyClaimedError: if the document is no longer queued.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE documents
                    SET status = %s, error_message = NULL, updated_at = NOW()
                    WHERE id = %s AND status = ANY(%s)
                    RETURNING {_DOCUMENT_COLUMNS}
                    """,
                    (
                        DocumentStatus.PROCESSING.value,
                        document_id,
                        allowed_sources(DocumentStatus.PROCESSING),
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            current = self.find_by_id(document_id)
            raise DocumentAlreadyClaimedError(
                f"Document {document_id} is {current.status.value}, not queued"
            )
        return self._to_document(row)

    def update_file_hash(self, document_id: str, file_hash: str) -> None:
        """Persist the content fingerprint.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET file_hash = %s, updated_at = NOW()
                    WHERE id = %s
                    """,
                    (file_hash, document_id),
                )
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"Document {document_id} not found")
            conn.commit()

    def find_completed_by_hash(self, file_hash: str, exclude_id: str) -> str | None:
        """ID of another complete document with the same fingerprint, if any."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT id
                    FROM documents
                    WHERE file_hash = %s AND status = %s AND id <> %s
                    ORDER BY processed_at DESC NULLS LAST
                    LIMIT 1
                    """,
                    (file_hash, DocumentStatus.COMPLETE.value, exclude_id),
                )
                row = cur.fetchone()
        return None if row is None else str(row[0])

    def mark_complete(
        self,
        document_id: str,
        metadata: dict[str, Any],
        error_message: str | None = None,
    ) -> None:
        """Finish a processing attempt successfully, replacing the metadata bag."""
        self.update_status(
            document_id,
            DocumentStatus.COMPLETE,
            error_message=error_message,
            metadata=metadata,
        )

    def mark_error(self, document_id: str, error_message: str) -> None:
        """Finish a processing attempt with a pipeline-fatal error."""
        self.update_status(document_id, DocumentStatus.ERROR, error_message=error_message)

    def reset_for_retry(self, document_id: str) -> None:
        """Return an errored document to the queue for a manual retry."""
        self.update_status(document_id, DocumentStatus.QUEUED, error_message=None)

    def update_metadata(
        self,
        document_id: str,
        metadata: dict[str, Any],
        error_message: str | None,
    ) -> None:
        """Rewrite the metadata bag of a complete document without moving its status.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
            InvalidStatusTransitionError: if the document is not complete.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET metadata = %s, error_message = %s, updated_at = NOW()
                    WHERE id = %s AND status = %s
                    """,
                    (Jsonb(metadata), error_message, document_id, DocumentStatus.COMPLETE.value),
                )
                updated = cur.rowcount
            conn.commit()

        if updated == 0:
            current = self.find_by_id(document_id)
            raise InvalidStatusTransitionError(
                f"Document {document_id} is {current.status.value}, metadata is only "
                "rewritten on complete documents"
            )

    def find_record(self, document_id: str) -> DocumentRecord | None:
        """Full row including metadata. Useful for tests and diagnostics."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, organization_id, client_id, storage_path, mime_type,
                           file_name, status, file_hash, error_message, metadata,
                           processed_at, created_at, updated_at
                    FROM documents
                    WHERE id = %s
                    """,
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return DocumentRecord(
            id=str(row["id"]),
            organization_id=str(row["organization_id"]),
            client_id=str(row["client_id"]),
            storage_path=row["storage_path"],
            mime_type=row["mime_type"],
            file_name=row["file_name"],
            status=row["status"],
            file_hash=row["file_hash"],
            error_message=row["error_message"],
            metadata=row["metadata"] or {},
            processed_at=row["processed_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def update_status(
        self,
        document_id: str,
        target: DocumentStatus,
        *,
        error_message: str | None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Move a document to ``target`` if its current status allows it.

        ``metadata`` replaces the stored bag when given. Entering ``complete``
        also stamps ``processed_at``.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
            InvalidStatusTransitionError: if the current status does not allow the move.
        """
        processed_at_sql = "NOW()" if target is DocumentStatus.COMPLETE else "processed_at"
        metadata_sql = "%s" if metadata is not None else "metadata"
        params: list[Any] = [target.value, error_message]
        if metadata is not None:
            params.append(Jsonb(metadata))
        params.extend([document_id, allowed_sources(target)])

        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    UPDATE documents
                    SET status = %s,
                        error_message = %s,
                        metadata = {metadata_sql},
                        processed_at = {processed_at_sql},
                        updated_at = NOW()
                    WHERE id = %s AND status = ANY(%s)
                    """,
                    tuple(params),
                )
                updated = cur.rowcount
            conn.commit()

        if updated == 0:
            current = self.find_by_id(document_id)
            raise InvalidStatusTransitionError(
                f"Illegal status transition {current.status.value} -> {target.value} "
                f"for document {document_id}"
            )

    @staticmethod
    def _to_document(row: dict[str, Any]) -> StatementDocument:
        return StatementDocument(
            id=str(row["id"]),
            organization_id=str(row["organization_id"]),
            client_id=str(row["client_id"]),
            storage_path=row["storage_path"],
            mime_type=row["mime_type"] or "",
            file_name=row["file_name"],
            status=DocumentStatus(row["status"]),
            file_hash=row["file_hash"],
        )
