from datetime import date
from decimal import Decimal

from psycopg.rows import dict_row

from statement_worker.database.connection import get_connection
from statement_worker.database.models import TransactionRecord
from statement_worker.extraction.models import ExtractedTransaction
from statement_worker.processor.models import StatementDocument

REVIEW_PENDING = "pending"
REVIEW_FLAGGED = "flagged"

_INSERT_SQL = """
    INSERT INTO transactions (
        organization_id, client_id, document_id, date, merchant, description,
        amount, type, balance, category, category_confidence, vat_amount,
        vat_rate, status, extraction_confidence
    )
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
"""


class TransactionRepository:
    """Database operations for the transactions table.

    A document's transaction set is only ever replaced as a whole: the
    delete and the inserts share one database transaction.
    """

    def __init__(self, flag_confidence_threshold: float = 0.8) -> None:
        self._flag_confidence_threshold = flag_confidence_threshold

    def review_status(self, transaction: ExtractedTransaction) -> str:
        """``pending`` for confident extractions, ``flagged`` for the rest."""
        confidence = transaction.extraction_confidence
        if confidence is not None and confidence >= self._flag_confidence_threshold:
            return REVIEW_PENDING
        return REVIEW_FLAGGED

    def replace_for_document(
        self,
        document: StatementDocument,
        transactions: list[ExtractedTransaction],
    ) -> int:
        """Delete the document's transactions and insert ``transactions``.

        Returns the number of rows inserted.
        """
        rows = [self._row(document, txn) for txn in transactions]
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM transactions WHERE document_id = %s",
                    (document.id,),
                )
                if rows:
                    cur.executemany(_INSERT_SQL, rows)
            conn.commit()
        return len(rows)

    def copy_from_document(self, source_document_id: str, document: StatementDocument) -> int:
        """Replace the document's transactions with copies of another document's.

        Rows are re-keyed to ``document`` and keep every other column.
        Nothing is committed when the source has no transactions.

        Returns the number of rows copied.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM transactions WHERE document_id = %s",
                    (document.id,),
                )
                cur.execute(
                    """
                    INSERT INTO transactions (
                        organization_id, client_id, document_id, date, merchant,
                        description, amount, type, balance, category,
                        category_confidence, vat_amount, vat_rate, status,
                        extraction_confidence
                    )
                    SELECT %s, %s, %s, date, merchant,
                           description, amount, type, balance, category,
                           category_confidence, vat_amount, vat_rate, status,
                           extraction_confidence
                    FROM transactions
                    WHERE document_id = %s
                    ORDER BY date, created_at
                    """,
                    (
                        document.organization_id,
                        document.client_id,
                        document.id,
                        source_document_id,
                    ),
                )
                copied = cur.rowcount
            if copied <= 0:
                conn.rollback()
                return 0
            conn.commit()
        return copied

    def delete_for_document(self, document_id: str) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM transactions WHERE document_id = %s",
                    (document_id,),
                )
                deleted = cur.rowcount
            conn.commit()
        return max(deleted, 0)

    def replace_in_range(
        self,
        document: StatementDocument,
        start_date: date,
        end_date: date,
        transactions: list[ExtractedTransaction],
    ) -> int:
        """Replace the document's transactions dated within one inclusive range.

        Rows outside the range are untouched. Returns the number inserted.
        """
        rows = [self._row(document, txn) for txn in transactions]
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    DELETE FROM transactions
                    WHERE document_id = %s AND date BETWEEN %s AND %s
                    """,
                    (document.id, start_date, end_date),
                )
                if rows:
                    cur.executemany(_INSERT_SQL, rows)
            conn.commit()
        return len(rows)

    def count_for_document(self, document_id: str) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT COUNT(*) FROM transactions WHERE document_id = %s",
                    (document_id,),
                )
                row = cur.fetchone()
        return 0 if row is None else int(row[0])

    def list_for_document(self, document_id: str) -> list[TransactionRecord]:
        """Transactions of a document in date order."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, document_id, date, merchant, amount, type, status,
                           description, balance, extraction_confidence
                    FROM transactions
                    WHERE document_id = %s
                    ORDER BY date, created_at
                    """,
                    (document_id,),
                )
                rows = cur.fetchall()
        return [
            TransactionRecord(
                id=str(row["id"]),
                document_id=str(row["document_id"]),
                date=row["date"],
                merchant=row["merchant"],
                amount=Decimal(row["amount"]),
                type=row["type"],
                status=row["status"],
                description=row["description"],
                balance=Decimal(row["balance"]) if row["balance"] is not None else None,
                extraction_confidence=row["extraction_confidence"],
            )
            for row in rows
        ]

    def _row(self, document: StatementDocument, txn: ExtractedTransaction) -> tuple[object, ...]:
        return (
            document.organization_id,
            document.client_id,
            document.id,
            txn.date,
            txn.merchant,
            txn.description,
            txn.amount,
            txn.type,
            txn.balance,
            txn.category,
            txn.category_confidence,
            txn.vat_amount,
            txn.vat_rate,
            self.review_status(txn),
            txn.extraction_confidence,
        )
