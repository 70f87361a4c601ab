from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

from statement_worker.database.repositories.transaction_repository import TransactionRepository
from statement_worker.extraction.models import ExtractedTransaction
from statement_worker.processor.models import StatementDocument
from statement_worker.processor.state import DocumentStatus

_GET_CONNECTION = "statement_worker.database.repositories.transaction_repository.get_connection"


def _make_document(document_id: str = "doc-1") -> StatementDocument:
    return StatementDocument(
        id=document_id,
        organization_id="org-1",
        client_id="client-1",
        storage_path="org-1/sept.pdf",
        mime_type="application/pdf",
        file_name="sept.pdf",
        status=DocumentStatus.PROCESSING,
    )


def _make_txn(confidence: float = 0.9) -> ExtractedTransaction:
    return ExtractedTransaction(
        date=date(2023, 9, 5),
        merchant="TESCO",
        amount=Decimal("45.20"),
        type="debit",
        extraction_confidence=confidence,
    )


def _mock_connection(mock_get_conn: MagicMock) -> tuple[MagicMock, MagicMock]:
    """Wire up a mock connection + cursor and return (mock_conn, mock_cursor)."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    mock_get_conn.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_get_conn.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn, mock_cursor


class TestReviewStatus:
    def test_confident_is_pending(self) -> None:
        assert TransactionRepository().review_status(_make_txn(0.8)) == "pending"

    def test_low_confidence_is_flagged(self) -> None:
        assert TransactionRepository().review_status(_make_txn(0.79)) == "flagged"

    def test_custom_threshold(self) -> None:
        assert TransactionRepository(0.5).review_status(_make_txn(0.6)) == "pending"


class TestReplaceForDocument:
    @patch(_GET_CONNECTION)
    def test_deletes_then_inserts_in_one_commit(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)

        count = TransactionRepository().replace_for_document(
            _make_document(), [_make_txn(0.9), _make_txn(0.3)]
        )

        assert count == 2
        delete_sql, delete_params = mock_cursor.execute.call_args.args
        assert delete_sql.startswith("DELETE FROM transactions")
        assert delete_params == ("doc-1",)
        rows = mock_cursor.executemany.call_args.args[1]
        assert rows[0][:3] == ("org-1", "client-1", "doc-1")
        assert rows[0][6] == Decimal("45.20")
        assert [row[13] for row in rows] == ["pending", "flagged"]
        mock_conn.commit.assert_called_once()

    @patch(_GET_CONNECTION)
    def test_empty_list_only_deletes(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)

        assert TransactionRepository().replace_for_document(_make_document(), []) == 0

        mock_cursor.executemany.assert_not_called()
        mock_conn.commit.assert_called_once()


class TestCopyFromDocument:
    @patch(_GET_CONNECTION)
    def test_copies_rows_rekeyed(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 12

        copied = TransactionRepository().copy_from_document("donor-1", _make_document())

        assert copied == 12
        _sql, params = mock_cursor.execute.call_args.args
        assert params == ("org-1", "client-1", "doc-1", "donor-1")
        mock_conn.commit.assert_called_once()

    @patch(_GET_CONNECTION)
    def test_rolls_back_when_donor_has_no_rows(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 0

        copied = TransactionRepository().copy_from_document("donor-1", _make_document())

        assert copied == 0
        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()


class TestCountForDocument:
    @patch(_GET_CONNECTION)
    def test_returns_count(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = (7,)

        assert TransactionRepository().count_for_document("doc-1") == 7


class TestDeleteForDocument:
    @patch(_GET_CONNECTION)
    def test_deletes_and_commits(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 3

        assert TransactionRepository().delete_for_document("doc-1") == 3

        sql, params = mock_cursor.execute.call_args.args
        assert sql.startswith("DELETE FROM transactions")
        assert params == ("doc-1",)
        mock_conn.commit.assert_called_once()


class TestReplaceInRange:
    @patch(_GET_CONNECTION)
    def test_deletes_only_inside_range(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)

        count = TransactionRepository().replace_in_range(
            _make_document(), date(2023, 9, 1), date(2023, 9, 30), [_make_txn()]
        )

        assert count == 1
        sql, params = mock_cursor.execute.call_args.args
        assert "BETWEEN" in sql
        assert params == ("doc-1", date(2023, 9, 1), date(2023, 9, 30))
        assert mock_cursor.executemany.call_args.args[1][0][3] == date(2023, 9, 5)
        mock_conn.commit.assert_called_once()

    @patch(_GET_CONNECTION)
    def test_empty_month_only_deletes(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)

        TransactionRepository().replace_in_range(
            _make_document(), date(2023, 9, 1), date(2023, 9, 30), []
        )

        mock_cursor.executemany.assert_not_called()
        mock_conn.commit.assert_called_once()
