from unittest.mock import MagicMock, patch

from statement_worker.database.models import QueuedDocument
from statement_worker.worker.worker import Worker


def _make_worker() -> tuple[Worker, MagicMock, MagicMock]:
    """Create a Worker with mocked dependencies."""
    mock_repo = MagicMock()
    mock_runner = MagicMock()
    settings = MagicMock(poll_interval_seconds=60, poll_batch_size=5)
    worker = Worker(mock_repo, mock_runner, settings)
    return worker, mock_repo, mock_runner


def _make_batch(*ids: str) -> list[QueuedDocument]:
    return [QueuedDocument(id=document_id) for document_id in ids]


class TestWorkerDispatch:
    def test_dispatches_batch_to_runner_in_order(self) -> None:
        worker, mock_repo, mock_runner = _make_worker()
        mock_repo.list_queued.return_value = _make_batch("a", "b")

        worker.run(max_ticks=1)

        mock_repo.list_queued.assert_called_once_with(5)
        assert [c.args[0] for c in mock_runner.run.call_args_list] == ["a", "b"]

    def test_polls_again_on_next_tick(self) -> None:
        worker, mock_repo, mock_runner = _make_worker()
        mock_repo.list_queued.side_effect = [_make_batch("a"), _make_batch("b")]

        with patch("statement_worker.worker.worker.time.sleep"):
            worker.run(max_ticks=2)

        assert mock_runner.run.call_count == 2

    def test_tick_returns_batch_size(self) -> None:
        worker, mock_repo, _runner = _make_worker()
        mock_repo.list_queued.return_value = _make_batch("a", "b", "c")

        assert worker.tick() == 3


class TestWorkerSleep:
    def test_sleeps_between_ticks(self) -> None:
        worker, mock_repo, _runner = _make_worker()
        mock_repo.list_queued.return_value = []

        with patch("statement_worker.worker.worker.time.sleep") as mock_sleep:
            worker.run(max_ticks=2)

        mock_sleep.assert_called_once_with(60)

    def test_no_sleep_after_last_tick(self) -> None:
        worker, mock_repo, _runner = _make_worker()
        mock_repo.list_queued.return_value = []

        with patch("statement_worker.worker.worker.time.sleep") as mock_sleep:
            worker.run(max_ticks=1)

        mock_sleep.assert_not_called()


class TestWorkerErrors:
    def test_database_error_is_retried_next_tick(self) -> None:
        worker, mock_repo, mock_runner = _make_worker()
        mock_repo.list_queued.side_effect = [RuntimeError("connection refused"), _make_batch("a")]

        with patch("statement_worker.worker.worker.time.sleep"):
            worker.run(max_ticks=2)

        mock_runner.run.assert_called_once_with("a")


class TestWorkerShutdown:
    def test_handles_keyboard_interrupt(self) -> None:
        worker, mock_repo, _runner = _make_worker()
        mock_repo.list_queued.side_effect = KeyboardInterrupt

        worker.run()  # Should not raise
