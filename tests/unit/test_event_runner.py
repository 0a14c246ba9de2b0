from unittest.mock import MagicMock

from docpipe.database.models import EventRecord
from docpipe.documents.exceptions import InvalidEventError
from docpipe.events.models import PipelineEvent
from docpipe.worker.event_runner import EventRunner


def _make_runner(
    max_attempts: int = 3,
) -> tuple[EventRunner, MagicMock, MagicMock]:
    """Create an EventRunner with mocked dependencies."""
    mock_router = MagicMock()
    mock_repo = MagicMock()
    settings = MagicMock(max_event_attempts=max_attempts)
    runner = EventRunner(mock_router, mock_repo, settings)
    return runner, mock_router, mock_repo


def _make_event(attempts: int = 0) -> EventRecord:
    return EventRecord(
        id=1,
        source="idp.upload",
        detail_type="Document Uploaded",
        detail={"documentId": "doc1"},
        status="processing",
        attempts=attempts,
    )


class TestSuccessfulDelivery:
    def test_dispatches_event(self) -> None:
        runner, mock_router, _repo = _make_runner()

        runner.run(_make_event())

        mock_router.dispatch.assert_called_once_with(
            PipelineEvent("idp.upload", "Document Uploaded", {"documentId": "doc1"})
        )

    def test_marks_event_done(self) -> None:
        runner, _router, mock_repo = _make_runner()

        runner.run(_make_event())

        mock_repo.mark_done.assert_called_once_with(1)


class TestFailureBelowMax:
    def test_releases_for_retry(self) -> None:
        runner, mock_router, mock_repo = _make_runner(max_attempts=3)
        mock_router.dispatch.side_effect = Exception("boom")

        runner.run(_make_event(attempts=0))

        mock_repo.release_for_retry.assert_called_once_with(1, "boom")
        mock_repo.mark_failed.assert_not_called()

    def test_does_not_mark_done(self) -> None:
        runner, mock_router, mock_repo = _make_runner(max_attempts=3)
        mock_router.dispatch.side_effect = Exception("boom")

        runner.run(_make_event(attempts=1))

        mock_repo.mark_done.assert_not_called()


class TestFailureAtMax:
    def test_marks_failed(self) -> None:
        runner, mock_router, mock_repo = _make_runner(max_attempts=3)
        mock_router.dispatch.side_effect = Exception("boom")

        runner.run(_make_event(attempts=2))

        mock_repo.mark_failed.assert_called_once_with(1, "boom")
        mock_repo.release_for_retry.assert_not_called()

    def test_marks_failed_when_over_max(self) -> None:
        runner, mock_router, mock_repo = _make_runner(max_attempts=3)
        mock_router.dispatch.side_effect = Exception("boom")

        runner.run(_make_event(attempts=5))

        mock_repo.mark_failed.assert_called_once_with(1, "boom")


class TestMalformedEvent:
    def test_not_retried(self) -> None:
        runner, mock_router, mock_repo = _make_runner()
        mock_router.dispatch.side_effect = InvalidEventError("no documentId")

        runner.run(_make_event(attempts=0))

        mock_repo.mark_failed.assert_called_once_with(1, "no documentId")
        mock_repo.release_for_retry.assert_not_called()
