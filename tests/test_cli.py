"""Tests for the command-line interface."""

from unittest.mock import MagicMock, patch
from uuid import uuid4

from typer.testing import CliRunner

from reelflow.cli import app
from reelflow.domain.enums import JobType

runner = CliRunner()


def test_version() -> None:
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "reelflow v" in result.output


def test_enqueue_parses_payload() -> None:
    queue = MagicMock()
    queue.enqueue.return_value = uuid4()

    with patch("reelflow.services.job_queue.JobQueue", return_value=queue):
        result = runner.invoke(
            app,
            ["enqueue", "render-video", "--payload", '{"video_id": "abc"}', "--priority", "3"],
        )

    assert result.exit_code == 0
    assert "Job enqueued" in result.output
    queue.enqueue.assert_called_once_with(
        JobType.RENDER_VIDEO, {"video_id": "abc"}, priority=3, delay=0, max_attempts=None
    )


def test_enqueue_rejects_bad_payload() -> None:
    result = runner.invoke(app, ["enqueue", "render-video", "--payload", "[1, 2]"])

    assert result.exit_code == 1
    assert "JSON object" in result.output


def test_status_rejects_bad_id() -> None:
    result = runner.invoke(app, ["status", "not-a-uuid"])

    assert result.exit_code == 1
    assert "Invalid job ID" in result.output


def test_cancel_job_not_found() -> None:
    queue = MagicMock()
    queue.cancel.return_value = False

    with patch("reelflow.services.job_queue.JobQueue", return_value=queue):
        result = runner.invoke(app, ["cancel-job", str(uuid4())])

    assert result.exit_code == 1
