from unittest.mock import MagicMock

import psycopg
import pytest

from app.config.settings import Settings
from app.queue.exceptions import BrokerUnavailableError, JobNotFoundError, QueueClosedError
from app.queue.manager import QueueManager
from app.queue.models import Backoff, BackoffType, JobOptions, JobStatus, WorkerOptions
from fakes import FakeJobRepository


def _make_manager() -> tuple[QueueManager, FakeJobRepository]:
    repo = FakeJobRepository()
    return QueueManager(repo, Settings(job_poll_interval_seconds=1)), repo


class TestEnqueue:
    def test_applies_defaults(self) -> None:
        manager, repo = _make_manager()

        handle = manager.enqueue("documents", "scan-document", {"documentId": "d1"})

        job = repo.jobs[handle.id]
        assert handle.status == JobStatus.WAITING
        assert job.max_attempts == 3
        assert job.backoff_type == "exponential"
        assert job.backoff_delay_ms == 1000
        assert job.priority == 0
        assert job.attempts == 0

    def test_delay_makes_job_delayed(self) -> None:
        manager, _repo = _make_manager()

        handle = manager.enqueue("documents", "scan-document", {}, JobOptions(delay_ms=5000))

        assert handle.status == JobStatus.DELAYED

    def test_explicit_options_are_stored(self) -> None:
        manager, repo = _make_manager()
        options = JobOptions(
            attempts=5, backoff=Backoff(type=BackoffType.FIXED, delay_ms=200), priority=7
        )

        handle = manager.enqueue("billing", "invoice", {}, options)

        job = repo.jobs[handle.id]
        assert (job.max_attempts, job.backoff_type, job.backoff_delay_ms, job.priority) == (
            5,
            "fixed",
            200,
            7,
        )

    def test_broker_outage_is_surfaced(self) -> None:
        repo = MagicMock()
        repo.insert.side_effect = psycopg.OperationalError("connection refused")
        manager = QueueManager(repo, Settings())

        with pytest.raises(BrokerUnavailableError):
            manager.enqueue("audit", "write-audit-event", {})

    def test_closed_manager_rejects_jobs(self) -> None:
        manager, _repo = _make_manager()
        manager.close()

        with pytest.raises(QueueClosedError):
            manager.enqueue("documents", "scan-document", {})

    def test_invalid_attempts_rejected(self) -> None:
        with pytest.raises(ValueError):
            JobOptions(attempts=0)


class TestRegisterWorker:
    def test_second_registration_returns_same_worker(self) -> None:
        manager, _repo = _make_manager()
        first_handler = MagicMock()
        second_handler = MagicMock()

        first = manager.register_worker("audit", first_handler, WorkerOptions(concurrency=10))
        second = manager.register_worker("audit", second_handler)

        assert second is first
        assert first.concurrency == 10
        assert manager.get_worker("audit") is first

    def test_default_concurrency(self) -> None:
        manager, _repo = _make_manager()

        worker = manager.register_worker("documents", MagicMock())

        assert worker.concurrency == 5

    def test_different_queues_get_different_workers(self) -> None:
        manager, _repo = _make_manager()

        docs = manager.register_worker("documents", MagicMock())
        audit = manager.register_worker("audit", MagicMock())

        assert docs is not audit


class TestJobCounts:
    def test_counts_every_state(self) -> None:
        manager, repo = _make_manager()
        manager.enqueue("documents", "scan-document", {})
        manager.enqueue("documents", "scan-document", {}, JobOptions(delay_ms=1000))
        failed = manager.enqueue("documents", "scan-document", {})
        repo.mark_failed(failed.id, "boom")
        manager.enqueue("audit", "write-audit-event", {})

        counts = manager.get_job_counts("documents")

        assert (counts.waiting, counts.delayed, counts.failed) == (1, 1, 1)
        assert (counts.active, counts.completed) == (0, 0)


class TestGetJob:
    def test_returns_job(self) -> None:
        manager, _repo = _make_manager()
        handle = manager.enqueue("documents", "scan-document", {"documentId": "d1"})

        job = manager.get_job(handle.id)

        assert job.payload == {"documentId": "d1"}

    def test_unknown_job_raises(self) -> None:
        manager, _repo = _make_manager()

        with pytest.raises(JobNotFoundError):
            manager.get_job("7f1e1f4e-8d62-4a5b-9d39-0b8f3c5d8e11")

    def test_malformed_id_raises(self) -> None:
        manager, _repo = _make_manager()

        with pytest.raises(JobNotFoundError):
            manager.get_job("not-a-uuid")


class TestPrune:
    def test_removes_completed_keeps_failed(self) -> None:
        manager, repo = _make_manager()
        done = manager.enqueue("documents", "scan-document", {})
        failed = manager.enqueue("documents", "scan-document", {})
        repo.mark_completed(done.id)
        repo.mark_failed(failed.id, "boom")

        assert manager.prune_completed("documents") == 1
        assert failed.id in repo.jobs
        assert done.id not in repo.jobs


class TestHealthCheck:
    def test_true_when_broker_answers(self) -> None:
        manager, _repo = _make_manager()
        assert manager.health_check() is True

    def test_false_when_broker_fails(self) -> None:
        repo = MagicMock()
        repo.ping.side_effect = psycopg.OperationalError("timeout")
        manager = QueueManager(repo, Settings())

        assert manager.health_check() is False


class TestClose:
    def test_closes_workers(self) -> None:
        manager, _repo = _make_manager()
        worker = manager.register_worker("documents", MagicMock())
        worker.close = MagicMock()

        manager.close()

        worker.close.assert_called_once()
        assert manager.get_worker("documents") is None
