import threading
import uuid
from typing import Any

import psycopg

from app.config.settings import Settings
from app.database.models import JobRecord
from app.database.repositories.job_repository import JobRepository
from app.logging.logger import Log
from app.queue.exceptions import BrokerUnavailableError, JobNotFoundError, QueueClosedError
from app.queue.job_runner import JobHandler, JobRunner
from app.queue.models import (
    Backoff,
    BackoffType,
    JobCounts,
    JobHandle,
    JobOptions,
    JobStatus,
    WorkerOptions,
)
from app.queue.worker import Worker


class QueueManager:
    """Named durable queues over the queue_jobs table.

    One instance per process, built at startup and passed to every component
    that produces or consumes jobs. Holds the registered workers.
    """

    def __init__(self, job_repo: JobRepository, settings: Settings) -> None:
        self._job_repo = job_repo
        self._settings = settings
        self._workers: dict[str, Worker] = {}
        self._lock = threading.Lock()
        self._closed = False

    def enqueue(
        self,
        queue_name: str,
        kind: str,
        payload: dict[str, Any],
        options: JobOptions | None = None,
    ) -> JobHandle:
        """Persist a job on the named queue and return its handle.

        Raises:
            QueueClosedError: if the manager has been closed.
            BrokerUnavailableError: if the broker cannot be reached.
        """
        if self._closed:
            raise QueueClosedError(f"Cannot enqueue {kind} on {queue_name}: queues are closed")
        options = options or JobOptions()
        backoff = options.backoff or Backoff(
            type=BackoffType.EXPONENTIAL, delay_ms=self._settings.default_backoff_delay_ms
        )
        try:
            record = self._job_repo.insert(
                queue_name,
                kind,
                payload,
                max_attempts=options.attempts or self._settings.default_job_attempts,
                backoff=backoff,
                priority=options.priority or 0,
                delay_ms=options.delay_ms,
            )
        except psycopg.OperationalError as exc:
            Log.error(f"Could not enqueue {kind} on {queue_name}: {exc}")
            raise BrokerUnavailableError(f"Job broker unavailable: {exc}") from exc

        Log.debug("Job enqueued", queue=queue_name, job_id=record.id, kind=kind)
        return JobHandle(
            id=record.id,
            queue_name=record.queue_name,
            kind=record.kind,
            status=JobStatus(record.status),
        )

    def register_worker(
        self,
        queue_name: str,
        handler: JobHandler,
        options: WorkerOptions | None = None,
    ) -> Worker:
        """Register the consumer for a queue.

        Registering a queue that already has a worker returns the existing
        worker unchanged; the new handler is ignored.
        """
        with self._lock:
            existing = self._workers.get(queue_name)
            if existing is not None:
                Log.warning(f"Worker for queue {queue_name} already exists")
                return existing

            options = options or WorkerOptions()
            worker = Worker(
                queue_name,
                self._job_repo,
                JobRunner(handler, self._job_repo),
                concurrency=options.concurrency or self._settings.default_worker_concurrency,
                poll_interval_seconds=self._settings.job_poll_interval_seconds,
                lock_timeout_seconds=self._settings.job_lock_timeout_seconds,
            )
            self._workers[queue_name] = worker

        Log.info(f"Registered worker for queue: {queue_name}")
        return worker

    def start_workers(self) -> None:
        """Start the poll loop of every registered worker."""
        with self._lock:
            workers = list(self._workers.values())
        for worker in workers:
            worker.start()

    def get_worker(self, queue_name: str) -> Worker | None:
        return self._workers.get(queue_name)

    def get_job_counts(self, queue_name: str) -> JobCounts:
        """Point-in-time job counts per state. For observability only."""
        counts = self._job_repo.count_by_status(queue_name)
        return JobCounts(
            waiting=counts.get(JobStatus.WAITING.value, 0),
            active=counts.get(JobStatus.ACTIVE.value, 0),
            completed=counts.get(JobStatus.COMPLETED.value, 0),
            failed=counts.get(JobStatus.FAILED.value, 0),
            delayed=counts.get(JobStatus.DELAYED.value, 0),
        )

    def get_job(self, job_id: str) -> JobRecord:
        """Fetch a job for inspection.

        Raises:
            JobNotFoundError: if the id is malformed or unknown.
        """
        try:
            uuid.UUID(job_id)
        except ValueError as exc:
            raise JobNotFoundError(f"Job {job_id} not found") from exc
        job = self._job_repo.find_by_id(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    def prune_completed(self, queue_name: str) -> int:
        """Remove completed jobs older than the retention window. Failed jobs are kept."""
        deleted = self._job_repo.prune_completed(
            queue_name, self._settings.completed_job_retention_seconds
        )
        if deleted:
            Log.info(f"Pruned {deleted} completed jobs from queue {queue_name}")
        return deleted

    def health_check(self) -> bool:
        """True if the broker answers a trivial query within the health-check timeout."""
        try:
            self._job_repo.ping(self._settings.health_check_timeout_seconds)
        except Exception as exc:
            Log.error(f"Queue health check failed: {exc}")
            return False
        return True

    def close(self) -> None:
        """Close all workers first, then stop accepting new jobs."""
        Log.info("Closing all queues and workers...")
        with self._lock:
            workers = list(self._workers.items())
            self._workers.clear()
        for name, worker in workers:
            worker.close()
            Log.debug(f"Closed worker: {name}")
        self._closed = True
        Log.info("All queues and workers closed")
