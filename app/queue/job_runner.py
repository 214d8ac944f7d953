from collections.abc import Callable

from app.database.models import JobRecord
from app.database.repositories.job_repository import JobRepository
from app.logging.logger import Log
from app.queue.backoff import compute_backoff_ms
from app.queue.models import Backoff, BackoffType, JobOutcome

JobHandler = Callable[[JobRecord], JobOutcome | None]


class JobRunner:
    """Run one claimed job, interpret its outcome, and apply retry logic."""

    def __init__(self, handler: JobHandler, job_repo: JobRepository) -> None:
        self._handler = handler
        self._job_repo = job_repo

    def run(self, job: JobRecord) -> JobOutcome:
        """Execute a single job. Never raises for handler errors."""
        Log.debug(
            f"Processing job {job.id} ({job.kind}) from queue {job.queue_name} "
            f"(attempt {job.attempts}/{job.max_attempts})"
        )
        outcome = self._invoke(job)
        try:
            if outcome.ok:
                self._job_repo.mark_completed(job.id, outcome.result)
                Log.debug("Job completed", queue=job.queue_name, job_id=job.id, kind=job.kind)
            else:
                self._handle_failure(job, outcome)
        except Exception as exc:
            # The lock expires and stall recovery picks the job up again.
            Log.error(f"Could not record outcome of job {job.id}: {exc}")
        return outcome

    def _invoke(self, job: JobRecord) -> JobOutcome:
        try:
            outcome = self._handler(job)
        except Exception as exc:
            Log.exception(f"Handler raised for job {job.id} ({job.kind}): {exc}")
            return JobOutcome.failure(f"{type(exc).__name__}: {exc}")
        return outcome if outcome is not None else JobOutcome.success()

    def _handle_failure(self, job: JobRecord, outcome: JobOutcome) -> None:
        """Fail the job if attempts are exhausted or the error is permanent, else reschedule."""
        error = outcome.error or "unknown error"
        Log.error(
            f"Job failed: {error}",
            queue=job.queue_name,
            job_id=job.id,
            kind=job.kind,
            attempt=job.attempts,
        )
        if not outcome.retryable or job.attempts >= job.max_attempts:
            self._job_repo.mark_failed(job.id, error)
            Log.error(f"Job {job.id} permanently failed after {job.attempts} attempts")
            return
        backoff = Backoff(type=BackoffType(job.backoff_type), delay_ms=job.backoff_delay_ms)
        delay_ms = compute_backoff_ms(backoff, job.attempts - 1)
        self._job_repo.schedule_retry(job.id, delay_ms, error)
        Log.warning(
            f"Job {job.id} will be retried in {delay_ms}ms "
            f"(attempt {job.attempts + 1}/{job.max_attempts})"
        )
