import threading
from concurrent.futures import Future, ThreadPoolExecutor

from app.database.connection import get_connection
from app.database.models import JobRecord
from app.database.repositories.job_repository import JobRepository
from app.logging.logger import Log
from app.queue.job_runner import JobRunner


class Worker:
    """Poll loop for one queue: claim -> dispatch to a bounded thread pool.

    At most `concurrency` jobs from this queue run at once in this process.
    """

    def __init__(
        self,
        queue_name: str,
        job_repo: JobRepository,
        job_runner: JobRunner,
        *,
        concurrency: int,
        poll_interval_seconds: float,
        lock_timeout_seconds: int,
    ) -> None:
        self.queue_name = queue_name
        self.concurrency = concurrency
        self._job_repo = job_repo
        self._job_runner = job_runner
        self._poll_interval_seconds = poll_interval_seconds
        self._lock_timeout_seconds = lock_timeout_seconds
        self._slots = threading.BoundedSemaphore(concurrency)
        self._stop = threading.Event()
        self._executor = ThreadPoolExecutor(
            max_workers=concurrency, thread_name_prefix=f"worker-{queue_name}"
        )
        self._in_flight: set[Future[object]] = set()
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Run the poll loop on a background thread."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run, name=f"poller-{self.queue_name}", daemon=True
        )
        self._thread.start()

    def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs until close() is called or interrupted.

        If max_jobs is set, stop after dispatching that many jobs and wait
        for them to finish (for testing).
        """
        Log.info(f"Worker for queue {self.queue_name} started (concurrency {self.concurrency})")
        jobs_done = 0
        try:
            self._recover_stalled()
            while not self._stop.is_set():
                if max_jobs is not None and jobs_done >= max_jobs:
                    break
                if not self._slots.acquire(timeout=self._poll_interval_seconds):
                    continue
                job = self._try_claim_job()
                if job is None:
                    self._slots.release()
                    Log.debug(f"No jobs available on {self.queue_name}, sleeping")
                    self._stop.wait(self._poll_interval_seconds)
                    self._recover_stalled()
                    continue
                self._dispatch(job)
                jobs_done += 1
        except KeyboardInterrupt:
            Log.info(f"Worker for queue {self.queue_name} shutting down gracefully")
        finally:
            self._drain()

    def run_once(self) -> bool:
        """Claim and run a single job inline. Returns False when nothing was due."""
        job = self._try_claim_job()
        if job is None:
            return False
        self._job_runner.run(job)
        return True

    def close(self) -> None:
        """Stop claiming, wait for in-flight jobs, and release the pool."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        self._drain()
        self._executor.shutdown(wait=True)
        Log.debug(f"Closed worker: {self.queue_name}")

    def _dispatch(self, job: JobRecord) -> None:
        future = self._executor.submit(self._run_job, job)
        with self._lock:
            self._in_flight.add(future)
        future.add_done_callback(self._forget)

    def _run_job(self, job: JobRecord) -> None:
        try:
            self._job_runner.run(job)
        except Exception as exc:
            Log.exception(f"Worker error on queue {self.queue_name}: {exc}")
        finally:
            self._slots.release()

    def _forget(self, future: Future[object]) -> None:
        with self._lock:
            self._in_flight.discard(future)

    def _drain(self) -> None:
        with self._lock:
            pending = list(self._in_flight)
        for future in pending:
            future.result()

    def _try_claim_job(self) -> JobRecord | None:
        """Attempt to claim the next due job. Gracefully handle DB errors."""
        try:
            with get_connection() as conn:
                return self._job_repo.claim_next_job(conn, self.queue_name)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None

    def _recover_stalled(self) -> None:
        try:
            requeued, failed = self._job_repo.recover_stalled(
                self.queue_name, self._lock_timeout_seconds
            )
        except Exception as exc:
            Log.warning(f"Stalled job recovery failed on {self.queue_name}: {exc}")
            return
        if requeued or failed:
            Log.warning(
                f"Recovered stalled jobs on {self.queue_name}: "
                f"{requeued} requeued, {failed} failed"
            )
