from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from app.database.connection import get_connection
from app.database.models import JobRecord
from app.queue.models import Backoff

_JOB_COLUMNS = """
    id, queue_name, kind, payload, status, attempts, max_attempts,
    backoff_type, backoff_delay_ms, priority, run_at, error_message,
    result, locked_at, finished_at, created_at, updated_at
"""


class JobRepository:
    """Database operations for the queue_jobs table."""

    def insert(
        self,
        queue_name: str,
        kind: str,
        payload: dict[str, Any],
        *,
        max_attempts: int,
        backoff: Backoff,
        priority: int,
        delay_ms: int,
    ) -> JobRecord:
        """Insert a new job as waiting, or delayed when delay_ms > 0."""
        status = "delayed" if delay_ms > 0 else "waiting"
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO queue_jobs
                        (queue_name, kind, payload, status, max_attempts,
                         backoff_type, backoff_delay_ms, priority, run_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s,
                            NOW() + make_interval(secs => %s))
                    RETURNING {_JOB_COLUMNS}
                    """,
                    (
                        queue_name,
                        kind,
                        Jsonb(payload),
                        status,
                        max_attempts,
                        backoff.type.value,
                        backoff.delay_ms,
                        priority,
                        delay_ms / 1000.0,
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError(f"Insert into queue '{queue_name}' returned no row")
        return _to_record(row)

    def claim_next_job(
        self, conn: psycopg.Connection[Any], queue_name: str
    ) -> JobRecord | None:
        """Claim the next due job using SELECT FOR UPDATE SKIP LOCKED.

        Claiming counts as an attempt, so a job is only claimable while
        attempts < max_attempts.
        """
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT id
                FROM queue_jobs
                WHERE queue_name = %s
                  AND status IN ('waiting', 'delayed')
                  AND run_at <= NOW()
                  AND attempts < max_attempts
                ORDER BY priority DESC, run_at, created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (queue_name,),
            )
            row = cur.fetchone()

            if row is None:
                conn.rollback()
                return None

            cur.execute(
                f"""
                UPDATE queue_jobs
                SET status = 'active', attempts = attempts + 1,
                    locked_at = NOW(), updated_at = NOW()
                WHERE id = %s
                RETURNING {_JOB_COLUMNS}
                """,
                (row["id"],),
            )
            claimed = cur.fetchone()
        conn.commit()

        return _to_record(claimed) if claimed is not None else None

    def mark_completed(self, job_id: str, result: dict[str, Any] | None = None) -> None:
        """Mark a job as completed and release its lock."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE queue_jobs
                SET status = 'completed', result = %s, error_message = NULL,
                    locked_at = NULL, finished_at = NOW(), updated_at = NOW()
                WHERE id = %s
                """,
                (Jsonb(result or {}), job_id),
            )
            conn.commit()

    def mark_failed(self, job_id: str, error: str) -> None:
        """Mark a job as permanently failed. Failed jobs are kept for inspection."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE queue_jobs
                SET status = 'failed', error_message = %s,
                    locked_at = NULL, finished_at = NOW(), updated_at = NOW()
                WHERE id = %s
                """,
                (error, job_id),
            )
            conn.commit()

    def schedule_retry(self, job_id: str, delay_ms: int, error: str) -> None:
        """Release a job back to the queue, visible again after delay_ms."""
        status = "delayed" if delay_ms > 0 else "waiting"
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE queue_jobs
                SET status = %s, error_message = %s, locked_at = NULL,
                    run_at = NOW() + make_interval(secs => %s), updated_at = NOW()
                WHERE id = %s
                """,
                (status, error, delay_ms / 1000.0, job_id),
            )
            conn.commit()

    def recover_stalled(self, queue_name: str, lock_timeout_seconds: int) -> tuple[int, int]:
        """Release active jobs whose lock is older than the timeout.

        Returns (requeued, failed): jobs with attempts left go back to
        waiting, the rest are failed.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE queue_jobs
                    SET status = 'failed',
                        error_message = 'job stalled: lock expired with no attempts left',
                        locked_at = NULL, finished_at = NOW(), updated_at = NOW()
                    WHERE queue_name = %s
                      AND status = 'active'
                      AND locked_at < NOW() - make_interval(secs => %s)
                      AND attempts >= max_attempts
                    """,
                    (queue_name, lock_timeout_seconds),
                )
                failed = cur.rowcount
                cur.execute(
                    """
                    UPDATE queue_jobs
                    SET status = 'waiting', locked_at = NULL, updated_at = NOW()
                    WHERE queue_name = %s
                      AND status = 'active'
                      AND locked_at < NOW() - make_interval(secs => %s)
                      AND attempts < max_attempts
                    """,
                    (queue_name, lock_timeout_seconds),
                )
                requeued = cur.rowcount
            conn.commit()
        return requeued, failed

    def count_by_status(self, queue_name: str) -> dict[str, int]:
        """Count jobs per state. Delayed jobs that are already due count as waiting."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT CASE
                               WHEN status = 'delayed' AND run_at <= NOW() THEN 'waiting'
                               ELSE status
                           END AS state,
                           COUNT(*) AS total
                    FROM queue_jobs
                    WHERE queue_name = %s
                    GROUP BY 1
                    """,
                    (queue_name,),
                )
                rows = cur.fetchall()
        return {row["state"]: int(row["total"]) for row in rows}

    def prune_completed(self, queue_name: str, older_than_seconds: int) -> int:
        """Delete completed jobs finished before the retention window."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    DELETE FROM queue_jobs
                    WHERE queue_name = %s
                      AND status = 'completed'
                      AND finished_at < NOW() - make_interval(secs => %s)
                    """,
                    (queue_name, older_than_seconds),
                )
                deleted = cur.rowcount
            conn.commit()
        return deleted

    def ping(self, timeout: float) -> None:
        """Run a trivial query against the broker table. Raises on failure."""
        with get_connection(timeout=timeout) as conn:
            conn.execute(
                "SELECT COUNT(*) FROM queue_jobs WHERE queue_name = %s",
                ("health-check",),
            )

    def find_by_id(self, job_id: str) -> JobRecord | None:
        """Find a job by ID."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_JOB_COLUMNS} FROM queue_jobs WHERE id = %s",
                    (job_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return _to_record(row)


def _to_record(row: dict[str, Any]) -> JobRecord:
    return JobRecord(
        id=str(row["id"]),
        queue_name=row["queue_name"],
        kind=row["kind"],
        payload=row["payload"] or {},
        status=row["status"],
        attempts=row["attempts"],
        max_attempts=row["max_attempts"],
        backoff_type=row["backoff_type"],
        backoff_delay_ms=row["backoff_delay_ms"],
        priority=row["priority"],
        run_at=row["run_at"],
        error_message=row["error_message"],
        result=row["result"],
        locked_at=row["locked_at"],
        finished_at=row["finished_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
