import threading
from collections.abc import Iterable
from functools import partial

import psycopg

from app.audit.audit_logger import AuditLogger
from app.config.settings import Settings
from app.database.connection import close_pool, init_pool, ping
from app.database.repositories.audit_events_repository import AuditEventsRepository
from app.database.repositories.documents_repository import DocumentsRepository
from app.database.repositories.job_repository import JobRepository
from app.documents.pipeline import DocumentPipeline
from app.documents.scan_worker import ScanDocumentHandler
from app.health.health_service import HealthService
from app.logging.logger import Log
from app.queue.manager import QueueManager
from app.queue.names import QueueNames
from app.scanner.base import BaseScanner
from app.scanner.factory import ScannerFactory
from app.storage.s3_adapter import S3ObjectStorage


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> register workers -> block."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    queue = QueueManager(JobRepository(), settings)
    scanner: BaseScanner | None = None
    try:
        storage = S3ObjectStorage.from_settings(settings)
        audit = AuditLogger(AuditEventsRepository(), queue, settings)
        pipeline = DocumentPipeline(storage, DocumentsRepository(), queue, settings, audit=audit)
        scanner = ScannerFactory.create(settings)

        ScanDocumentHandler(pipeline, storage, scanner).register(queue, settings)
        audit.register_worker()

        health = HealthService(
            {
                "database": partial(ping, settings.health_check_timeout_seconds),
                "storage": storage.health_check,
                "queue": queue.health_check,
            }
        )
        Log.info(f"Readiness at startup: {health.readiness().status}")

        queue.start_workers()
        Log.info("Workers started, waiting for jobs")
        stop = threading.Event()
        while not stop.wait(settings.completed_job_retention_seconds):
            _prune(queue, (QueueNames.DOCUMENTS, QueueNames.AUDIT))
    except KeyboardInterrupt:
        Log.info("Shutting down gracefully")
    finally:
        queue.close()
        if scanner is not None:
            scanner.close()
        close_pool()


def _prune(queue: QueueManager, queue_names: Iterable[str]) -> None:
    for queue_name in queue_names:
        try:
            queue.prune_completed(queue_name)
        except psycopg.Error as exc:
            Log.warning(f"Could not prune queue {queue_name}: {exc}")


if __name__ == "__main__":
    main()
