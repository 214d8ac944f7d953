from app.config.settings import Settings
from app.database.models import JobRecord
from app.documents.exceptions import DocumentNotFoundError, DocumentValidationError
from app.documents.models import ScanDocumentPayload, ScanStatus
from app.documents.pipeline import DocumentPipeline
from app.exceptions import TransientInfrastructureError
from app.logging.logger import Log
from app.queue.manager import QueueManager
from app.queue.models import JobOutcome, WorkerOptions
from app.queue.names import QueueNames
from app.queue.worker import Worker
from app.scanner.base import BaseScanner
from app.scanner.exceptions import ScannerError
from app.storage.base import BaseObjectStorage
from app.storage.exceptions import StorageError, StorageObjectNotFoundError


class ScanDocumentHandler:
    """Consumes scan-document jobs: read object -> scan -> record verdict.

    Outages of storage or the scanner are retryable; a bad payload, a
    missing document or a missing object are not.
    """

    def __init__(
        self,
        pipeline: DocumentPipeline,
        storage: BaseObjectStorage,
        scanner: BaseScanner,
    ) -> None:
        self._pipeline = pipeline
        self._storage = storage
        self._scanner = scanner

    def register(self, queue: QueueManager, settings: Settings) -> Worker:
        return queue.register_worker(
            QueueNames.DOCUMENTS,
            self,
            WorkerOptions(concurrency=settings.default_worker_concurrency),
        )

    def __call__(self, job: JobRecord) -> JobOutcome:
        try:
            payload = ScanDocumentPayload.from_payload(job.payload)
        except ValueError as exc:
            return JobOutcome.failure(str(exc), retryable=False)

        try:
            content = self._storage.read_object(payload.bucket, payload.storage_key)
        except StorageObjectNotFoundError as exc:
            return JobOutcome.failure(str(exc), retryable=False)
        except StorageError as exc:
            return JobOutcome.failure(f"Storage read failed: {exc}")

        filename = payload.storage_key.rsplit("/", 1)[-1]
        try:
            verdict = self._scanner.scan(content, filename)
        except ScannerError as exc:
            return JobOutcome.failure(
                f"Scan failed: {exc}",
                retryable=isinstance(exc, TransientInfrastructureError),
            )

        status = ScanStatus.INFECTED if verdict.infected else ScanStatus.CLEAN
        if verdict.infected:
            Log.warning(
                f"Document {payload.document_id} is infected: {', '.join(verdict.signatures)}"
            )
        try:
            applied = self._pipeline.scan_completed(
                payload.document_id, status, verdict.as_metadata()
            )
        except (DocumentNotFoundError, DocumentValidationError) as exc:
            return JobOutcome.failure(str(exc), retryable=False)

        return JobOutcome.success(
            {"documentId": payload.document_id, "scanStatus": status.value, "applied": applied}
        )
