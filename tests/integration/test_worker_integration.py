from unittest.mock import MagicMock

import pytest

from app.config.settings import Settings
from app.database.connection import get_connection
from app.database.repositories.documents_repository import DocumentsRepository
from app.database.repositories.job_repository import JobRepository
from app.documents.pipeline import DocumentPipeline
from app.documents.scan_worker import ScanDocumentHandler
from app.queue.manager import QueueManager
from app.queue.models import Backoff, BackoffType, JobOptions, JobOutcome
from app.queue.names import QueueNames
from app.scanner.example_scanner import ExampleScanner


@pytest.mark.integration
class TestWorkerIntegration:
    def test_worker_claims_and_completes_one_job(
        self, queue_name: str, test_settings: Settings
    ) -> None:
        queue = QueueManager(JobRepository(), test_settings)
        seen = []

        def handler(job):
            seen.append(job.payload)
            return JobOutcome.success({"echo": job.payload["n"]})

        worker = queue.register_worker(queue_name, handler)
        handle = queue.enqueue(queue_name, "echo", {"n": 7})
        worker.run(max_jobs=1)

        stored = queue.get_job(handle.id)
        assert seen == [{"n": 7}]
        assert stored.status == "completed"
        assert stored.result == {"echo": 7}
        queue.close()

    def test_failing_job_is_retried_then_failed(
        self, queue_name: str, test_settings: Settings
    ) -> None:
        queue = QueueManager(JobRepository(), test_settings)
        calls = []

        def handler(job):
            calls.append(job.attempts)
            raise RuntimeError("downstream offline")

        worker = queue.register_worker(queue_name, handler)
        handle = queue.enqueue(
            queue_name,
            "flaky",
            {},
            JobOptions(attempts=3, backoff=Backoff(type=BackoffType.FIXED, delay_ms=0)),
        )
        while worker.run_once():
            pass

        stored = queue.get_job(handle.id)
        assert calls == [1, 2, 3]
        assert stored.status == "failed"
        assert "downstream offline" in (stored.error_message or "")
        assert queue.get_job_counts(queue_name).failed == 1
        queue.close()


@pytest.mark.integration
class TestScanFlow:
    def test_finalize_then_scan_marks_document_clean(
        self, owner_id: str, test_settings: Settings
    ) -> None:
        storage = MagicMock()
        storage.object_exists.return_value = True
        storage.read_object.return_value = b"%PDF-1.4 clean"
        queue = QueueManager(JobRepository(), test_settings)
        pipeline = DocumentPipeline(storage, DocumentsRepository(), queue, test_settings)
        ScanDocumentHandler(pipeline, storage, ExampleScanner()).register(queue, test_settings)

        summary = pipeline.finalize_upload(
            f"proof_of_address/{owner_id}/1700000000000-abc.pdf",
            "a" * 64,
            {"caseId": "c1"},
            owner_id,
            "PATIENT",
        )
        try:
            worker = queue.get_worker(QueueNames.DOCUMENTS)
            while worker.run_once():
                pass

            document = pipeline.get_metadata(summary.id, owner_id, "PATIENT")
            assert document.scan_status.value == "CLEAN"
            assert document.metadata["caseId"] == "c1"
            assert document.metadata["scanResult"]["engine"] == "example"
            assert pipeline.get_download_url(summary.id, owner_id, "PATIENT")
        finally:
            queue.close()
            with get_connection() as conn:
                conn.execute(
                    "DELETE FROM queue_jobs WHERE payload->>'documentId' = %s", (summary.id,)
                )
                conn.commit()
