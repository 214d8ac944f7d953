from collections.abc import Callable
from typing import Any

from app.audit.audit_logger import AuditLogger
from app.audit.models import ActorType, AuditEvent
from app.config.settings import Settings
from app.database.models import DocumentRecord
from app.database.repositories.documents_repository import DocumentsRepository
from app.documents.access import can_access_document, owner_type_for
from app.documents.exceptions import (
    DocumentAccessDeniedError,
    DocumentNotFoundError,
    DocumentValidationError,
)
from app.documents.models import (
    DocumentFilter,
    DocumentSummary,
    DocumentType,
    DownloadLink,
    ScanDocumentPayload,
    ScanStatus,
    UploadAuthorization,
    UserRole,
)
from app.documents.storage_keys import build_storage_key, mime_type_for, parse_storage_key
from app.logging.logger import Log
from app.pagination import Page, PageRequest, build_page
from app.queue.exceptions import BrokerUnavailableError, QueueClosedError
from app.queue.manager import QueueManager
from app.queue.models import JobOptions
from app.queue.names import JobKinds, QueueNames
from app.storage.base import BaseObjectStorage

MAX_FILENAME_LENGTH = 255
MAX_UPLOAD_BYTES = 50 * 1024 * 1024


class DocumentPipeline:
    """Moves a file from upload authorization to a verified, servable document.

    Pipeline: authorize upload -> finalize (record + scan job) -> scan
    completed -> download. Downloads are only issued for CLEAN documents.
    """

    SCAN_ATTEMPTS = 3

    def __init__(
        self,
        storage: BaseObjectStorage,
        documents_repo: DocumentsRepository,
        queue: QueueManager,
        settings: Settings,
        audit: AuditLogger | None = None,
    ) -> None:
        self._storage = storage
        self._documents_repo = documents_repo
        self._queue = queue
        self._settings = settings
        self._audit = audit
        self._bucket = settings.s3_documents_bucket

    def authorize_upload(
        self,
        filename: str,
        mime_type: str,
        document_type: DocumentType | str,
        requester_id: str,
        size_bytes: int | None = None,
    ) -> UploadAuthorization:
        """Issue a write URL for a new object. No document record is created yet."""
        if not filename or len(filename) > MAX_FILENAME_LENGTH:
            raise DocumentValidationError(
                f"filename must be between 1 and {MAX_FILENAME_LENGTH} characters"
            )
        if not requester_id or "/" in requester_id:
            raise DocumentValidationError("requester id must be non-empty and contain no '/'")
        if size_bytes is not None and not 1 <= size_bytes <= MAX_UPLOAD_BYTES:
            raise DocumentValidationError(f"size must be between 1 and {MAX_UPLOAD_BYTES} bytes")
        doc_type = _parse_document_type(document_type)

        storage_key = build_storage_key(doc_type, requester_id, filename)
        expires_in = self._settings.upload_url_expires_seconds
        upload_url = self._storage.issue_upload_url(
            self._bucket, storage_key, mime_type, expires_in
        )
        Log.debug(f"Created presigned upload URL for {storage_key}")
        return UploadAuthorization(
            upload_url=upload_url, storage_key=storage_key, expires_in=expires_in
        )

    def finalize_upload(
        self,
        storage_key: str,
        sha256_hash: str,
        metadata: dict[str, Any] | None,
        requester_id: str,
        requester_role: UserRole | str,
        size_bytes: int = 0,
    ) -> DocumentSummary:
        """Record an uploaded object and queue its antivirus scan.

        Returns immediately with scan status PENDING. Finalizing a key that
        already has a document returns that document and, while it is still
        PENDING, queues its scan again, so a call that failed on enqueue can
        be retried as a whole.

        Raises:
            DocumentValidationError: if the key is malformed, outside the
                requester's namespace, not in storage, or its document was
                deleted.
            BrokerUnavailableError: if the scan job could not be enqueued.
        """
        role = _parse_role(requester_role)
        if not sha256_hash:
            raise DocumentValidationError("sha256 hash is required")
        key_parts = parse_storage_key(storage_key)
        if key_parts.owner_id != requester_id:
            raise DocumentValidationError("Storage key does not belong to requester")

        if not self._storage.object_exists(self._bucket, storage_key):
            raise DocumentValidationError("File not found in storage")

        document = self._documents_repo.find_by_storage_key(storage_key)
        if document is not None and document.deleted_at is not None:
            raise DocumentValidationError("Document for this storage key was deleted")
        if document is None:
            document = self._documents_repo.create(
                owner_id=requester_id,
                owner_type=owner_type_for(role).value,
                document_type=key_parts.document_type.value,
                filename=key_parts.filename,
                mime_type=mime_type_for(key_parts.filename),
                size_bytes=size_bytes,
                storage_key=storage_key,
                sha256_hash=sha256_hash,
                metadata=metadata or {},
            )
        elif document.scan_status != ScanStatus.PENDING.value:
            Log.info(f"Document {document.id} already finalized and scanned")
            return _summary(document)

        scan_payload = ScanDocumentPayload(
            document_id=document.id, storage_key=storage_key, bucket=self._bucket
        )
        self._queue.enqueue(
            QueueNames.DOCUMENTS,
            JobKinds.SCAN_DOCUMENT,
            scan_payload.to_payload(),
            JobOptions(attempts=self.SCAN_ATTEMPTS),
        )
        Log.info(f"Document {document.id} recorded, scan queued")

        if self._audit is not None:
            self._audit_safely(self._audit.log_document_upload, requester_id, document.id)
        return _summary(document)

    def scan_completed(
        self,
        document_id: str,
        status: ScanStatus | str,
        result_metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Record the terminal scan status of a document.

        The result is merged into metadata under "scanResult". A document
        that already has a terminal status is left unchanged and False is
        returned.

        Raises:
            DocumentNotFoundError: if the document does not exist.
            DocumentValidationError: if status is not CLEAN or INFECTED.
        """
        scan_status = _parse_scan_status(status)
        if not scan_status.is_terminal:
            raise DocumentValidationError("Scan result must be CLEAN or INFECTED")

        document = self._documents_repo.find_by_id(document_id)
        if ScanStatus(document.scan_status).is_terminal:
            Log.warning(
                f"Document {document_id} already scanned as {document.scan_status}, "
                f"ignoring {scan_status.value}"
            )
            return False

        metadata = dict(document.metadata)
        if result_metadata is not None:
            metadata["scanResult"] = result_metadata
        applied = self._documents_repo.update_scan_result(
            document_id, scan_status.value, metadata
        )
        if not applied:
            Log.warning(f"Document {document_id} was scanned concurrently, update skipped")
            return False

        Log.info(f"Document {document_id} scan status updated to {scan_status.value}")
        if self._audit is not None:
            self._audit_safely(
                self._audit.log_async,
                AuditEvent(
                    actor_type=ActorType.SYSTEM,
                    action="DOCUMENT_SCAN_COMPLETED",
                    object_type="Document",
                    object_id=document_id,
                    changes={"scanStatus": scan_status.value},
                ),
            )
        return True

    def get_metadata(
        self, document_id: str, requester_id: str, requester_role: UserRole | str
    ) -> DocumentSummary:
        document = self._get_accessible(document_id, requester_id, requester_role)
        return _summary(document)

    def get_download_url(
        self, document_id: str, requester_id: str, requester_role: UserRole | str
    ) -> DownloadLink:
        """Issue a short-lived read URL for a CLEAN document.

        Raises:
            DocumentNotFoundError: unknown or soft-deleted document.
            DocumentAccessDeniedError: requester is neither owner nor elevated.
            DocumentValidationError: the document has not passed the scan.
        """
        document = self._get_accessible(document_id, requester_id, requester_role)
        if document.scan_status != ScanStatus.CLEAN.value:
            raise DocumentValidationError("Document has not passed security scan")

        expires_in = self._settings.download_url_expires_seconds
        download_url = self._storage.issue_download_url(
            self._bucket, document.storage_key, expires_in
        )
        if self._audit is not None:
            self._audit_safely(self._audit.log_document_download, requester_id, document.id)
        return DownloadLink(
            download_url=download_url,
            filename=document.filename,
            mime_type=document.mime_type,
            expires_in=expires_in,
        )

    def list_owned(
        self,
        requester_id: str,
        page: PageRequest | None = None,
        document_filter: DocumentFilter | None = None,
    ) -> Page[DocumentSummary]:
        """Newest-first page of the requester's live documents."""
        page = page or PageRequest()
        document_filter = document_filter or DocumentFilter()
        document_type = (
            document_filter.document_type.value
            if document_filter.document_type is not None
            else None
        )
        rows = self._documents_repo.list_by_owner(
            requester_id,
            document_type=document_type,
            cursor=page.cursor,
            fetch_size=page.fetch_size,
        )
        return build_page([_summary(row) for row in rows], page, lambda summary: summary.id)

    def soft_delete(
        self, document_id: str, requester_id: str, requester_role: UserRole | str
    ) -> None:
        document = self._get_accessible(document_id, requester_id, requester_role)
        self._documents_repo.soft_delete(document.id)
        Log.info(f"Document {document.id} soft-deleted by {requester_id}")

    def _audit_safely(self, log_call: Callable[..., None], *args: Any) -> None:
        """Record an audit event without letting a broker outage fail the operation."""
        try:
            log_call(*args)
        except (BrokerUnavailableError, QueueClosedError) as exc:
            Log.error(f"Audit event dropped, queue unavailable: {exc}")

    def _get_accessible(
        self, document_id: str, requester_id: str, requester_role: UserRole | str
    ) -> DocumentRecord:
        role = _parse_role(requester_role)
        document = self._documents_repo.find_by_id(document_id)
        if document.deleted_at is not None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        if not can_access_document(document, requester_id, role):
            raise DocumentAccessDeniedError("Access denied")
        return document


def _summary(document: DocumentRecord) -> DocumentSummary:
    return DocumentSummary(
        id=document.id,
        filename=document.filename,
        mime_type=document.mime_type,
        size_bytes=document.size_bytes,
        document_type=DocumentType(document.document_type),
        scan_status=ScanStatus(document.scan_status),
        created_at=document.created_at,
        scan_completed_at=document.scan_completed_at,
        metadata=document.metadata,
    )


def _parse_document_type(value: DocumentType | str) -> DocumentType:
    try:
        return value if isinstance(value, DocumentType) else DocumentType(value.upper())
    except ValueError as exc:
        raise DocumentValidationError(f"Unknown document type: {value}") from exc


def _parse_role(value: UserRole | str) -> UserRole:
    try:
        return value if isinstance(value, UserRole) else UserRole(value.upper())
    except ValueError as exc:
        raise DocumentValidationError(f"Unknown role: {value}") from exc


def _parse_scan_status(value: ScanStatus | str) -> ScanStatus:
    try:
        return value if isinstance(value, ScanStatus) else ScanStatus(value.upper())
    except ValueError as exc:
        raise DocumentValidationError(f"Unknown scan status: {value}") from exc
