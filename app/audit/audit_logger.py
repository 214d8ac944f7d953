from typing import Any

from app.audit.models import ActorType, AuditEvent, AuditQuery
from app.config.settings import Settings
from app.database.models import AuditEventRecord, JobRecord
from app.database.repositories.audit_events_repository import AuditEventsRepository
from app.logging.logger import Log
from app.pagination import Page, build_page
from app.queue.manager import QueueManager
from app.queue.models import JobOptions, JobOutcome, WorkerOptions
from app.queue.names import JobKinds, QueueNames
from app.queue.worker import Worker


class AuditLogger:
    """Records immutable audit events.

    log_async() hands the event to the audit queue and returns once the
    enqueue succeeds; a worker writes the row later, retried by the queue.
    log_sync() writes inline for events that must not depend on the queue.
    Callers choose the path explicitly.
    """

    ATTEMPTS = 3

    def __init__(
        self,
        events_repo: AuditEventsRepository,
        queue: QueueManager,
        settings: Settings,
    ) -> None:
        self._events_repo = events_repo
        self._queue = queue
        self._settings = settings

    def register_worker(self) -> Worker:
        worker = self._queue.register_worker(
            QueueNames.AUDIT,
            self._handle_job,
            WorkerOptions(concurrency=self._settings.audit_worker_concurrency),
        )
        Log.info("Audit worker registered")
        return worker

    def log_async(self, event: AuditEvent) -> None:
        """Queue the event for asynchronous writing.

        Raises:
            BrokerUnavailableError: if the event could not be enqueued.
        """
        self._queue.enqueue(
            QueueNames.AUDIT,
            JobKinds.WRITE_AUDIT_EVENT,
            event.to_payload(),
            JobOptions(attempts=self.ATTEMPTS),
        )
        Log.debug(
            f"Audit event queued: {event.action} on {event.object_type}:{event.object_id}"
        )

    def log_sync(self, event: AuditEvent) -> AuditEventRecord:
        """Write the event immediately."""
        record = self._events_repo.insert(event)
        Log.debug(f"Audit event written: {event.action} on {event.object_type}:{event.object_id}")
        return record

    def query(self, query: AuditQuery) -> Page[AuditEventRecord]:
        """Filtered, newest-first, cursor-paginated audit events."""
        page = query.page
        rows = self._events_repo.query(query, page.fetch_size)
        return build_page(rows, page, lambda record: record.id)

    def _handle_job(self, job: JobRecord) -> JobOutcome:
        try:
            event = AuditEvent.from_payload(job.payload)
        except ValueError as exc:
            return JobOutcome.failure(f"Invalid audit payload: {exc}", retryable=False)
        record = self._events_repo.insert(event)
        return JobOutcome.success({"auditEventId": record.id})

    def log_login(
        self, user_id: str, ip_address: str | None = None, user_agent: str | None = None
    ) -> None:
        self.log_async(
            _user_event(
                user_id,
                "AUTH_LOGIN",
                "User",
                user_id,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        )

    def log_logout(self, user_id: str) -> None:
        self.log_async(_user_event(user_id, "AUTH_LOGOUT", "User", user_id))

    def log_password_reset(self, user_id: str) -> None:
        self.log_async(_user_event(user_id, "AUTH_PASSWORD_RESET", "User", user_id))

    def log_mfa_enabled(self, user_id: str) -> None:
        self.log_async(_user_event(user_id, "AUTH_MFA_ENABLED", "User", user_id))

    def log_document_upload(self, user_id: str, document_id: str) -> None:
        self.log_async(_user_event(user_id, "DOCUMENT_UPLOAD", "Document", document_id))

    def log_document_download(self, user_id: str, document_id: str) -> None:
        self.log_async(_user_event(user_id, "DOCUMENT_DOWNLOAD", "Document", document_id))

    def log_profile_update(self, user_id: str, changes: dict[str, Any]) -> None:
        self.log_async(
            _user_event(user_id, "PROFILE_UPDATE", "User", user_id, changes=changes)
        )

    def log_case_status_change(
        self, user_id: str, case_id: str, old_status: str, new_status: str
    ) -> None:
        self.log_async(
            _user_event(
                user_id,
                "CASE_STATUS_CHANGE",
                "Case",
                case_id,
                changes={"oldStatus": old_status, "newStatus": new_status},
            )
        )


def _user_event(
    user_id: str,
    action: str,
    object_type: str,
    object_id: str,
    *,
    changes: dict[str, Any] | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> AuditEvent:
    return AuditEvent(
        actor_id=user_id,
        actor_type=ActorType.USER,
        action=action,
        object_type=object_type,
        object_id=object_id,
        changes=changes,
        ip_address=ip_address,
        user_agent=user_agent,
    )
