from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class JobRecord:
    """Represents a row from the queue_jobs table."""

    id: str
    queue_name: str
    kind: str
    payload: dict[str, Any]
    status: str
    attempts: int
    max_attempts: int
    backoff_type: str = "exponential"
    backoff_delay_ms: int = 1000
    priority: int = 0
    run_at: datetime | None = None
    error_message: str | None = None
    result: dict[str, Any] | None = None
    locked_at: datetime | None = None
    finished_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class DocumentRecord:
    """Represents a row from the documents table."""

    id: str
    owner_id: str
    owner_type: str
    document_type: str
    filename: str
    mime_type: str
    size_bytes: int
    storage_key: str
    sha256_hash: str
    scan_status: str
    scan_completed_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    deleted_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class AuditEventRecord:
    """Represents a row from the audit_events table."""

    id: str
    actor_id: str | None
    actor_type: str
    action: str
    object_type: str
    object_id: str
    changes: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None
    timestamp: datetime | None = None
