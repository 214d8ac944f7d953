from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class DocumentType(str, Enum):
    PRESCRIPTION = "PRESCRIPTION"
    ID_CARD = "ID_CARD"
    CARTE_VITALE = "CARTE_VITALE"
    PROOF_OF_ADDRESS = "PROOF_OF_ADDRESS"
    QUOTE_PDF = "QUOTE_PDF"
    DELIVERY_PROOF = "DELIVERY_PROOF"
    OTHER = "OTHER"


class ScanStatus(str, Enum):
    PENDING = "PENDING"
    CLEAN = "CLEAN"
    INFECTED = "INFECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not ScanStatus.PENDING


class OwnerType(str, Enum):
    PATIENT = "PATIENT"
    PRESCRIBER = "PRESCRIBER"
    STAFF = "STAFF"


class UserRole(str, Enum):
    PATIENT = "PATIENT"
    PRESCRIBER = "PRESCRIBER"
    OPS = "OPS"
    BILLING = "BILLING"
    TECHNICIAN = "TECHNICIAN"
    COMPLIANCE_ADMIN = "COMPLIANCE_ADMIN"


@dataclass(frozen=True)
class UploadAuthorization:
    upload_url: str
    storage_key: str
    expires_in: int


@dataclass(frozen=True)
class DownloadLink:
    download_url: str
    filename: str
    mime_type: str
    expires_in: int


@dataclass(frozen=True)
class DocumentSummary:
    """Document fields exposed to callers. Storage key and owner are not included."""

    id: str
    filename: str
    mime_type: str
    size_bytes: int
    document_type: DocumentType
    scan_status: ScanStatus
    created_at: datetime | None = None
    scan_completed_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DocumentFilter:
    document_type: DocumentType | None = None


@dataclass(frozen=True)
class ScanDocumentPayload:
    """Payload of a scan-document job."""

    document_id: str
    storage_key: str
    bucket: str

    def to_payload(self) -> dict[str, str]:
        return {
            "documentId": self.document_id,
            "storageKey": self.storage_key,
            "bucket": self.bucket,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ScanDocumentPayload":
        """Build from a job payload.

        Raises:
            ValueError: if a required field is missing or not a non-empty string.
        """
        values = {}
        for key in ("documentId", "storageKey", "bucket"):
            value = payload.get(key)
            if not isinstance(value, str) or not value:
                raise ValueError(f"scan-document payload field '{key}' must be a non-empty string")
            values[key] = value
        return cls(
            document_id=values["documentId"],
            storage_key=values["storageKey"],
            bucket=values["bucket"],
        )
