import time
import uuid
from dataclasses import dataclass

from app.documents.exceptions import DocumentValidationError
from app.documents.models import DocumentType

_MIME_TYPES = {
    "pdf": "application/pdf",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class StorageKeyParts:
    document_type: DocumentType
    owner_id: str
    filename: str


def file_extension(filename: str) -> str:
    """Lowercased extension without the dot, or "" when there is none."""
    _, dot, extension = filename.rpartition(".")
    return extension.lower() if dot else ""


def build_storage_key(
    document_type: DocumentType,
    owner_id: str,
    filename: str,
    *,
    timestamp_ms: int | None = None,
    unique_id: str | None = None,
) -> str:
    """Build `{type}/{owner}/{timestamp}-{uuid}.{ext}`."""
    timestamp_ms = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    unique_id = unique_id or str(uuid.uuid4())
    extension = file_extension(filename)
    name = f"{timestamp_ms}-{unique_id}"
    if extension:
        name = f"{name}.{extension}"
    return f"{document_type.value.lower()}/{owner_id}/{name}"


def parse_storage_key(storage_key: str) -> StorageKeyParts:
    """Split a storage key built by build_storage_key.

    Raises:
        DocumentValidationError: if the key does not have the expected shape.
    """
    parts = storage_key.split("/")
    if len(parts) != 3 or not all(parts):
        raise DocumentValidationError(f"Malformed storage key: {storage_key}")
    type_part, owner_id, filename = parts
    try:
        document_type = DocumentType(type_part.upper())
    except ValueError as exc:
        raise DocumentValidationError(
            f"Unknown document type in storage key: {type_part}"
        ) from exc
    return StorageKeyParts(document_type=document_type, owner_id=owner_id, filename=filename)


def mime_type_for(filename: str) -> str:
    return _MIME_TYPES.get(file_extension(filename), DEFAULT_MIME_TYPE)
