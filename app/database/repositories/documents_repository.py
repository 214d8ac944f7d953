import uuid
from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from app.database.connection import get_connection
from app.database.models import DocumentRecord
from app.documents.exceptions import DocumentNotFoundError

_DOCUMENT_COLUMNS = """
    id, owner_id, owner_type, document_type, filename, mime_type, size_bytes,
    storage_key, sha256_hash, scan_status, scan_completed_at, metadata,
    deleted_at, created_at, updated_at
"""


class DocumentsRepository:
    """Database operations for the documents table."""

    def create(
        self,
        *,
        owner_id: str,
        owner_type: str,
        document_type: str,
        filename: str,
        mime_type: str,
        size_bytes: int,
        storage_key: str,
        sha256_hash: str,
        metadata: dict[str, Any],
    ) -> DocumentRecord:
        """Insert a document with scan_status PENDING.

        If a document with the same storage key already exists, it is
        returned unchanged.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO documents
                        (owner_id, owner_type, document_type, filename, mime_type,
                         size_bytes, storage_key, sha256_hash, metadata, scan_status)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, 'PENDING')
                    ON CONFLICT (storage_key) DO NOTHING
                    RETURNING {_DOCUMENT_COLUMNS}
                    """,
                    (
                        owner_id,
                        owner_type,
                        document_type,
                        filename,
                        mime_type,
                        size_bytes,
                        storage_key,
                        sha256_hash,
                        Jsonb(metadata),
                    ),
                )
                row = cur.fetchone()
                if row is None:
                    cur.execute(
                        f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE storage_key = %s",
                        (storage_key,),
                    )
                    row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError(f"Insert of document {storage_key} returned no row")
        return _to_record(row)

    def find_by_storage_key(self, storage_key: str) -> DocumentRecord | None:
        """Find the document recorded for a storage key, including soft-deleted ones."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE storage_key = %s",
                    (storage_key,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return _to_record(row)

    def find_by_id(self, document_id: str) -> DocumentRecord:
        """Find a document by ID, including soft-deleted ones.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        if not _is_uuid(document_id):
            raise DocumentNotFoundError(f"Document {document_id} not found")
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _to_record(row)

    def update_scan_result(
        self,
        document_id: str,
        scan_status: str,
        metadata: dict[str, Any],
    ) -> bool:
        """Set a terminal scan status, completion time and merged metadata.

        Only a PENDING document is updated. Returns False when the document
        had already left PENDING.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET scan_status = %s,
                        scan_completed_at = NOW(),
                        metadata = %s,
                        updated_at = NOW()
                    WHERE id = %s AND scan_status = 'PENDING'
                    """,
                    (scan_status, Jsonb(metadata), document_id),
                )
                updated = cur.rowcount
                if updated == 0:
                    cur.execute("SELECT 1 FROM documents WHERE id = %s", (document_id,))
                    if cur.fetchone() is None:
                        raise DocumentNotFoundError(f"Document {document_id} not found")
            conn.commit()
        return updated > 0

    def list_by_owner(
        self,
        owner_id: str,
        *,
        document_type: str | None,
        cursor: str | None,
        fetch_size: int,
    ) -> list[DocumentRecord]:
        """Newest-first page of an owner's live documents, strictly after the cursor row."""
        conditions = ["owner_id = %s", "deleted_at IS NULL"]
        params: list[Any] = [owner_id]
        if document_type is not None:
            conditions.append("document_type = %s")
            params.append(document_type)
        if cursor is not None:
            if not _is_uuid(cursor):
                return []
            conditions.append(
                "(created_at, id) < (SELECT created_at, id FROM documents WHERE id = %s)"
            )
            params.append(cursor)
        params.append(fetch_size)

        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_DOCUMENT_COLUMNS}
                    FROM documents
                    WHERE {" AND ".join(conditions)}
                    ORDER BY created_at DESC, id DESC
                    LIMIT %s
                    """,
                    params,
                )
                rows = cur.fetchall()
        return [_to_record(row) for row in rows]

    def count_by_owner(self, owner_id: str, document_type: str | None = None) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                if document_type is None:
                    cur.execute(
                        "SELECT COUNT(*) FROM documents WHERE owner_id = %s AND deleted_at IS NULL",
                        (owner_id,),
                    )
                else:
                    cur.execute(
                        """
                        SELECT COUNT(*) FROM documents
                        WHERE owner_id = %s AND document_type = %s AND deleted_at IS NULL
                        """,
                        (owner_id, document_type),
                    )
                row = cur.fetchone()
        return int(row[0]) if row else 0

    def soft_delete(self, document_id: str) -> None:
        """Set deleted_at. The row itself is kept.

        Raises:
            DocumentNotFoundError: if no live document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET deleted_at = NOW(), updated_at = NOW()
                    WHERE id = %s AND deleted_at IS NULL
                    """,
                    (document_id,),
                )
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"Document {document_id} not found")
            conn.commit()


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def _to_record(row: dict[str, Any]) -> DocumentRecord:
    return DocumentRecord(
        id=str(row["id"]),
        owner_id=row["owner_id"],
        owner_type=row["owner_type"],
        document_type=row["document_type"],
        filename=row["filename"],
        mime_type=row["mime_type"],
        size_bytes=row["size_bytes"],
        storage_key=row["storage_key"],
        sha256_hash=row["sha256_hash"],
        scan_status=row["scan_status"],
        scan_completed_at=row["scan_completed_at"],
        metadata=row["metadata"] or {},
        deleted_at=row["deleted_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
