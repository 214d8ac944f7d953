import uuid
from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from app.audit.models import AuditEvent, AuditQuery
from app.database.connection import get_connection
from app.database.models import AuditEventRecord

_AUDIT_COLUMNS = """
    id, actor_id, actor_type, action, object_type, object_id, changes,
    ip_address, user_agent, request_id, timestamp
"""


class AuditEventsRepository:
    """Append-only access to the audit_events table. There is no update or delete."""

    def insert(self, event: AuditEvent) -> AuditEventRecord:
        """Write one event. The timestamp is assigned by the database."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO audit_events
                        (actor_id, actor_type, action, object_type, object_id,
                         changes, ip_address, user_agent, request_id)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING {_AUDIT_COLUMNS}
                    """,
                    (
                        event.actor_id,
                        event.actor_type.value,
                        event.action,
                        event.object_type,
                        event.object_id,
                        Jsonb(event.changes) if event.changes is not None else None,
                        event.ip_address,
                        event.user_agent,
                        event.request_id,
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError(f"Insert of audit event {event.action} returned no row")
        return _to_record(row)

    def query(self, query: AuditQuery, fetch_size: int) -> list[AuditEventRecord]:
        """Newest-first events matching the filters, strictly after the cursor row."""
        conditions: list[str] = []
        params: list[Any] = []
        if query.actor_id is not None:
            conditions.append("actor_id = %s")
            params.append(query.actor_id)
        if query.actor_type is not None:
            conditions.append("actor_type = %s")
            params.append(query.actor_type)
        if query.object_type is not None:
            conditions.append("object_type = %s")
            params.append(query.object_type)
        if query.object_id is not None:
            conditions.append("object_id = %s")
            params.append(query.object_id)
        if query.action:
            conditions.append("action LIKE %s")
            params.append(f"%{_escape_like(query.action)}%")
        if query.start is not None:
            conditions.append("timestamp >= %s")
            params.append(query.start)
        if query.end is not None:
            conditions.append("timestamp <= %s")
            params.append(query.end)
        if query.cursor is not None:
            if not _is_uuid(query.cursor):
                return []
            conditions.append(
                "(timestamp, id) < (SELECT timestamp, id FROM audit_events WHERE id = %s)"
            )
            params.append(query.cursor)
        params.append(fetch_size)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_AUDIT_COLUMNS}
                    FROM audit_events
                    {where}
                    ORDER BY timestamp DESC, id DESC
                    LIMIT %s
                    """,
                    params,
                )
                rows = cur.fetchall()
        return [_to_record(row) for row in rows]

    def count(self, actor_id: str | None = None) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                if actor_id is None:
                    cur.execute("SELECT COUNT(*) FROM audit_events")
                else:
                    cur.execute(
                        "SELECT COUNT(*) FROM audit_events WHERE actor_id = %s", (actor_id,)
                    )
                row = cur.fetchone()
        return int(row[0]) if row else 0


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def _to_record(row: dict[str, Any]) -> AuditEventRecord:
    return AuditEventRecord(
        id=str(row["id"]),
        actor_id=row["actor_id"],
        actor_type=row["actor_type"],
        action=row["action"],
        object_type=row["object_type"],
        object_id=row["object_id"],
        changes=row["changes"],
        ip_address=row["ip_address"],
        user_agent=row["user_agent"],
        request_id=row["request_id"],
        timestamp=row["timestamp"],
    )
