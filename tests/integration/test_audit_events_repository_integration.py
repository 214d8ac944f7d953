from datetime import datetime, timedelta, timezone

import pytest

from app.audit.models import ActorType, AuditEvent, AuditQuery
from app.database.repositories.audit_events_repository import AuditEventsRepository


def _event(actor_id: str, action: str, object_id: str = "o1") -> AuditEvent:
    return AuditEvent(
        actor_id=actor_id,
        actor_type=ActorType.USER,
        action=action,
        object_type="Document",
        object_id=object_id,
        changes={"field": "value"},
    )


@pytest.mark.integration
class TestAuditEventsRepository:
    def test_insert_assigns_id_and_timestamp(self, owner_id: str) -> None:
        record = AuditEventsRepository().insert(_event(owner_id, "DOCUMENT_UPLOAD"))

        assert record.id
        assert record.timestamp is not None
        assert record.changes == {"field": "value"}

    def test_query_newest_first_with_cursor(self, owner_id: str) -> None:
        repo = AuditEventsRepository()
        ids = [repo.insert(_event(owner_id, "DOCUMENT_DOWNLOAD")).id for _ in range(3)]

        first = repo.query(AuditQuery(actor_id=owner_id, limit=2), fetch_size=3)
        assert [r.id for r in first] == list(reversed(ids))

        rest = repo.query(AuditQuery(actor_id=owner_id, cursor=ids[1]), fetch_size=21)
        assert [r.id for r in rest] == [ids[0]]

    def test_action_filter_is_case_sensitive_substring(self, owner_id: str) -> None:
        repo = AuditEventsRepository()
        repo.insert(_event(owner_id, "AUTH_LOGIN"))
        download = repo.insert(_event(owner_id, "DOCUMENT_DOWNLOAD"))

        rows = repo.query(AuditQuery(actor_id=owner_id, action="DOWNLOAD"), fetch_size=21)
        lowercase = repo.query(AuditQuery(actor_id=owner_id, action="download"), fetch_size=21)

        assert [r.id for r in rows] == [download.id]
        assert lowercase == []

    def test_underscore_in_action_filter_is_literal(self, owner_id: str) -> None:
        repo = AuditEventsRepository()
        repo.insert(_event(owner_id, "AUTHXLOGIN"))
        login = repo.insert(_event(owner_id, "AUTH_LOGIN"))

        rows = repo.query(AuditQuery(actor_id=owner_id, action="H_L"), fetch_size=21)

        assert [r.id for r in rows] == [login.id]

    def test_time_range(self, owner_id: str) -> None:
        repo = AuditEventsRepository()
        repo.insert(_event(owner_id, "AUTH_LOGIN"))
        future = datetime.now(timezone.utc) + timedelta(days=1)

        rows = repo.query(AuditQuery(actor_id=owner_id, start=future), fetch_size=21)

        assert rows == []

    def test_count(self, owner_id: str) -> None:
        repo = AuditEventsRepository()
        repo.insert(_event(owner_id, "AUTH_LOGIN"))
        repo.insert(_event(owner_id, "AUTH_LOGOUT"))

        assert repo.count(owner_id) == 2
