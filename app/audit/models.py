from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from app.exceptions import ValidationError
from app.pagination import DEFAULT_LIMIT, PageRequest


class ActorType(str, Enum):
    USER = "USER"
    SYSTEM = "SYSTEM"
    INTEGRATION = "INTEGRATION"


@dataclass(frozen=True)
class AuditEvent:
    """An audit fact as submitted by a caller. The timestamp is assigned at write time."""

    actor_type: ActorType
    action: str
    object_type: str
    object_id: str
    actor_id: str | None = None
    changes: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Job payload shape for write-audit-event."""
        return {
            "actorId": self.actor_id,
            "actorType": self.actor_type.value,
            "action": self.action,
            "objectType": self.object_type,
            "objectId": self.object_id,
            "changes": self.changes,
            "ipAddress": self.ip_address,
            "userAgent": self.user_agent,
            "requestId": self.request_id,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "AuditEvent":
        """Rebuild an event from a write-audit-event job payload.

        Raises:
            ValueError: if required fields are missing or the actor type is unknown.
        """
        for key in ("actorType", "action", "objectType", "objectId"):
            if not payload.get(key):
                raise ValueError(f"write-audit-event payload is missing '{key}'")
        return cls(
            actor_type=ActorType(payload["actorType"]),
            action=payload["action"],
            object_type=payload["objectType"],
            object_id=str(payload["objectId"]),
            actor_id=payload.get("actorId"),
            changes=payload.get("changes"),
            ip_address=payload.get("ipAddress"),
            user_agent=payload.get("userAgent"),
            request_id=payload.get("requestId"),
        )


@dataclass(frozen=True)
class AuditQuery:
    """Filters for audit queries. All filters are optional and combined with AND."""

    actor_id: str | None = None
    actor_type: str | None = None
    object_type: str | None = None
    object_id: str | None = None
    action: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    cursor: str | None = None
    limit: int = DEFAULT_LIMIT

    def __post_init__(self) -> None:
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValidationError("start must not be after end")
        known_actor_types = {actor_type.value for actor_type in ActorType}
        if self.actor_type is not None and self.actor_type not in known_actor_types:
            raise ValidationError(f"Unknown actor type: {self.actor_type}")

    @property
    def page(self) -> PageRequest:
        return PageRequest(cursor=self.cursor, limit=self.limit)
