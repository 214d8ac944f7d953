class QueueNames:
    """Named queues known to the service."""

    DOCUMENTS = "documents"
    NOTIFICATIONS = "notifications"
    BILLING = "billing"
    MAINTENANCE = "maintenance"
    AUDIT = "audit"
    HEALTH_CHECK = "health-check"


class JobKinds:
    """Job kind tags used on the named queues."""

    SCAN_DOCUMENT = "scan-document"
    WRITE_AUDIT_EVENT = "write-audit-event"
