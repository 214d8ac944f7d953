from app.exceptions import NotFoundError, ServiceError, TransientInfrastructureError


class QueueError(ServiceError):
    """Base exception for all queue-related errors."""


class BrokerUnavailableError(QueueError, TransientInfrastructureError):
    """Raised when the job broker cannot be reached."""


class JobNotFoundError(QueueError, NotFoundError):
    """Raised when a job id is unknown to the broker."""


class QueueClosedError(QueueError):
    """Raised when enqueueing into a queue manager that has been closed."""
