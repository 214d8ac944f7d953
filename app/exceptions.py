class ServiceError(Exception):
    """Base exception for all errors surfaced by this service."""


class ValidationError(ServiceError):
    """Raised when a caller-supplied request cannot be honoured as given."""


class AccessDeniedError(ServiceError):
    """Raised when the requester may not act on the target resource."""


class NotFoundError(ServiceError):
    """Raised when a resource is unknown or no longer visible."""


class TransientInfrastructureError(ServiceError):
    """Raised when a backing service (broker, storage, scanner) is unreachable."""
