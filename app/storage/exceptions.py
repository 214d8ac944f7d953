from app.exceptions import ServiceError, TransientInfrastructureError


class StorageError(ServiceError):
    """Raised when an object-storage operation fails."""


class StorageUnavailableError(StorageError, TransientInfrastructureError):
    """Raised when object storage cannot be reached or is throttling."""


class StorageObjectNotFoundError(StorageError):
    """Raised when reading an object that does not exist."""
