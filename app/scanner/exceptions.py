from app.exceptions import ServiceError, TransientInfrastructureError


class ScannerError(ServiceError):
    """Raised when the content scanner returns an unusable response."""


class ScannerUnavailableError(ScannerError, TransientInfrastructureError):
    """Raised when the content scanner cannot be reached."""
