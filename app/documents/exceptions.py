from app.exceptions import AccessDeniedError, NotFoundError, ValidationError


class DocumentNotFoundError(NotFoundError):
    """Raised when a document is unknown or soft-deleted."""


class DocumentValidationError(ValidationError):
    """Raised when a document request is malformed or not allowed in the current state."""


class DocumentAccessDeniedError(AccessDeniedError):
    """Raised when the requester is neither the owner nor an elevated role."""
