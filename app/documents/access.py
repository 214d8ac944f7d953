from app.database.models import DocumentRecord
from app.documents.models import OwnerType, UserRole

# Roles with read access to every document regardless of ownership.
ELEVATED_ROLES = frozenset({UserRole.OPS, UserRole.BILLING, UserRole.COMPLIANCE_ADMIN})


def can_access_document(document: DocumentRecord, requester_id: str, role: UserRole) -> bool:
    """Owners can always access their documents; elevated roles can access all."""
    if document.owner_id == requester_id:
        return True
    return role in ELEVATED_ROLES


def owner_type_for(role: UserRole) -> OwnerType:
    if role == UserRole.PATIENT:
        return OwnerType.PATIENT
    if role == UserRole.PRESCRIBER:
        return OwnerType.PRESCRIBER
    return OwnerType.STAFF
