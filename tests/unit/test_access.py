import pytest

from app.database.models import DocumentRecord
from app.documents.access import ELEVATED_ROLES, can_access_document, owner_type_for
from app.documents.models import OwnerType, UserRole


def _make_document(owner_id: str = "owner-1") -> DocumentRecord:
    return DocumentRecord(
        id="d1",
        owner_id=owner_id,
        owner_type="PATIENT",
        document_type="PRESCRIPTION",
        filename="f.pdf",
        mime_type="application/pdf",
        size_bytes=0,
        storage_key="prescription/owner-1/1-x.pdf",
        sha256_hash="a" * 64,
        scan_status="CLEAN",
    )


class TestCanAccessDocument:
    @pytest.mark.parametrize("role", list(UserRole))
    def test_owner_always_allowed(self, role: UserRole) -> None:
        assert can_access_document(_make_document(), "owner-1", role)

    @pytest.mark.parametrize("role", sorted(ELEVATED_ROLES, key=lambda r: r.value))
    def test_elevated_roles_allowed(self, role: UserRole) -> None:
        assert can_access_document(_make_document(), "someone-else", role)

    @pytest.mark.parametrize(
        "role", [UserRole.PATIENT, UserRole.PRESCRIBER, UserRole.TECHNICIAN]
    )
    def test_other_roles_denied(self, role: UserRole) -> None:
        assert not can_access_document(_make_document(), "someone-else", role)


class TestOwnerType:
    def test_mapping(self) -> None:
        assert owner_type_for(UserRole.PATIENT) == OwnerType.PATIENT
        assert owner_type_for(UserRole.PRESCRIBER) == OwnerType.PRESCRIBER
        assert owner_type_for(UserRole.OPS) == OwnerType.STAFF
        assert owner_type_for(UserRole.TECHNICIAN) == OwnerType.STAFF
