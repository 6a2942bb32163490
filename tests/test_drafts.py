"""
Owner draft management tests
"""
import pytest

from homestay.core.auth import AuthContext, DA_ROLE
from homestay.core.errors import DuplicateActive, Forbidden, InvalidState, ValidationFailed
from homestay.db.models import Application, ApplicationDocument
from homestay.schemas.applications import ApplicationCreate, ApplicationUpdate, DocumentUpload


def draft_payload(**overrides) -> ApplicationCreate:
    fields = {
        "property_name": "Cedar Nest",
        "category": "silver",
        "owner_name": "Asha Devi",
        "owner_gender": "female",
        "district": "Shimla",
        "location_type": "gp",
        "double_bed_rooms": 2,
        "double_bed_beds": 2,
        "double_bed_room_rate": 2000,
        "attached_washrooms": 2,
    }
    fields.update(overrides)
    return ApplicationCreate(**fields)


class TestCreateDraft:

    def test_create_numbers_by_district(self, drafts, owner):
        # Act
        application = drafts.create_draft(owner, draft_payload())

        # Assert
        assert application.status == "draft"
        assert application.application_kind == "new_registration"
        assert application.application_number == "HP-HS-2026-SHI-000001"
        assert application.total_rooms == 2
        assert application.certificate_validity_years == 1

    def test_legacy_onboarding_numbering(self, drafts, owner):
        application = drafts.create_draft(owner, draft_payload(application_kind="legacy_rc", district="Kullu"))

        assert application.application_number == "LG-HS-2026-KUL-000001"
        assert application.parent_application_id is None

    def test_existing_draft_is_resumed(self, drafts, test_db, owner):
        first = drafts.create_draft(owner, draft_payload())

        second = drafts.create_draft(owner, draft_payload(property_name="Another name"))

        assert second.id == first.id
        assert test_db.query(Application).count() == 1

    def test_submitted_registration_blocks_new_one(self, drafts, owner, create_application):
        existing = create_application(status="under_scrutiny")

        with pytest.raises(DuplicateActive) as exc_info:
            drafts.create_draft(owner, draft_payload())

        assert exc_info.value.extra == {"existingApplicationId": existing.id, "status": "under_scrutiny"}

    def test_rooms_trimmed_to_ceiling(self, drafts, owner):
        application = drafts.create_draft(owner, draft_payload(double_bed_rooms=8))

        assert application.double_bed_rooms == 6
        assert application.total_rooms == 6

    def test_staff_cannot_create(self, drafts, da):
        with pytest.raises(Forbidden):
            drafts.create_draft(da, draft_payload())

    def test_numbering_continues_after_deletion(self, drafts, test_db):
        # Arrange
        first_owner = AuthContext(user_id="owner_001", role="property_owner")
        second_owner = AuthContext(user_id="owner_002", role="property_owner")
        first = drafts.create_draft(first_owner, draft_payload())
        second = drafts.create_draft(second_owner, draft_payload())
        drafts.delete_draft(first_owner, first.id)

        # Act
        third = drafts.create_draft(AuthContext(user_id="owner_003", role="property_owner"), draft_payload())

        # Assert
        assert second.application_number == "HP-HS-2026-SHI-000002"
        assert third.application_number == "HP-HS-2026-SHI-000003"
        assert test_db.query(Application).count() == 2

    def test_invalid_validity(self, drafts, owner):
        with pytest.raises(ValidationFailed, match="1 or 3 years"):
            drafts.create_draft(owner, draft_payload(certificate_validity_years=2))

    def test_documents_attached(self, drafts, test_db, owner):
        payload = draft_payload(
            documents=[
                DocumentUpload(
                    document_type="revenue_papers",
                    file_name="jamabandi.pdf",
                    file_path="uploads/jamabandi.pdf",
                    file_size=4096,
                    mime_type="application/pdf",
                )
            ]
        )

        application = drafts.create_draft(owner, payload)

        documents = test_db.query(ApplicationDocument).filter_by(application_id=application.id).all()
        assert [doc.document_type for doc in documents] == ["revenue_papers"]
        assert documents[0].verification_status == "pending"

    def test_document_type_policy_enforced(self, drafts, test_db, owner):
        payload = draft_payload(
            documents=[
                DocumentUpload(
                    document_type="property_photo",
                    file_name="front.pdf",
                    file_path="uploads/front.pdf",
                    file_size=4096,
                    mime_type="application/pdf",
                )
            ]
        )

        with pytest.raises(ValidationFailed, match="not accepted for property_photo"):
            drafts.create_draft(owner, payload)

        assert test_db.query(Application).count() == 0


class TestUpdateDraft:

    def test_edit_trimmed_to_remaining_beds(self, drafts, owner, create_application):
        # Arrange: 1 single + 3 doubles + 1 suite = 11 beds
        application = create_application(
            single_bed_rooms=1,
            single_bed_beds=1,
            single_bed_room_rate=1500,
            double_bed_rooms=3,
            family_suites=1,
            family_suite_beds=4,
            family_suite_rate=4000,
            attached_washrooms=5,
        )

        # Act
        updated = drafts.update_draft(owner, application.id, ApplicationUpdate(double_bed_rooms=4))

        # Assert
        assert updated.double_bed_rooms == 3
        assert updated.total_rooms == 5

    def test_untouched_fields_kept(self, drafts, owner, create_application):
        application = create_application()

        updated = drafts.update_draft(owner, application.id, ApplicationUpdate(property_name="Deodar Retreat"))

        assert updated.property_name == "Deodar Retreat"
        assert updated.owner_name == "Asha Devi"
        assert updated.double_bed_rooms == 2

    def test_only_drafts_are_editable(self, drafts, owner, create_application):
        application = create_application(status="submitted")

        with pytest.raises(InvalidState):
            drafts.update_draft(owner, application.id, ApplicationUpdate(property_name="New"))

    def test_other_owner_cannot_edit(self, drafts, create_application):
        application = create_application()
        other = AuthContext(user_id="owner_999", role="property_owner")

        with pytest.raises(Forbidden):
            drafts.update_draft(other, application.id, ApplicationUpdate(property_name="Mine now"))


class TestDeleteDraft:

    def test_delete_removes_draft_and_documents(self, drafts, test_db, owner, create_application, create_document):
        application = create_application()
        create_document(application.id)

        drafts.delete_draft(owner, application.id)

        assert test_db.query(Application).count() == 0
        assert test_db.query(ApplicationDocument).count() == 0

    def test_submitted_cannot_be_deleted(self, drafts, owner, create_application):
        application = create_application(status="submitted")

        with pytest.raises(InvalidState):
            drafts.delete_draft(owner, application.id)

    def test_staff_cannot_delete(self, drafts, create_application):
        application = create_application()

        with pytest.raises(Forbidden):
            drafts.delete_draft(AuthContext(user_id="da_shimla", role=DA_ROLE, district="Shimla"), application.id)
