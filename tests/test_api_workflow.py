"""
HTTP surface tests

Tests cover:
- Owner draft and submission endpoints
- Problem-details error bodies with correlation IDs
- Authentication and role/district authorisation
- Payment signal, compliance helpers, workflow settings and health
"""
import pytest

from homestay.db.models import Application, Notification


def draft_body(**overrides) -> dict:
    body = {
        "property_name": "Cedar Nest",
        "category": "silver",
        "owner_name": "Asha Devi",
        "owner_gender": "female",
        "owner_mobile": "9816000000",
        "address": "Ward 3, Mashobra",
        "district": "Shimla",
        "location_type": "gp",
        "double_bed_rooms": 2,
        "double_bed_beds": 2,
        "double_bed_room_rate": 2000,
        "attached_washrooms": 2,
    }
    body.update(overrides)
    return body


@pytest.mark.integration
class TestOwnerEndpoints:

    def test_create_and_submit(self, client, test_db, auth_headers):
        headers = auth_headers()

        # Create
        created = client.post("/api/v1/applications", json=draft_body(), headers=headers)
        assert created.status_code == 201
        application_id = created.json()["id"]
        assert created.json()["status"] == "draft"
        assert created.json()["total_rooms"] == 2

        # Submit
        response = client.post(f"/api/v1/applications/{application_id}/submit", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "submitted"
        assert data["total_fee"] == 2850

        notification = test_db.query(Notification).one()
        assert notification.event == "application_submitted"
        assert notification.user_id == "owner_001"

    def test_edit_draft(self, client, auth_headers, create_application):
        application = create_application()

        response = client.patch(
            f"/api/v1/applications/{application.id}",
            json={"double_bed_rooms": 3, "attached_washrooms": 3},
            headers=auth_headers(),
        )

        assert response.status_code == 200
        assert response.json()["total_rooms"] == 3

    def test_delete_draft(self, client, test_db, auth_headers, create_application):
        application = create_application()

        response = client.delete(f"/api/v1/applications/{application.id}", headers=auth_headers())

        assert response.status_code == 204
        assert test_db.query(Application).count() == 0

    def test_list_only_own_applications(self, client, auth_headers, create_application):
        mine = create_application()
        create_application(user_id="owner_002")

        response = client.get("/api/v1/applications", headers=auth_headers())

        assert response.status_code == 200
        assert response.json()["total"] == 1
        assert response.json()["applications"][0]["id"] == mine.id

    def test_detail_includes_documents(self, client, auth_headers, create_application, create_document):
        application = create_application()
        create_document(application.id)

        response = client.get(f"/api/v1/applications/{application.id}", headers=auth_headers())

        assert response.status_code == 200
        assert [doc["document_type"] for doc in response.json()["documents"]] == ["revenue_papers"]

    def test_second_registration_conflict(self, client, auth_headers, create_application):
        existing = create_application(status="submitted")

        response = client.post("/api/v1/applications", json=draft_body(), headers=auth_headers())

        assert response.status_code == 409
        data = response.json()
        assert data["code"] == "duplicate_active"
        assert data["existingApplicationId"] == existing.id
        assert data["status"] == 409

    def test_timeline(self, client, auth_headers, create_application):
        application = create_application()
        client.post(f"/api/v1/applications/{application.id}/submit", headers=auth_headers())

        response = client.get(f"/api/v1/applications/{application.id}/timeline", headers=auth_headers())

        assert response.status_code == 200
        actions = response.json()["actions"]
        assert [action["action"] for action in actions] == ["owner_submitted"]
        assert actions[0]["new_status"] == "submitted"


@pytest.mark.integration
class TestProblemDetails:

    def test_otp_required(self, client, auth_headers, create_application):
        # Arrange
        application = create_application(status="under_scrutiny")
        headers = auth_headers(role="dealing_assistant", user_id="da_shimla", district="Shimla")
        headers["X-Correlation-Id"] = "corr-sendback-1"

        # Act
        response = client.post(
            f"/api/v1/da/applications/{application.id}/send-back",
            json={"reason": "Revenue papers unreadable"},
            headers=headers,
        )

        # Assert
        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "otp_required"
        assert data["requireOtp"] is True
        assert data["revertCount"] == 0
        assert data["correlation_id"] == "corr-sendback-1"
        assert response.headers["X-Correlation-Id"] == "corr-sendback-1"

    def test_send_back_with_otp(self, client, auth_headers, create_application):
        application = create_application(status="under_scrutiny")

        response = client.post(
            f"/api/v1/da/applications/{application.id}/send-back",
            json={"reason": "Revenue papers unreadable", "otp_verified": True},
            headers=auth_headers(role="dealing_assistant", user_id="da_shimla", district="Shimla"),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "reverted_to_applicant"

    def test_unauthenticated(self, client):
        response = client.get("/api/v1/applications")

        assert response.status_code == 401
        assert response.json()["code"] == "http_error"
        assert response.json()["detail"] == "Authentication required"
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["correlation_id"] == response.headers["X-Correlation-Id"]

    def test_other_district(self, client, auth_headers, create_application):
        application = create_application(status="submitted")

        response = client.post(
            f"/api/v1/da/applications/{application.id}/start-scrutiny",
            headers=auth_headers(role="dealing_assistant", user_id="da_kangra", district="Kangra"),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    def test_wrong_role(self, client, auth_headers, create_application):
        application = create_application(status="submitted")

        response = client.post(
            f"/api/v1/da/applications/{application.id}/start-scrutiny",
            headers=auth_headers(),
        )

        assert response.status_code == 403

    def test_not_found(self, client, auth_headers):
        response = client.get("/api/v1/applications/app_missing", headers=auth_headers())

        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_invalid_state(self, client, auth_headers, create_application):
        application = create_application(status="draft")

        response = client.post(
            f"/api/v1/dtdo/applications/{application.id}/reject",
            json={"remarks": "Incomplete"},
            headers=auth_headers(role="district_tourism_officer", user_id="dtdo_shimla", district="Shimla"),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_state"

    def test_request_validation(self, client, auth_headers):
        response = client.post(
            "/api/v1/applications",
            json=draft_body(double_bed_rooms=-1),
            headers=auth_headers(),
        )

        assert response.status_code == 422
        data = response.json()
        assert data["code"] == "request_invalid"
        assert data["errors"][0]["loc"] == ["body", "double_bed_rooms"]


@pytest.mark.integration
class TestStaffEndpoints:

    def test_da_queue_scoped_to_district(self, client, auth_headers, create_application):
        mine = create_application(status="submitted")
        create_application(status="submitted", district="Kangra", user_id="owner_002")

        response = client.get(
            "/api/v1/da/queue",
            headers=auth_headers(role="dealing_assistant", user_id="da_shimla", district="Shimla"),
        )

        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == [mine.id]

    def test_payment_signal_issues_certificate(self, client, test_db, auth_headers, create_application):
        application = create_application(status="verified_for_payment", total_fee=2850)

        response = client.post(
            f"/api/v1/payments/applications/{application.id}/paid",
            json={"payment_reference": "PAY-0001", "amount": 2850},
            headers=auth_headers(role="system", user_id="payment_gateway"),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        assert response.json()["certificate_number"].startswith("HP-HST-")
        assert test_db.query(Notification).filter_by(event="application_approved").count() == 1

    def test_owner_cannot_signal_payment(self, client, auth_headers, create_application):
        application = create_application(status="verified_for_payment")

        response = client.post(
            f"/api/v1/payments/applications/{application.id}/paid",
            json={"payment_reference": "PAY-0001"},
            headers=auth_headers(),
        )

        assert response.status_code == 403


@pytest.mark.integration
class TestComplianceEndpoints:

    def test_fee_quote(self, client):
        response = client.post(
            "/api/v1/compliance/fee",
            json={"category": "diamond", "location_type": "mc", "validity_years": 3, "owner_gender": "female"},
        )

        assert response.status_code == 200
        assert response.json()["final_fee"] == 45900
        assert response.json()["savings_percentage"] == 15.0

    def test_fee_quote_rejects_two_year_validity(self, client):
        response = client.post(
            "/api/v1/compliance/fee",
            json={"category": "silver", "location_type": "gp", "validity_years": 2},
        )

        assert response.status_code == 422

    def test_category_check(self, client):
        response = client.post(
            "/api/v1/compliance/category",
            json={"category": "gold", "total_rooms": 3, "highest_rate": 10001},
        )

        assert response.status_code == 200
        assert response.json()["is_valid"] is False
        assert response.json()["suggested_category"] == "diamond"


@pytest.mark.integration
class TestSettingsEndpoints:

    def test_admin_updates_setting(self, client, auth_headers):
        response = client.put(
            "/api/v1/settings/workflow/category_lock_to_recommended",
            json={"value": True},
            headers=auth_headers(role="admin", user_id="admin_001"),
        )

        assert response.status_code == 200
        assert response.json()["category_lock_to_recommended"] is True

        current = client.get("/api/v1/settings/workflow", headers=auth_headers())
        assert current.json()["category_lock_to_recommended"] is True

    def test_owner_cannot_update(self, client, auth_headers):
        response = client.put(
            "/api/v1/settings/workflow/category_lock_to_recommended",
            json={"value": True},
            headers=auth_headers(),
        )

        assert response.status_code == 403

    def test_unknown_key(self, client, auth_headers):
        response = client.put(
            "/api/v1/settings/workflow/max_rooms",
            json={"value": 10},
            headers=auth_headers(role="admin", user_id="admin_001"),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "validation_failed"


@pytest.mark.integration
class TestSystemEndpoints:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["health"] == "/health"
