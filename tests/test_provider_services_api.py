import pytest

from homeservice.constants import (
    ROLE_PROVIDER,
    SERVICE_ACTIVE,
    SERVICE_INACTIVE,
    SERVICE_PENDING_REVIEW,
    VERIFICATION_PENDING,
    VERIFICATION_REJECTED,
)
from homeservice.models import Service
from tests.conftest import auth_headers, complete_profile, make_provider, make_service, make_user

SERVICES_URL = "/api/provider/services"


def new_service(**overrides):
    payload = {
        "name": "Party Glam",
        "category": "makeup",
        "subcategory": "Party Makeup",
        "description": "<b>Full</b> glam look for evening parties",
        "price": {"amount": 1800, "currency": "INR", "type": "fixed"},
        "duration": 90,
        "tags": [" Glam ", "PARTY"],
        "addOns": [{"name": "Lashes", "price": 300}],
    }
    payload.update(overrides)
    return payload


class TestCreate:
    def test_submits_for_review_with_inherited_location(self, client, db, provider):
        response = client.post(SERVICES_URL, json=new_service(), headers=auth_headers(provider))

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Service submitted for admin approval"
        service = body["service"]
        assert service["status"] == SERVICE_PENDING_REVIEW
        assert service["isActive"] is False
        assert service["category"] == "Makeup"
        assert service["description"] == "Full glam look for evening parties"
        assert service["tags"] == ["glam", "party"]
        assert service["addOns"][0]["name"] == "Lashes"
        assert service["location"]["coordinates"] == [91.7362, 26.1445]
        assert service["location"]["address"]["city"] == "Guwahati"
        assert service["location"]["serviceRadius"] == 20

    def test_pending_service_is_not_searchable(self, client, provider):
        client.post(SERVICES_URL, json=new_service(), headers=auth_headers(provider))
        assert client.get("/api/search/services").json()["services"] == []

    def test_requires_provider_location(self, client, db):
        bare = make_user(db, "bare@example.com", role=ROLE_PROVIDER)

        response = client.post(SERVICES_URL, json=new_service(), headers=auth_headers(bare))

        assert response.status_code == 400
        assert response.json()["detail"] == "Provider location not found. Please complete your profile first."

    @pytest.mark.parametrize(
        "overrides",
        [
            {"category": "plumbing"},
            {"name": "ab"},
            {"description": "short"},
            {"duration": 10},
            {"price": {"amount": 100, "currency": "JPY"}},
            {"tags": [f"tag{i}" for i in range(11)]},
        ],
    )
    def test_validation(self, client, provider, overrides):
        response = client.post(SERVICES_URL, json=new_service(**overrides), headers=auth_headers(provider))
        assert response.status_code == 422

    def test_customers_are_rejected(self, client, customer):
        response = client.post(SERVICES_URL, json=new_service(), headers=auth_headers(customer))
        assert response.status_code == 403
        assert response.json()["detail"] == "Only providers can access this endpoint"


class TestManage:
    def test_list_filters_and_sorts(self, client, db, provider):
        make_service(db, provider, name="Bridal Makeup", price=5000)
        make_service(db, provider, name="Express Makeup", price=800)
        make_service(db, provider, name="Old Package", status=SERVICE_INACTIVE)

        response = client.get(
            SERVICES_URL,
            params={"status": SERVICE_ACTIVE, "sortBy": "price", "order": "asc"},
            headers=auth_headers(provider),
        )

        body = response.json()
        assert [s["name"] for s in body["services"]] == ["Express Makeup", "Bridal Makeup"]
        assert body["pagination"]["total"] == 2

    def test_other_providers_services_are_hidden(self, client, db, provider):
        other = make_provider(db, email="other@example.com", business_name="Other Studio")
        theirs = make_service(db, other, name="Their Service")

        response = client.get(f"{SERVICES_URL}/{theirs.id}", headers=auth_headers(provider))

        assert response.status_code == 404
        assert response.json()["detail"] == "Service not found or access denied"
        assert client.get(SERVICES_URL, headers=auth_headers(provider)).json()["services"] == []

    def test_update(self, client, db, provider):
        service = make_service(db, provider, name="Bridal Makeup")

        response = client.put(
            f"{SERVICES_URL}/{service.id}",
            json={"price": {"amount": 2500}, "description": "Airbrush <i>bridal</i> look", "tags": ["Airbrush"]},
            headers=auth_headers(provider),
        )

        assert response.json()["message"] == "Service updated successfully"
        updated = response.json()["service"]
        assert updated["price"]["amount"] == 2500
        assert updated["description"] == "Airbrush bridal look"
        assert updated["tags"] == ["airbrush"]
        assert updated["name"] == "Bridal Makeup"
        assert updated["price"] == {"amount": 2500, "currency": "INR", "type": "fixed"}

    def test_update_add_ons_keep_optional_fields(self, client, db, provider):
        service = make_service(db, provider)

        response = client.put(
            f"{SERVICES_URL}/{service.id}",
            json={"price": {"amount": 800, "type": "hourly"}, "addOns": [{"name": "Lashes", "price": 300}]},
            headers=auth_headers(provider),
        )

        assert response.status_code == 200
        updated = response.json()["service"]
        assert updated["price"]["type"] == "hourly"
        assert updated["addOns"] == [{"name": "Lashes", "price": 300, "description": None}]

    def test_delete_deactivates(self, client, db, provider):
        service = make_service(db, provider)

        response = client.delete(f"{SERVICES_URL}/{service.id}", headers=auth_headers(provider))

        assert response.json() == {"message": "Service deleted successfully"}
        db.refresh(service)
        assert service.status == SERVICE_INACTIVE
        assert service.is_active is False
        assert db.query(Service).count() == 1

    def test_status_change(self, client, db, provider):
        complete_profile(db, provider)
        service = make_service(db, provider, status=SERVICE_INACTIVE)

        response = client.patch(
            f"{SERVICES_URL}/{service.id}/status", json={"status": "active"}, headers=auth_headers(provider)
        )

        assert response.json()["message"] == "Service status updated to active"
        assert response.json()["service"]["isActive"] is True

    def test_invalid_status(self, client, db, provider):
        complete_profile(db, provider)
        service = make_service(db, provider)

        response = client.patch(
            f"{SERVICES_URL}/{service.id}/status", json={"status": "archived"}, headers=auth_headers(provider)
        )

        assert response.status_code == 400
        assert response.json()["detail"].startswith("Invalid status. Must be:")


class TestGoLiveGuard:
    """Only approved providers with a complete profile may change a service status"""

    def change_status(self, client, user, service):
        return client.patch(f"{SERVICES_URL}/{service.id}/status", json={"status": "active"}, headers=auth_headers(user))

    def test_incomplete_profile(self, client, db, provider):
        response = self.change_status(client, provider, make_service(db, provider, status=SERVICE_INACTIVE))
        assert response.status_code == 403
        assert response.json()["detail"] == "Please complete your provider profile"

    @pytest.mark.parametrize(
        "verification, message",
        [
            (VERIFICATION_PENDING, "Provider verification is pending"),
            (VERIFICATION_REJECTED, "Provider verification was rejected"),
        ],
    )
    def test_unapproved_provider(self, client, db, verification, message):
        applicant = make_provider(db, email="new@example.com", business_name="New Salon", verification=verification)
        response = self.change_status(client, applicant, make_service(db, applicant, status=SERVICE_PENDING_REVIEW))
        assert response.status_code == 403
        assert response.json()["detail"] == message

    def test_customer(self, client, db, provider, customer):
        response = self.change_status(client, customer, make_service(db, provider))
        assert response.status_code == 403
        assert response.json()["detail"] == "Provider access required"


class TestAnalytics:
    def test_overview(self, client, db, provider):
        make_service(db, provider, name="Bridal Makeup", search_count=10, click_count=4, popularity_score=2.2)
        make_service(db, provider, name="Party Makeup", search_count=10, click_count=1, popularity_score=1.3)
        make_service(db, provider, name="Draft Look", status="draft")

        overview = client.get("/api/provider/analytics", headers=auth_headers(provider)).json()["overview"]

        assert overview["serviceStats"] == {
            "total": 3,
            "active": 2,
            "draft": 1,
            "inactive": 0,
            "pendingReview": 0,
        }
        assert overview["performanceStats"]["totalViews"] == 20
        assert overview["performanceStats"]["conversionRate"] == 25.0
        assert overview["topServices"][0]["name"] == "Bridal Makeup"

    def test_single_service(self, client, db, provider):
        service = make_service(db, provider, search_count=8, click_count=2)

        analytics = client.get(f"{SERVICES_URL}/{service.id}/analytics", headers=auth_headers(provider)).json()

        assert analytics["analytics"]["conversionRate"] == 25.0
        assert [a["period"] for a in analytics["analytics"]["recentActivity"]] == ["Last 7 days", "Last 30 days"]
