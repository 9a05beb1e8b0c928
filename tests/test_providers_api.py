import pytest

from homeservice.constants import VERIFICATION_PENDING
from tests.conftest import auth_headers, make_provider, make_service


@pytest.fixture
def providers(db, provider):
    nail_bar = make_provider(db, email="nails@example.com", business_name="Nail Bar")
    nail_bar.provider_profile.rating_average = 4.9
    pending = make_provider(db, email="pending@example.com", business_name="New Salon", verification=VERIFICATION_PENDING)
    db.commit()

    make_service(db, provider, name="Gel Manicure", category="Nails", subcategory="Gel Nails", price=900)
    make_service(db, provider, name="Bridal Makeup", category="Makeup", price=5000)
    make_service(db, nail_bar, name="Classic Pedicure", category="Nails", subcategory="Pedicure", price=400)
    make_service(db, nail_bar, name="Hidden Nail Art", category="Nails", status="draft")
    make_service(db, pending, name="Pending Manicure", category="Nails", price=100)
    return {"glow": provider, "nail_bar": nail_bar, "pending": pending}


def business_names(response):
    return [p["businessName"] for p in response.json()["providers"]]


class TestFeatured:
    def test_only_approved_by_rating(self, client, providers):
        response = client.get("/api/providers/featured")

        assert response.status_code == 200
        assert business_names(response) == ["Nail Bar", "Glow Studio"]

    def test_card_shape(self, client, providers):
        card = client.get("/api/providers/featured").json()["providers"][1]

        assert card["startingPrice"] == 900
        assert card["servicesCount"] == 2
        assert card["specializations"] == ["Makeup", "Nails"]
        assert card["location"]["city"] == "Guwahati"
        assert card["isVerified"] is True
        assert [s["name"] for s in card["services"]] == ["Gel Manicure", "Bridal Makeup"]

    def test_limit(self, client, providers):
        assert len(client.get("/api/providers/featured", params={"limit": 1}).json()["providers"]) == 1


class TestByCategory:
    def test_providers_offering_category(self, client, providers):
        response = client.get("/api/providers/category/nails")

        body = response.json()
        assert body["category"] == {"name": "Nails", "slug": "nails"}
        assert business_names(response) == ["Nail Bar", "Glow Studio"]
        assert body["pagination"]["total"] == 2
        nail_bar = body["providers"][0]
        assert nail_bar["servicesCount"] == 1

    def test_sort_by_price(self, client, providers):
        response = client.get("/api/providers/category/nails", params={"sortBy": "price"})
        assert [p["startingPrice"] for p in response.json()["providers"]] == [400, 900]

    def test_min_rating(self, client, providers):
        response = client.get("/api/providers/category/nails", params={"minRating": 4.8})
        assert business_names(response) == ["Nail Bar"]

    def test_category_without_providers(self, client, providers):
        response = client.get("/api/providers/category/hair")
        assert response.json()["providers"] == []
        assert response.json()["pagination"]["total"] == 0

    def test_unknown_category(self, client):
        assert client.get("/api/providers/category/plumbing").status_code == 404

    def test_by_subcategory(self, client, providers):
        response = client.get("/api/providers/subcategory/nails/pedicure")
        assert business_names(response) == ["Nail Bar"]
        assert response.json()["subcategory"] == {"name": "Pedicure", "slug": "pedicure"}

    def test_unknown_subcategory(self, client, providers):
        response = client.get("/api/providers/subcategory/nails/haircut")
        assert response.status_code == 404
        assert response.json()["detail"] == "Subcategory not found"


class TestProfile:
    def test_public_profile(self, client, providers):
        glow = providers["glow"]
        client.put(
            "/api/availability/schedule",
            json={"weeklySchedule": {}, "autoAcceptBookings": True},
            headers=auth_headers(glow),
        )

        provider = client.get(f"/api/providers/{glow.id}").json()["provider"]

        assert provider["businessName"] == "Glow Studio"
        assert [s["name"] for s in provider["services"]] == ["Gel Manicure", "Bridal Makeup"]
        assert provider["rating"] == {"average": 4.5, "count": 12}
        assert provider["availability"]["instantBooking"] is True
        assert provider["availability"]["weeklySchedule"]["monday"]["isAvailable"] is True

    def test_profile_without_availability_uses_defaults(self, client, providers):
        provider = client.get(f"/api/providers/{providers['nail_bar'].id}").json()["provider"]
        assert provider["availability"]["instantBooking"] is False
        assert provider["availability"]["maxAdvanceBookingDays"] == 30

    def test_unapproved_provider_is_hidden(self, client, providers):
        response = client.get(f"/api/providers/{providers['pending'].id}")
        assert response.status_code == 404
        assert response.json()["detail"] == "Provider not found"
