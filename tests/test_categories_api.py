from homeservice.domain.categories.seed import MASTER_CATEGORIES, seed_categories
from homeservice.models import ServiceCategory
from tests.conftest import make_service


def test_seeding_is_idempotent(db):
    assert db.query(ServiceCategory).count() == len(MASTER_CATEGORIES)
    assert seed_categories(db) == 0


class TestListing:
    def test_list_categories_in_sort_order(self, client):
        body = client.get("/api/categories").json()

        assert body["total"] == 6
        assert [c["slug"] for c in body["categories"]] == [
            "hair",
            "makeup",
            "nails",
            "skin-aesthetics",
            "massage-body",
            "personal-care",
        ]
        hair = body["categories"][0]
        assert hair["subcategoryCount"] == len(hair["subcategories"])
        assert hair["subcategories"][0] == {
            "name": "Haircut",
            "slug": "haircut",
            "description": "Haircut",
            "icon": None,
            "color": None,
        }

    def test_featured_only(self, client):
        body = client.get("/api/categories", params={"featured": True}).json()
        assert [c["name"] for c in body["categories"]] == ["Hair", "Makeup", "Nails"]

    def test_inactive_categories_hidden(self, client, db):
        db.query(ServiceCategory).filter(ServiceCategory.slug == "nails").update({"is_active": False})
        db.commit()

        body = client.get("/api/categories").json()
        assert "nails" not in [c["slug"] for c in body["categories"]]
        assert client.get("/api/categories/nails").status_code == 404

    def test_stats_count_active_services(self, client, db, provider):
        make_service(db, provider, name="Gel Manicure", category="Nails")
        make_service(db, provider, name="Nail Art Session", category="Nails")
        make_service(db, provider, name="Paused Pedicure", category="Nails", status="inactive")

        stats = client.get("/api/categories/stats").json()["categories"]
        counts = {c["slug"]: c["serviceCount"] for c in stats}
        assert counts["nails"] == 2
        assert counts["hair"] == 0


class TestDetail:
    def test_get_category(self, client, db, provider):
        make_service(db, provider, name="Deep Tissue", category="Massage & Body")

        category = client.get("/api/categories/Massage-Body").json()["category"]
        assert category["name"] == "Massage & Body"
        assert category["serviceCount"] == 1

    def test_unknown_category(self, client):
        response = client.get("/api/categories/plumbing")
        assert response.status_code == 404
        assert response.json()["detail"] == "Category not found"

    def test_subcategories(self, client):
        body = client.get("/api/categories/personal-care/subcategories").json()
        assert body["categoryName"] == "Personal Care"
        assert [s["slug"] for s in body["subcategories"]] == ["waxing", "threading", "eyebrow-shaping", "lash-extensions"]


class TestSearch:
    def test_matches_categories_and_subcategories(self, client):
        results = client.get("/api/categories/search", params={"q": "nail"}).json()["results"]

        assert results[0] == {"type": "category", "name": "Nails", "slug": "nails"}
        subcategory_names = [r["name"] for r in results if r["type"] == "subcategory"]
        assert subcategory_names == ["Gel Nails", "Nail Art", "Nail Extensions"]
        assert all(r["parentSlug"] == "nails" for r in results if r["type"] == "subcategory")

    def test_query_too_short(self, client):
        response = client.get("/api/categories/search", params={"q": "n"})
        assert response.status_code == 400


class TestCategoryServices:
    def test_filters_by_subcategory_name_or_slug(self, client, db, provider):
        make_service(db, provider, name="Classic Manicure", category="Nails", subcategory="Manicure", price=500)
        make_service(db, provider, name="Chrome Gel Set", category="Nails", subcategory="Gel Nails", price=1200)
        make_service(db, provider, name="Blowout", category="Hair", subcategory="Blow Dry")

        everything = client.get("/api/categories/nails/services", params={"sortBy": "price"}).json()
        assert [s["name"] for s in everything["services"]] == ["Classic Manicure", "Chrome Gel Set"]
        assert everything["category"] == {"name": "Nails", "slug": "nails"}
        assert everything["services"][0]["provider"]["businessName"] == "Glow Studio"

        by_slug = client.get("/api/categories/nails/services", params={"subcategory": "gel-nails"}).json()
        assert [s["name"] for s in by_slug["services"]] == ["Chrome Gel Set"]

        by_name = client.get("/api/categories/nails/services", params={"subcategory": "Manicure"}).json()
        assert by_name["pagination"]["total"] == 1
