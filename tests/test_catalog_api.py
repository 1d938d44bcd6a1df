"""Catalogue API Tests: browsing and product comparison"""
import pytest

pytestmark = pytest.mark.integration


class TestCatalogBrowsing:
    """GET /v1/catalog"""

    def test_list_active_products(self, app_client, auth_headers):
        """Inactive products are not listed"""
        response = app_client.get("/v1/catalog", headers=auth_headers())

        assert response.status_code == 200
        data = response.json()
        # ordered by name
        assert [p["id"] for p in data["items"]] == ["prod-003", "prod-002", "prod-001"]
        assert data["pagination"]["total"] == 3
        assert all(p["isActive"] is True for p in data["items"])

    def test_filters(self, app_client, auth_headers):
        """Query parameters map onto the catalogue filter"""
        by_rating = app_client.get(
            "/v1/catalog?powerRating=22kW&powerRating=50kW", headers=auth_headers()
        ).json()
        by_price = app_client.get("/v1/catalog?minPrice=1000&maxPrice=2000", headers=auth_headers()).json()
        by_stock = app_client.get("/v1/catalog?availability=back-order", headers=auth_headers()).json()

        assert {p["id"] for p in by_rating["items"]} == {"prod-002", "prod-003"}
        assert {p["id"] for p in by_price["items"]} == {"prod-001", "prod-002"}
        assert [p["id"] for p in by_stock["items"]] == ["prod-003"]

    def test_pagination(self, app_client, auth_headers):
        """size and page slice the filtered list"""
        data = app_client.get("/v1/catalog?size=2&page=2", headers=auth_headers()).json()

        assert len(data["items"]) == 1
        assert data["pagination"] == {"page": 2, "size": 2, "total": 3, "pages": 2}

    def test_invalid_availability(self, app_client, auth_headers):
        """Unknown availability values are rejected"""
        response = app_client.get("/v1/catalog?availability=soon", headers=auth_headers())
        assert response.status_code == 400

    def test_brands_and_power_ratings(self, app_client, auth_headers):
        """Distinct sorted values from active products"""
        brands = app_client.get("/v1/catalog/brands", headers=auth_headers()).json()
        ratings = app_client.get("/v1/catalog/power-ratings", headers=auth_headers()).json()

        assert brands == {"brands": ["ABB", "Wallbox", "myenergi"]}
        assert ratings == {"powerRatings": ["22kW", "50kW", "7.4kW"]}

    def test_get_product(self, app_client, auth_headers):
        """Single product in camelCase shape"""
        response = app_client.get("/v1/catalog/prod-001", headers=auth_headers())

        assert response.status_code == 200
        assert response.json()["pricing"]["recommendedRetail"] == 1500
        assert "is_active" not in response.json()

    def test_unknown_product(self, app_client, auth_headers):
        """Missing products are 404"""
        response = app_client.get("/v1/catalog/prod-999", headers=auth_headers())

        assert response.status_code == 404
        assert response.json()["code"] == "PRODUCT_NOT_FOUND"

    def test_upstream_failure(self, app_client, auth_headers, fake_supabase):
        """Catalogue outages surface as 502"""
        fake_supabase.db.fail("products")
        response = app_client.get("/v1/catalog", headers=auth_headers())

        assert response.status_code == 502
        assert response.json()["code"] == "UPSTREAM_ERROR"


class TestCompareProducts:
    """POST /v1/catalog/compare"""

    @pytest.mark.critical
    def test_compare_two_products(self, app_client, auth_headers):
        """Price tie flags both; shortest lead time wins"""
        response = app_client.post(
            "/v1/catalog/compare", json={"productIds": ["prod-001", "prod-002"]}, headers=auth_headers()
        )

        assert response.status_code == 200
        data = response.json()
        rows = {row["key"]: row for row in data["rows"]}

        assert data["product_ids"] == ["prod-001", "prod-002"]
        assert data["is_empty"] is False
        assert [cell["display"] for cell in rows["pricing.recommendedRetail"]["cells"]] == ["$1,500", "$1,500"]
        assert all(cell["is_best"] for cell in rows["pricing.recommendedRetail"]["cells"])
        lead = {cell["product_id"]: cell["is_best"] for cell in rows["inventory.leadTime"]["cells"]}
        assert lead == {"prod-001": False, "prod-002": True}
        assert "specifications.efficiency" not in rows
        assert data["availability"] == {"prod-001": "In Stock", "prod-002": "Low Stock"}

    def test_missing_values_render_dash(self, app_client, auth_headers):
        """Fields one product lacks show '-'"""
        data = app_client.post(
            "/v1/catalog/compare", json={"productIds": ["prod-001", "prod-003"]}, headers=auth_headers()
        ).json()
        warranty = next(row for row in data["rows"] if row["key"] == "specifications.warranty")

        assert [cell["display"] for cell in warranty["cells"]] == ["3 years", "-"]

    def test_unknown_ids_reported(self, app_client, auth_headers):
        """Unknown ids are skipped and listed"""
        data = app_client.post(
            "/v1/catalog/compare", json={"productIds": ["prod-001", "nope"]}, headers=auth_headers()
        ).json()

        assert data["product_ids"] == ["prod-001"]
        assert data["missing_ids"] == ["nope"]

    def test_nothing_to_compare(self, app_client, auth_headers):
        """All-unknown selection gives an empty table"""
        data = app_client.post(
            "/v1/catalog/compare", json={"productIds": ["nope"]}, headers=auth_headers()
        ).json()

        assert data["is_empty"] is True
        assert data["rows"] == []

    def test_duplicates_compared_once(self, app_client, auth_headers):
        """The same id twice is one column"""
        data = app_client.post(
            "/v1/catalog/compare", json={"productIds": ["prod-002", "prod-002"]}, headers=auth_headers()
        ).json()
        assert data["product_ids"] == ["prod-002"]

    def test_too_many_products(self, app_client, auth_headers):
        """More than four distinct products is rejected"""
        ids = ["prod-001", "prod-002", "prod-003", "prod-004", "prod-005"]
        response = app_client.post("/v1/catalog/compare", json={"productIds": ids}, headers=auth_headers())

        assert response.status_code == 400
        assert response.json()["code"] == "TOO_MANY_PRODUCTS"

    def test_unknown_role_forbidden(self, app_client, auth_headers):
        """Roles without quotes.compare get 403"""
        response = app_client.post(
            "/v1/catalog/compare", json={"productIds": ["prod-001"]}, headers=auth_headers("contractor")
        )

        assert response.status_code == 403
        assert response.json()["code"] == "INSUFFICIENT_PERMISSIONS"


class TestCataloguePaging:
    """Rows past the first page of a Supabase read are still seen"""

    @pytest.fixture(autouse=True)
    def small_pages(self, monkeypatch):
        from api.config import config

        monkeypatch.setattr(config, "CATALOG_PAGE_LIMIT", 2)

    def test_listing_reads_every_page(self, app_client, auth_headers):
        """All three active products are listed with two rows per read"""
        data = app_client.get("/v1/catalog", headers=auth_headers()).json()

        assert [p["id"] for p in data["items"]] == ["prod-003", "prod-002", "prod-001"]
        assert data["pagination"]["total"] == 3

    def test_compare_product_past_first_page(self, app_client, auth_headers):
        """Comparison looks products up by id, not through the listing"""
        data = app_client.post(
            "/v1/catalog/compare", json={"productIds": ["prod-001"]}, headers=auth_headers()
        ).json()

        assert data["product_ids"] == ["prod-001"]
        assert data["missing_ids"] == []

    def test_compare_skips_inactive(self, app_client, auth_headers):
        """Inactive products are reported missing"""
        data = app_client.post(
            "/v1/catalog/compare", json={"productIds": ["prod-004", "prod-001"]}, headers=auth_headers()
        ).json()

        assert data["product_ids"] == ["prod-001"]
        assert data["missing_ids"] == ["prod-004"]
