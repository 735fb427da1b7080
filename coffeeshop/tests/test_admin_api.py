import inspect

import pytest
from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from coffeeshop.services.content_service import ContentService
from main import create_app


class TestAdminGate:
    @pytest.mark.parametrize("headers", [{}, {"X-Admin-Password": "wrong"}])
    def test_rejects_missing_or_wrong_password(self, client, headers):
        response = client.get("/api/admin/dashboard", headers=headers)
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "message": "Unauthorized: Admin only",
            "error": "UnauthorizedError",
        }

    def test_gate_applies_to_writes(self, client):
        response = client.post("/api/admin/products", json={"name": "X", "price": 1, "category": "c"})
        assert response.status_code == 401
        assert client.get("/api/products").json()["count"] == 0

    def test_dashboard_counts(self, client, admin_headers, create_product, register_user):
        create_product()
        deleted = create_product(name="Gone")
        client.delete(f"/api/products/{deleted['id']}")
        register_user()

        response = client.get("/api/admin/dashboard", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"] == {"products": 1, "categories": 0, "users": 1, "orders": 0}


class TestAdminProducts:
    def test_product_management(self, client, admin_headers):
        response = client.post(
            "/api/admin/products",
            json={"name": "Mocha", "price": 80000, "category": "coffee"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        product_id = response.json()["data"]["id"]

        response = client.put(f"/api/admin/products/{product_id}", json={"price": 85000}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["price"] == 85000
        assert response.json()["data"]["name"] == "Mocha"

        listed = client.get("/api/admin/products", headers=admin_headers).json()
        assert listed["count"] == 1

        response = client.delete(f"/api/admin/products/{product_id}", headers=admin_headers)
        assert response.status_code == 200
        assert client.get(f"/api/products/{product_id}").status_code == 404

    def test_set_discount(self, client, admin_headers, create_product):
        product = create_product(price=100000)
        response = client.post(f"/api/admin/discount/{product['id']}", json={"discount": 25}, headers=admin_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["discount"] == 25
        assert data["discountedPrice"] == 75000

        response = client.post(f"/api/admin/discount/{product['id']}", json={"discount": 101}, headers=admin_headers)
        assert response.status_code == 400


class TestSiteContent:
    def test_about_and_contact_pages(self, client, admin_headers):
        response = client.get("/api/about-us")
        assert response.status_code == 200
        assert response.json() == {"success": True, "title": "درباره ما", "content": ""}

        response = client.put("/api/admin/about-us", json={"content": "Roasting since 1999"}, headers=admin_headers)
        assert response.status_code == 200
        assert client.get("/api/about-us").json()["content"] == "Roasting since 1999"

        client.put("/api/admin/contact-us", json={"content": "hello@example.com"}, headers=admin_headers)
        body = client.get("/api/contact-us").json()
        assert body["title"] == "تماس با ما"
        assert body["content"] == "hello@example.com"

    def test_content_edit_requires_admin(self, client):
        assert client.put("/api/admin/contact-us", json={"content": "x"}).status_code == 401


class TestPublicEndpoints:
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_api_index(self, client):
        body = client.get("/api").json()
        assert body["success"] is True
        assert body["message"] == "Coffee Shop API is running!"
        assert body["endpoints"]["products"] == "/api/products"

    def test_unknown_route_uses_envelope(self, client):
        response = client.get("/api/nothing-here")
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_api_handlers_run_off_the_event_loop(self, settings):
        # Services block on bcrypt and storage I/O, so handlers must be plain functions
        endpoints = [
            route.endpoint for route in create_app(settings).routes
            if isinstance(route, APIRoute) and route.path.startswith("/api")
        ]
        assert endpoints
        assert not [e.__name__ for e in endpoints if inspect.iscoroutinefunction(e)]

    def test_unexpected_error_returns_generic_500(self, settings, monkeypatch):
        def explode(self, key):
            raise RuntimeError("boom")

        monkeypatch.setattr(ContentService, "get_page", explode)
        client = TestClient(create_app(settings), raise_server_exceptions=False)
        response = client.get("/api/about-us")
        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Something went wrong!", "error": "boom"}
