import pytest
from fastapi.testclient import TestClient

from coffeeshop.core.config import Settings
from coffeeshop.core.database import build_unit_of_work_factory
from main import create_app

ADMIN_PASSWORD = "test-admin-password"


def make_settings(tmp_path, backend: str) -> Settings:
    database_url = f"sqlite:///{tmp_path / 'coffeeshop_test.db'}" if backend == "sql" else None
    return Settings(
        database_url=database_url,
        data_file=tmp_path / "db.json",
        users_file=tmp_path / "users.json",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        admin_password=ADMIN_PASSWORD,
        log_level="WARNING",
    )


@pytest.fixture(params=["json", "sql"])
def settings(request, tmp_path):
    """Every test using this fixture runs once per persistence backend"""
    return make_settings(tmp_path, request.param)


@pytest.fixture
def uow_factory(settings):
    return build_unit_of_work_factory(settings)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def admin_headers():
    return {"X-Admin-Password": ADMIN_PASSWORD}


@pytest.fixture
def create_product(client):
    """Factory creating a product through the API and returning its JSON"""

    def _create(**overrides):
        payload = {"name": "Espresso", "price": 50000, "category": "coffee"}
        payload.update(overrides)
        response = client.post("/api/products", json=payload)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest.fixture
def register_user(client):
    """Factory signing a user up and in; returns ``(user_id, auth_headers)``"""

    def _register(username="alice", email="alice@example.com", password="s3cret-pass"):
        response = client.post("/api/users/signup", json={
            "username": username,
            "email": email,
            "password": password,
        })
        assert response.status_code == 201, response.text
        user_id = response.json()["data"]["user"]["id"]
        response = client.post("/api/users/signin", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        token = response.json()["data"]["token"]
        return user_id, {"Authorization": f"Bearer {token}"}

    return _register
