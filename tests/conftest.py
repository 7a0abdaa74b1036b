import pytest
from fastapi.testclient import TestClient

from storefront.config import Settings
from storefront.main import create_app
from storefront.models import ROLE_ADMIN, User

PASSWORD = "secret123"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        upload_dir=str(tmp_path / "uploads"),
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def register(client, username, email=None, password=PASSWORD, **extra):
    payload = {
        "username": username,
        "email": email or f"{username}@mail.com",
        "password": password,
        "first_name": username.title(),
        "last_name": "Tester",
    }
    payload.update(extra)
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.json()
    return response.json()["data"]["user"]


def login(client, email, password=PASSWORD):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.json()
    return response.json()["data"]["token"]


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer_headers(client):
    register(client, "alice")
    return auth_header(login(client, "alice@mail.com"))


@pytest.fixture
def admin_headers(client, app):
    user = register(client, "boss")
    with app.state.session_factory() as db:
        db.query(User).filter(User.id == user["id"]).update({"role": ROLE_ADMIN})
        db.commit()
    return auth_header(login(client, "boss@mail.com"))


@pytest.fixture
def category(client, admin_headers):
    response = client.post(
        "/api/categories",
        json={"name": "Electronics", "description": "Gadgets and gear"},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.json()
    return response.json()["data"]


@pytest.fixture
def make_product(client, admin_headers, category):
    def _make(name="Widget", price="19.99", stock_quantity=10, **extra):
        payload = {
            "name": name,
            "price": price,
            "stock_quantity": stock_quantity,
            "category_id": category["id"],
        }
        payload.update(extra)
        response = client.post("/api/products", json=payload, headers=admin_headers)
        assert response.status_code == 201, response.json()
        return response.json()["data"]

    return _make
