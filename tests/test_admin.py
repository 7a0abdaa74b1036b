from fastapi.testclient import TestClient

from conftest import auth_header, login, register
from storefront.main import create_app


def test_dashboard_statistics(client, admin_headers, make_product):
    make_product(name="Kettle", price="30.00", stock_quantity=2)
    make_product(name="Toaster", price="12.50", stock_quantity=0)

    data = client.get("/api/admin/dashboard", headers=admin_headers).json()["data"]
    assert data == {"total_products": 2, "total_categories": 1, "inventory_value": 60.0}


def test_admin_product_list_includes_out_of_stock(client, admin_headers, make_product):
    make_product(name="Kettle", stock_quantity=2)
    make_product(name="Toaster", stock_quantity=0)

    names = {p["name"] for p in client.get("/api/admin/products", headers=admin_headers).json()["data"]}
    assert names == {"Kettle", "Toaster"}
    assert len(client.get("/api/products").json()["data"]) == 1


def test_admin_update_and_delete_product(client, admin_headers, make_product):
    product = make_product(name="Kettle", stock_quantity=2)

    response = client.put(f"/api/admin/products/{product['id']}", json={"price": "45.00"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["price"] == 45.0

    assert client.delete(f"/api/admin/products/{product['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/products/{product['id']}").status_code == 404


def test_list_users_and_promote(client, admin_headers):
    customer = register(client, "judy")

    users = client.get("/api/admin/users", headers=admin_headers).json()["data"]
    assert [u["username"] for u in users] == ["boss", "judy"]
    assert all("password_hash" not in u for u in users)

    response = client.put(f"/api/admin/users/{customer['id']}/role", json={"role": "admin"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["role"] == "admin"

    judy = auth_header(login(client, "judy@mail.com"))
    assert client.get("/api/admin/dashboard", headers=judy).status_code == 200


def test_set_role_rejects_unknown_role_and_user(client, admin_headers):
    customer = register(client, "kate")
    response = client.put(f"/api/admin/users/{customer['id']}/role", json={"role": "owner"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "role"

    response = client.put("/api/admin/users/999/role", json={"role": "admin"}, headers=admin_headers)
    assert response.status_code == 404


def test_admin_routes_reject_customers(client, customer_headers):
    assert client.get("/api/admin/users", headers=customer_headers).status_code == 403
    assert client.get("/api/admin/products").status_code == 401


def test_bootstrap_admin_account(settings):
    settings = settings.model_copy(update={
        "admin_username": "root", "admin_email": "root@mail.com", "admin_password": "rootpass",
    })
    with TestClient(create_app(settings)) as client:
        token = login(client, "root@mail.com", "rootpass")
        response = client.get("/api/admin/dashboard", headers=auth_header(token))
        assert response.status_code == 200


def test_health_and_root(client):
    assert client.get("/").json()["message"] == "Storefront API is running!"
    body = client.get("/api/health").json()
    assert body["success"] is True
    assert "timestamp" in body


def test_unknown_route_uses_envelope(client):
    response = client.get("/api/nowhere")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Route /api/nowhere not found"}


def test_bootstrap_admin_promotes_existing_username(settings, client):
    register(client, "root", email="someone@mail.com")
    settings = settings.model_copy(update={
        "admin_username": "root", "admin_email": "root@mail.com", "admin_password": "rootpass",
    })
    with TestClient(create_app(settings)) as second:
        token = login(second, "someone@mail.com")
        response = second.get("/api/admin/dashboard", headers=auth_header(token))
        assert response.status_code == 200
