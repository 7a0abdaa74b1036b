def test_product_count_only_counts_in_stock(client, category, make_product):
    make_product(name="Radio", stock_quantity=2)
    make_product(name="Broken Radio", stock_quantity=0)

    body = client.get("/api/categories").json()
    assert body["success"] is True
    assert body["data"][0]["name"] == "Electronics"
    assert body["data"][0]["product_count"] == 1
    assert "products" not in body["data"][0]


def test_categories_sorted_with_products_included(client, admin_headers, category, make_product):
    client.post("/api/categories", json={"name": "Books"}, headers=admin_headers)
    for index in range(12):
        make_product(name=f"Item {index:02d}")

    data = client.get("/api/categories", params={"include_products": "true"}).json()["data"]
    assert [c["name"] for c in data] == ["Books", "Electronics"]
    assert data[0]["products"] == []
    assert len(data[1]["products"]) == 10
    assert data[1]["products"][0]["name"] == "Item 00"

    single = client.get(f"/api/categories/{category['id']}", params={"include_products": "true"}).json()["data"]
    assert single["product_count"] == 12
    assert len(single["products"]) == 12


def test_get_category_not_found(client):
    assert client.get("/api/categories/404").status_code == 404


def test_duplicate_category_name_rejected(client, admin_headers, category):
    response = client.post("/api/categories", json={"name": "  Electronics "}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Category name already exists"


def test_category_name_length_validated(client, admin_headers):
    response = client.post("/api/categories", json={"name": "X"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "name"


def test_update_category(client, admin_headers, category):
    response = client.put(f"/api/categories/{category['id']}", json={"description": "  "}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["description"] is None

    response = client.put(f"/api/categories/{category['id']}", json={"name": "Gadgets"}, headers=admin_headers)
    assert response.json()["data"]["name"] == "Gadgets"


def test_update_category_conflicts_and_empty_body(client, admin_headers, category):
    client.post("/api/categories", json={"name": "Books"}, headers=admin_headers)

    response = client.put(f"/api/categories/{category['id']}", json={"name": "Books"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Category name already exists"

    response = client.put(f"/api/categories/{category['id']}", json={}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "No valid fields to update"

    response = client.put("/api/categories/999", json={"name": "Nope"}, headers=admin_headers)
    assert response.status_code == 404


def test_delete_category_with_products_is_rejected(client, admin_headers, category, make_product):
    make_product(stock_quantity=0)
    response = client.delete(f"/api/categories/{category['id']}", headers=admin_headers)
    assert response.status_code == 400
    assert "It contains 1 product(s)" in response.json()["message"]
    assert client.get(f"/api/categories/{category['id']}").status_code == 200


def test_delete_empty_category(client, admin_headers, category):
    response = client.delete(f"/api/categories/{category['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert client.get(f"/api/categories/{category['id']}").status_code == 404
    assert client.delete(f"/api/categories/{category['id']}", headers=admin_headers).status_code == 404


def test_category_writes_require_admin(client, customer_headers, category):
    assert client.post("/api/categories", json={"name": "Toys"}, headers=customer_headers).status_code == 403
    assert client.delete(f"/api/categories/{category['id']}").status_code == 401
