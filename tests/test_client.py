from decimal import Decimal

import httpx
import pytest

from conftest import PASSWORD, register
from storefront.client import ApiClientError, CartCache, CartStore, StorefrontClient


@pytest.fixture
def api(client):
    return StorefrontClient(http=client)


@pytest.fixture
def cache(tmp_path):
    return CartCache(tmp_path / "cart.json")


def test_login_stores_token_and_profile(api, client):
    register(client, "liam")
    user = api.login("liam@mail.com", PASSWORD)
    assert user["username"] == "liam"
    assert api.is_authenticated
    assert api.profile()["email"] == "liam@mail.com"

    api.logout()
    with pytest.raises(ApiClientError) as excinfo:
        api.profile()
    assert excinfo.value.status_code == 401
    assert excinfo.value.message == "Access token required"


def test_validation_errors_are_exposed(api):
    with pytest.raises(ApiClientError) as excinfo:
        api.register("x", "bad", "1", "", "")
    assert excinfo.value.status_code == 400
    assert {e["field"] for e in excinfo.value.errors} >= {"email", "password"}


def test_catalog_reads(api, make_product):
    make_product(name="Globe")
    result = api.list_products(search="glo")
    assert [p["name"] for p in result["items"]] == ["Globe"]
    assert result["pagination"]["total"] == 1
    assert api.list_categories()[0]["product_count"] == 1


def test_cart_cache_persists_between_instances(tmp_path):
    path = tmp_path / "cart.json"
    cache = CartCache(path)
    cache.add(3, 2)
    cache.add(3, 1)
    cache.add(7)

    reloaded = CartCache(path)
    assert reloaded.lines == {3: 3, 7: 1}
    assert reloaded.count() == 4

    with pytest.raises(ValueError):
        reloaded.update(3, 0)
    with pytest.raises(KeyError):
        reloaded.update(99, 1)


def test_cart_cache_ignores_corrupt_file(tmp_path):
    path = tmp_path / "cart.json"
    path.write_text("{not json")
    assert CartCache(path).lines == {}


def test_anonymous_cart_checks_stock(api, cache, make_product):
    product = make_product(price="19.99", stock_quantity=4)
    store = CartStore(api, cache)

    store.add(product["id"], 3)
    with pytest.raises(ApiClientError):
        store.add(product["id"], 2)
    assert store.count() == 3

    totals = store.totals()
    assert totals.subtotal == Decimal("59.97")
    assert totals.shipping == Decimal("10.00")


def test_sync_moves_cached_lines_to_server(api, cache, client, make_product):
    lamp = make_product(name="Lamp", stock_quantity=5)
    rug = make_product(name="Rug", stock_quantity=2)
    store = CartStore(api, cache)
    store.add(lamp["id"], 2)
    store.add(rug["id"], 2)

    register(client, "mia")
    api.login("mia@mail.com", PASSWORD)
    api.add_to_cart(rug["id"], 1)

    rejected = store.sync()
    assert rejected == [
        {"product_id": rug["id"], "quantity": 2, "message": "Cannot add more items than available in stock"},
    ]
    assert cache.lines == {}
    assert store.count() == 3

    store.update(lamp["id"], 4)
    names = {line["name"]: line["quantity"] for line in store.lines()}
    assert names == {"Lamp": 4, "Rug": 1}

    store.remove(rug["id"])
    assert store.count() == 4


def test_sync_requires_login(api, cache):
    with pytest.raises(RuntimeError):
        CartStore(api, cache).sync()


def test_place_order_through_client(api, client, make_product):
    product = make_product(price="50.00", stock_quantity=3)
    register(client, "noah")
    api.login("noah@mail.com", PASSWORD)
    api.add_to_cart(product["id"], 2)

    assert api.checkout_summary("cod")["total"] == 125.0
    shipping = {
        "first_name": "Noah", "last_name": "Tester", "email": "noah@mail.com",
        "address": "2 Ark Lane", "city": "Haifa", "state": "HA", "zip_code": "31000",
    }
    order = api.place_order(shipping, payment_method="cod")
    assert order["totals"]["total"] == 125.0
    assert api.cart_count() == 0


def test_sync_interrupted_by_network_error_keeps_only_unsent_lines(api, cache, client, make_product, monkeypatch):
    lamp = make_product(name="Lamp", stock_quantity=5)
    rug = make_product(name="Rug", stock_quantity=5)
    store = CartStore(api, cache)
    store.add(lamp["id"], 2)
    store.add(rug["id"], 2)

    register(client, "olga")
    api.login("olga@mail.com", PASSWORD)

    real_add = api.add_to_cart

    def flaky_add(product_id, quantity=1):
        if product_id == rug["id"]:
            raise httpx.ConnectError("connection dropped")
        return real_add(product_id, quantity)

    monkeypatch.setattr(api, "add_to_cart", flaky_add)
    with pytest.raises(httpx.ConnectError):
        store.sync()
    assert cache.lines == {rug["id"]: 2}

    monkeypatch.setattr(api, "add_to_cart", real_add)
    assert store.sync() == []
    quantities = {line["name"]: line["quantity"] for line in store.lines()}
    assert quantities == {"Lamp": 2, "Rug": 2}


def test_anonymous_lines_drop_deleted_products(api, cache, client, admin_headers, make_product):
    kept = make_product(name="Vase", price="12.00")
    gone = make_product(name="Clock", price="30.00")
    store = CartStore(api, cache)
    store.add(kept["id"], 1)
    store.add(gone["id"], 1)

    client.delete(f"/api/products/{gone['id']}", headers=admin_headers)

    assert [line["name"] for line in store.lines()] == ["Vase"]
    assert cache.lines == {kept["id"]: 1}
    assert store.totals().subtotal == Decimal("12.00")
