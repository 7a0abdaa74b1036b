"""
HTTP client for the storefront API, plus the cart a front end works against.

`CartStore` is the one cart interface: it talks to the server when the client
is logged in and to a local `CartCache` otherwise. `CartStore.sync()` is the
only point where cached lines move to the server.
"""

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional

import httpx

from storefront.checkout import PaymentMethod, Totals, compute_totals

logger = logging.getLogger(__name__)


class ApiClientError(Exception):
    def __init__(self, status_code: int, message: str, errors: Optional[list] = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


class StorefrontClient:
    def __init__(self, base_url: str = "http://localhost:8000", http: Optional[httpx.Client] = None,
                 timeout: float = 10.0):
        self.http = http if http is not None else httpx.Client(base_url=base_url, timeout=timeout)
        self.token: Optional[str] = None
        self.user: Optional[dict] = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def _request(self, method: str, path: str, **kwargs) -> dict:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        resp = self.http.request(method, path, headers=headers, **kwargs)
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.status_code >= 400 or not body.get("success", False):
            raise ApiClientError(resp.status_code, body.get("message", resp.reason_phrase), body.get("errors"))
        return body

    # Auth

    def register(self, username: str, email: str, password: str, first_name: str, last_name: str,
                 **extra) -> dict:
        payload = dict(username=username, email=email, password=password,
                       first_name=first_name, last_name=last_name, **extra)
        return self._request("POST", "/api/auth/register", json=payload)["data"]["user"]

    def login(self, email: str, password: str) -> dict:
        data = self._request("POST", "/api/auth/login", json={"email": email, "password": password})["data"]
        self.token = data["token"]
        self.user = data["user"]
        return self.user

    def logout(self):
        self.token = None
        self.user = None

    def profile(self) -> dict:
        return self._request("GET", "/api/auth/profile")["data"]["user"]

    def update_profile(self, **fields) -> dict:
        self.user = self._request("PUT", "/api/auth/profile", json=fields)["data"]["user"]
        return self.user

    def change_password(self, current_password: str, new_password: str):
        self._request("PUT", "/api/auth/change-password",
                      json={"current_password": current_password, "new_password": new_password})

    # Catalog

    def list_products(self, **params) -> dict:
        body = self._request("GET", "/api/products", params=params)
        return {"items": body["data"], "pagination": body["pagination"]}

    def get_product(self, product_id: int) -> dict:
        return self._request("GET", f"/api/products/{product_id}")["data"]

    def list_categories(self, include_products: bool = False) -> List[dict]:
        params = {"include_products": "true"} if include_products else {}
        return self._request("GET", "/api/categories", params=params)["data"]

    # Cart

    def get_cart(self) -> dict:
        return self._request("GET", "/api/cart")["data"]

    def add_to_cart(self, product_id: int, quantity: int = 1) -> dict:
        return self._request("POST", "/api/cart", json={"product_id": product_id, "quantity": quantity})["data"]

    def update_cart_item(self, cart_id: int, quantity: int) -> dict:
        return self._request("PUT", f"/api/cart/{cart_id}", json={"quantity": quantity})["data"]

    def remove_cart_item(self, cart_id: int):
        self._request("DELETE", f"/api/cart/{cart_id}")

    def clear_cart(self):
        self._request("DELETE", "/api/cart")

    def cart_count(self) -> int:
        return self._request("GET", "/api/cart/count")["data"]["count"]

    # Checkout

    def checkout_summary(self, payment_method: str = PaymentMethod.CARD.value) -> dict:
        return self._request("GET", "/api/checkout/summary", params={"payment_method": payment_method})["data"]

    def place_order(self, shipping: dict, payment_method: str = PaymentMethod.CARD.value,
                    card: Optional[dict] = None) -> dict:
        payload = {"shipping": shipping, "payment_method": payment_method}
        if card is not None:
            payload["card"] = card
        return self._request("POST", "/api/checkout", json=payload)["data"]

    def close(self):
        self.http.close()


class CartCache:
    """Anonymous cart kept in a JSON file as {product_id: quantity}."""

    def __init__(self, path):
        self.path = Path(path)
        self.lines: Dict[int, int] = self._load()

    def _load(self) -> Dict[int, int]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text())
        except (ValueError, OSError) as exc:
            logger.warning("Ignoring unreadable cart cache %s: %s", self.path, exc)
            return {}
        return {int(product_id): int(quantity) for product_id, quantity in raw.items()}

    def save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({str(k): v for k, v in self.lines.items()}))

    def add(self, product_id: int, quantity: int = 1):
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")
        self.lines[product_id] = self.lines.get(product_id, 0) + quantity
        self.save()

    def update(self, product_id: int, quantity: int):
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")
        if product_id not in self.lines:
            raise KeyError(product_id)
        self.lines[product_id] = quantity
        self.save()

    def remove(self, product_id: int):
        self.lines.pop(product_id, None)
        self.save()

    def clear(self):
        self.lines = {}
        self.save()

    def count(self) -> int:
        return sum(self.lines.values())


class CartStore:
    def __init__(self, client: StorefrontClient, cache: CartCache):
        self.client = client
        self.cache = cache

    def _check_stock(self, product_id: int, quantity: int) -> dict:
        product = self.client.get_product(product_id)
        if quantity > product["stock_quantity"]:
            raise ApiClientError(400, "Insufficient stock")
        return product

    def _server_line(self, product_id: int) -> dict:
        for line in self.client.get_cart()["cart_items"]:
            if line["product_id"] == product_id:
                return line
        raise ApiClientError(404, "Cart item not found")

    def lines(self) -> List[dict]:
        if self.client.is_authenticated:
            return self.client.get_cart()["cart_items"]
        lines = []
        for product_id, quantity in list(self.cache.lines.items()):
            try:
                product = self.client.get_product(product_id)
            except ApiClientError as exc:
                if exc.status_code != 404:
                    raise
                logger.warning("Dropping cached line for missing product %s", product_id)
                self.cache.remove(product_id)
                continue
            price = Decimal(str(product["price"]))
            lines.append({
                "product_id": product_id,
                "name": product["name"],
                "price": price,
                "quantity": quantity,
                "subtotal": price * quantity,
            })
        return lines

    def add(self, product_id: int, quantity: int = 1):
        if self.client.is_authenticated:
            self.client.add_to_cart(product_id, quantity)
        else:
            self._check_stock(product_id, self.cache.lines.get(product_id, 0) + quantity)
            self.cache.add(product_id, quantity)

    def update(self, product_id: int, quantity: int):
        if self.client.is_authenticated:
            self.client.update_cart_item(self._server_line(product_id)["cart_id"], quantity)
        else:
            self._check_stock(product_id, quantity)
            self.cache.update(product_id, quantity)

    def remove(self, product_id: int):
        if self.client.is_authenticated:
            self.client.remove_cart_item(self._server_line(product_id)["cart_id"])
        else:
            self.cache.remove(product_id)

    def clear(self):
        if self.client.is_authenticated:
            self.client.clear_cart()
        else:
            self.cache.clear()

    def count(self) -> int:
        if self.client.is_authenticated:
            return self.client.cart_count()
        return self.cache.count()

    def totals(self, payment_method=PaymentMethod.CARD) -> Totals:
        return compute_totals(((line["price"], line["quantity"]) for line in self.lines()), payment_method)

    def sync(self) -> List[dict]:
        """Push cached lines to the server cart, removing each from the cache
        once the server has answered for it.

        Returns the lines the server refused, e.g. when merging would exceed stock.
        A transport error leaves only the unsent lines cached.
        """
        if not self.client.is_authenticated:
            raise RuntimeError("Log in before syncing the cart")
        rejected = []
        for product_id, quantity in list(self.cache.lines.items()):
            try:
                self.client.add_to_cart(product_id, quantity)
            except ApiClientError as exc:
                logger.warning("Cached line for product %s not synced: %s", product_id, exc.message)
                rejected.append({"product_id": product_id, "quantity": quantity, "message": exc.message})
            self.cache.remove(product_id)
        return rejected
