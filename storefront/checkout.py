"""
Checkout totals and the simulated order flow.

Orders are computed server-side but never stored: placing one returns the
order snapshot and empties the cart.
"""

import enum
import logging
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, NamedTuple, Tuple

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)

TAX_RATE = Decimal("0.10")
FLAT_SHIPPING = Decimal("10.00")
FREE_SHIPPING_THRESHOLD = Decimal("100.00")
COD_SHIPPING = Decimal("15.00")

TWO_PLACES = Decimal("0.01")


class PaymentMethod(str, enum.Enum):
    CARD = "card"
    COD = "cod"  # cash on delivery


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Totals(NamedTuple):
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal


def money(amount) -> Decimal:
    if not isinstance(amount, Decimal):
        amount = Decimal(str(amount))
    return amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def shipping_fee(subtotal: Decimal, payment_method: PaymentMethod) -> Decimal:
    if payment_method == PaymentMethod.COD:
        return COD_SHIPPING
    if subtotal > FREE_SHIPPING_THRESHOLD:
        return Decimal("0.00")
    return FLAT_SHIPPING


def compute_totals(lines: Iterable[Tuple[object, int]], payment_method=PaymentMethod.CARD) -> Totals:
    """Totals for (price, quantity) pairs.

    Cash on delivery always pays the COD fee; otherwise shipping is free once
    the subtotal exceeds the threshold.
    """
    payment_method = PaymentMethod(payment_method)
    subtotal = money(sum((money(price) * quantity for price, quantity in lines), Decimal("0")))
    tax = money(subtotal * TAX_RATE)
    shipping = money(shipping_fee(subtotal, payment_method))
    return Totals(subtotal, tax, shipping, money(subtotal + tax + shipping))


def mask_card_number(card_number: str) -> str:
    return "****" + card_number[-4:]


class CheckoutService:
    def __init__(self, cart):
        self.cart = cart

    def summary(self, payment_method: PaymentMethod) -> dict:
        lines = self.cart.lines()
        totals = compute_totals(((line.product.price, line.quantity) for line in lines), payment_method)
        return {
            "payment_method": PaymentMethod(payment_method).value,
            "item_count": len(lines),
            **totals._asdict(),
        }

    def place_order(self, request) -> dict:
        lines = self.cart.lines()
        if not lines:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cart is empty")
        for line in lines:
            if line.quantity > line.product.stock_quantity:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Insufficient stock for {line.product.name}",
                )

        totals = compute_totals(((line.product.price, line.quantity) for line in lines), request.payment_method)
        now = datetime.now(timezone.utc)
        delivery_days = 3 if request.payment_method == PaymentMethod.COD else 7

        payment = {"method": request.payment_method.value}
        if request.card is not None:
            payment["card_number"] = mask_card_number(request.card.card_number)
            payment["name_on_card"] = request.card.name_on_card

        order = {
            "id": f"ORD-{int(now.timestamp() * 1000)}",
            "items": [
                {
                    "product_id": line.product_id,
                    "name": line.product.name,
                    "price": money(line.product.price),
                    "quantity": line.quantity,
                    "subtotal": money(line.subtotal),
                }
                for line in lines
            ],
            "shipping": request.shipping.model_dump(),
            "payment": payment,
            "totals": totals._asdict(),
            "status": OrderStatus.PENDING.value,
            "order_date": now,
            "estimated_delivery": now + timedelta(days=delivery_days),
        }
        self.cart.clear()
        logger.info("Order %s placed by user %s, total %s", order["id"], self.cart.user.id, totals.total)
        return order
