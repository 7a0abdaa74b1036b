"""
Shopping cart for the acting user.

Stock is checked before each write, but the read-check-write sequence is not
atomic: two concurrent adds for the same product can both pass the check.
"""

import logging
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.checkout import money
from storefront.models import CartItem, Product, User

logger = logging.getLogger(__name__)


def line_data(line: CartItem) -> dict:
    product = line.product
    return {
        "cart_id": line.id,
        "quantity": line.quantity,
        "created_at": line.created_at,
        "id": product.id,
        "product_id": product.id,
        "name": product.name,
        "description": product.description,
        "price": product.price,
        "image_url": product.image_url,
        "stock_quantity": product.stock_quantity,
        "subtotal": money(line.subtotal),
    }


class CartService:
    def __init__(self, db: Session, user: User):
        self.db = db
        self.user = user

    def lines(self):
        return (
            self.db.query(CartItem)
            .filter(CartItem.user_id == self.user.id)
            .order_by(CartItem.created_at.desc(), CartItem.id.desc())
            .all()
        )

    def get_cart(self) -> dict:
        lines = self.lines()
        total = sum((line.subtotal for line in lines), Decimal("0"))
        return {
            "cart_items": [line_data(line) for line in lines],
            "total": money(total),
            "item_count": len(lines),
        }

    def _own_line(self, cart_id: int) -> CartItem:
        line = (
            self.db.query(CartItem)
            .filter(CartItem.id == cart_id, CartItem.user_id == self.user.id)
            .first()
        )
        if not line:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart item not found")
        return line

    def add_item(self, product_id: Optional[int], quantity: int = 1):
        """Add a product, merging into the existing line for the same product."""
        if product_id is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Product ID is required")

        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
        if quantity > product.stock_quantity:
            logger.warning("User %s asked for %s of product %s, stock is %s",
                           self.user.id, quantity, product_id, product.stock_quantity)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Insufficient stock")

        line = (
            self.db.query(CartItem)
            .filter(CartItem.user_id == self.user.id, CartItem.product_id == product_id)
            .first()
        )
        if line:
            new_quantity = line.quantity + quantity
            if new_quantity > product.stock_quantity:
                logger.warning("User %s cart line for product %s would reach %s, stock is %s",
                               self.user.id, product_id, new_quantity, product.stock_quantity)
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Cannot add more items than available in stock",
                )
            line.quantity = new_quantity
        else:
            line = CartItem(user_id=self.user.id, product_id=product_id, quantity=quantity)
            self.db.add(line)

        self.db.commit()
        self.db.refresh(line)
        logger.info("User %s cart: product %s x%s", self.user.id, product_id, line.quantity)
        return product, line

    def update_item(self, cart_id: int, quantity: int) -> CartItem:
        line = self._own_line(cart_id)
        if quantity > line.product.stock_quantity:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Insufficient stock")
        line.quantity = quantity
        self.db.commit()
        self.db.refresh(line)
        return line

    def remove_item(self, cart_id: int):
        line = self._own_line(cart_id)
        self.db.delete(line)
        self.db.commit()

    def clear(self):
        self.db.query(CartItem).filter(CartItem.user_id == self.user.id).delete(synchronize_session=False)
        self.db.commit()

    def count(self) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(CartItem.quantity), 0))
            .filter(CartItem.user_id == self.user.id)
            .scalar()
        )
        return int(total)
