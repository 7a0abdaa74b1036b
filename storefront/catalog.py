"""
Products and categories.

Updates go through a typed partial-update model: each builder below checks
the fields one by one and returns the column changes, which are then applied
as a single UPDATE statement.
"""

import logging
import math
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from storefront.checkout import money
from storefront.models import CartItem, Category, Product
from storefront.schemas import CategoryCreate, CategoryOut, CategoryUpdate, ProductCreate, ProductOut, ProductUpdate
from storefront.uploads import ImageStore

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
MAX_PAGE = 1_000_000
CATEGORY_PREVIEW_LIMIT = 10


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def product_changes(update: ProductUpdate, image_url: Optional[str] = None) -> dict:
    changes = {}
    if update.name is not None:
        changes["name"] = update.name
    if "description" in update.model_fields_set:
        changes["description"] = _blank_to_none(update.description)
    if update.price is not None:
        changes["price"] = update.price
    if update.category_id is not None:
        changes["category_id"] = update.category_id
    if update.stock_quantity is not None:
        changes["stock_quantity"] = update.stock_quantity
    if image_url is not None:
        changes["image_url"] = image_url
    elif update.image_url is not None:
        changes["image_url"] = update.image_url
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No valid fields to update")
    return changes


def category_changes(update: CategoryUpdate) -> dict:
    changes = {}
    if update.name is not None:
        changes["name"] = update.name
    if "description" in update.model_fields_set:
        changes["description"] = _blank_to_none(update.description)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No valid fields to update")
    return changes


def product_data(product: Product) -> dict:
    return ProductOut.model_validate(product).model_dump()


class ProductService:
    def __init__(self, db: Session, images: ImageStore):
        self.db = db
        self.images = images

    def _get(self, product_id: int) -> Product:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
        return product

    def _check_category(self, category_id: int):
        if not self.db.query(Category.id).filter(Category.id == category_id).first():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid category ID")

    def list_products(self, page: int = 1, limit: int = 20, category: Optional[int] = None,
                      search: Optional[str] = None):
        """In-stock products ordered by name, one page at a time."""
        limit = min(limit, MAX_PAGE_SIZE)
        query = self.db.query(Product).filter(Product.stock_quantity > 0)
        if category is not None:
            query = query.filter(Product.category_id == category)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))

        total = query.count()
        products = query.order_by(Product.name.asc()).offset((page - 1) * limit).limit(limit).all()
        pagination = {
            "current_page": page,
            "per_page": limit,
            "total": total,
            "total_pages": math.ceil(total / limit),
        }
        return [product_data(p) for p in products], pagination

    def list_all(self):
        return [product_data(p) for p in self.db.query(Product).order_by(Product.id.asc()).all()]

    def get(self, product_id: int) -> dict:
        return product_data(self._get(product_id))

    def create(self, request: ProductCreate, image=None) -> dict:
        self._check_category(request.category_id)
        image_url = self.images.save(image) if image is not None else request.image_url
        product = Product(
            name=request.name,
            description=_blank_to_none(request.description),
            price=request.price,
            stock_quantity=request.stock_quantity,
            category_id=request.category_id,
            image_url=image_url,
        )
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)
        logger.info("Product %s created: %s", product.id, product.name)
        return product_data(product)

    def update(self, product_id: int, update: ProductUpdate, image=None) -> dict:
        product = self._get(product_id)
        if update.category_id is not None:
            self._check_category(update.category_id)

        old_image = product.image_url
        image_url = self.images.save(image) if image is not None else None
        changes = product_changes(update, image_url)

        self.db.query(Product).filter(Product.id == product_id).update(changes, synchronize_session=False)
        self.db.commit()
        if "image_url" in changes and changes["image_url"] != old_image:
            self.images.delete(old_image)
        logger.info("Product %s updated: %s", product_id, ", ".join(sorted(changes)))
        return product_data(self._get(product_id))

    def delete(self, product_id: int):
        product = self._get(product_id)
        image_url = product.image_url
        self.db.query(CartItem).filter(CartItem.product_id == product_id).delete(synchronize_session=False)
        self.db.delete(product)
        self.db.commit()
        self.images.delete(image_url)
        logger.info("Product %s deleted", product_id)

    def dashboard(self) -> dict:
        products = self.db.query(Product).all()
        inventory_value = sum((p.price * p.stock_quantity for p in products), Decimal("0"))
        return {
            "total_products": len(products),
            "total_categories": self.db.query(Category).count(),
            "inventory_value": money(inventory_value),
        }


class CategoryService:
    def __init__(self, db: Session):
        self.db = db

    def _counted(self):
        in_stock = and_(Product.category_id == Category.id, Product.stock_quantity > 0)
        return (
            self.db.query(Category, func.count(Product.id))
            .outerjoin(Product, in_stock)
            .group_by(Category.id)
        )

    def _in_stock_products(self, category_id: int, limit: Optional[int] = None):
        query = (
            self.db.query(Product)
            .filter(Product.category_id == category_id, Product.stock_quantity > 0)
            .order_by(Product.name.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return [product_data(p) for p in query.all()]

    def _get(self, category_id: int) -> Category:
        category = self.db.query(Category).filter(Category.id == category_id).first()
        if not category:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
        return category

    def _name_taken(self, name: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(Category.id).filter(Category.name == name)
        if exclude_id is not None:
            query = query.filter(Category.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def _data(category: Category, product_count: int) -> dict:
        data = CategoryOut.model_validate(category).model_dump()
        data["product_count"] = product_count
        return data

    def list_categories(self, include_products: bool = False):
        result = []
        for category, count in self._counted().order_by(Category.name.asc()).all():
            data = self._data(category, count)
            if include_products:
                data["products"] = self._in_stock_products(category.id, CATEGORY_PREVIEW_LIMIT)
            result.append(data)
        return result

    def get(self, category_id: int, include_products: bool = False) -> dict:
        row = self._counted().filter(Category.id == category_id).first()
        if row is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
        data = self._data(*row)
        if include_products:
            data["products"] = self._in_stock_products(category_id)
        return data

    def create(self, request: CategoryCreate) -> dict:
        if self._name_taken(request.name):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category name already exists")
        category = Category(name=request.name, description=_blank_to_none(request.description))
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        logger.info("Category %s created: %s", category.id, category.name)
        return self._data(category, 0)

    def update(self, category_id: int, update: CategoryUpdate) -> dict:
        category = self._get(category_id)
        if update.name is not None and update.name != category.name and self._name_taken(update.name, category_id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category name already exists")
        changes = category_changes(update)
        self.db.query(Category).filter(Category.id == category_id).update(changes, synchronize_session=False)
        self.db.commit()
        return self.get(category_id)

    def delete(self, category_id: int):
        self._get(category_id)
        product_count = self.db.query(Product).filter(Product.category_id == category_id).count()
        if product_count > 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot delete category. It contains {product_count} product(s). "
                       "Please move or delete the products first.",
            )
        self.db.query(Category).filter(Category.id == category_id).delete(synchronize_session=False)
        self.db.commit()
        logger.info("Category %s deleted", category_id)
