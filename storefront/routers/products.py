"""
Product routes. Writes accept either a JSON body or a multipart form with an
optional `image` file.
"""

import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from storefront.catalog import MAX_PAGE, ProductService
from storefront.database import get_db
from storefront.models import User
from storefront.schemas import ProductCreate, ProductUpdate
from storefront.security import require_admin
from storefront.uploads import ImageStore, get_image_store

router = APIRouter(prefix="/api/products", tags=["Products"])

FORM_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


class ProductPayload:
    def __init__(self, fields: dict, image: Optional[UploadFile] = None):
        self.fields = fields
        self.image = image


async def product_payload(request: Request) -> ProductPayload:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_TYPES):
        form = await request.form()
        image = form.get("image")
        fields = {key: value for key, value in form.items() if isinstance(value, str)}
        if isinstance(image, UploadFile) and image.filename:
            return ProductPayload(fields, image)
        return ProductPayload(fields)

    body = await request.body()
    if not body:
        return ProductPayload({})
    try:
        fields = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body must be valid JSON")
    if not isinstance(fields, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body must be a JSON object")
    return ProductPayload(fields)


def get_product_service(db: Session = Depends(get_db), images: ImageStore = Depends(get_image_store)) -> ProductService:
    return ProductService(db, images)


@router.get("", summary="List in-stock products")
def list_products(
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(20, ge=1),
    category: Optional[int] = None,
    search: Optional[str] = None,
    products: ProductService = Depends(get_product_service),
):
    items, pagination = products.list_products(page=page, limit=limit, category=category, search=search)
    return {"success": True, "data": items, "pagination": pagination}


@router.get("/{product_id}", summary="Get a product")
def get_product(product_id: int, products: ProductService = Depends(get_product_service)):
    return {"success": True, "data": products.get(product_id)}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Add a new product")
def create_product(
    admin: User = Depends(require_admin),
    payload: ProductPayload = Depends(product_payload),
    products: ProductService = Depends(get_product_service),
):
    request = ProductCreate.model_validate(payload.fields)
    return {
        "success": True,
        "message": "Product created successfully",
        "data": products.create(request, payload.image),
    }


@router.put("/{product_id}", summary="Update an existing product")
def update_product(
    product_id: int,
    admin: User = Depends(require_admin),
    payload: ProductPayload = Depends(product_payload),
    products: ProductService = Depends(get_product_service),
):
    update = ProductUpdate.model_validate(payload.fields)
    return {
        "success": True,
        "message": "Product updated successfully",
        "data": products.update(product_id, update, payload.image),
    }


@router.delete("/{product_id}", summary="Delete a product")
def delete_product(
    product_id: int,
    admin: User = Depends(require_admin),
    products: ProductService = Depends(get_product_service),
):
    products.delete(product_id)
    return {"success": True, "message": "Product deleted successfully"}
