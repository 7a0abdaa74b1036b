from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from storefront.catalog import CategoryService
from storefront.database import get_db
from storefront.models import User
from storefront.schemas import CategoryCreate, CategoryUpdate
from storefront.security import require_admin

router = APIRouter(prefix="/api/categories", tags=["Categories"])


def get_category_service(db: Session = Depends(get_db)) -> CategoryService:
    return CategoryService(db)


@router.get("", summary="List categories with in-stock product counts")
def list_categories(include_products: bool = False, categories: CategoryService = Depends(get_category_service)):
    return {"success": True, "data": categories.list_categories(include_products)}


@router.get("/{category_id}", summary="Get a category")
def get_category(category_id: int, include_products: bool = False,
                 categories: CategoryService = Depends(get_category_service)):
    return {"success": True, "data": categories.get(category_id, include_products)}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a category")
def create_category(request: CategoryCreate, admin: User = Depends(require_admin),
                    categories: CategoryService = Depends(get_category_service)):
    return {"success": True, "message": "Category created successfully", "data": categories.create(request)}


@router.put("/{category_id}", summary="Update a category")
def update_category(category_id: int, request: CategoryUpdate, admin: User = Depends(require_admin),
                    categories: CategoryService = Depends(get_category_service)):
    return {
        "success": True,
        "message": "Category updated successfully",
        "data": categories.update(category_id, request),
    }


@router.delete("/{category_id}", summary="Delete a category without products")
def delete_category(category_id: int, admin: User = Depends(require_admin),
                    categories: CategoryService = Depends(get_category_service)):
    categories.delete(category_id)
    return {"success": True, "message": "Category deleted successfully"}
