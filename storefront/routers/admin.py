from fastapi import APIRouter, Depends

from storefront.catalog import ProductService
from storefront.routers.auth import get_user_service
from storefront.routers.products import ProductPayload, get_product_service, product_payload
from storefront.schemas import ProductUpdate, RoleUpdate, UserOut
from storefront.security import require_admin
from storefront.users import UserService

router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/products", summary="All products, including out of stock")
def list_all_products(products: ProductService = Depends(get_product_service)):
    return {"success": True, "data": products.list_all()}


@router.put("/products/{product_id}", summary="Update any product")
def update_product(product_id: int, payload: ProductPayload = Depends(product_payload),
                   products: ProductService = Depends(get_product_service)):
    update = ProductUpdate.model_validate(payload.fields)
    return {
        "success": True,
        "message": "Product updated successfully",
        "data": products.update(product_id, update, payload.image),
    }


@router.delete("/products/{product_id}", summary="Delete any product")
def delete_product(product_id: int, products: ProductService = Depends(get_product_service)):
    products.delete(product_id)
    return {"success": True, "message": "Product deleted successfully"}


@router.get("/dashboard", summary="Store statistics")
def dashboard(products: ProductService = Depends(get_product_service)):
    return {"success": True, "data": products.dashboard()}


@router.get("/users", summary="List all users")
def list_users(users: UserService = Depends(get_user_service)):
    return {"success": True, "data": [UserOut.model_validate(u).model_dump() for u in users.list_users()]}


@router.put("/users/{user_id}/role", summary="Change a user's role")
def set_role(user_id: int, request: RoleUpdate, users: UserService = Depends(get_user_service)):
    user = users.set_role(user_id, request.role)
    return {
        "success": True,
        "message": "User role updated successfully",
        "data": UserOut.model_validate(user).model_dump(),
    }
