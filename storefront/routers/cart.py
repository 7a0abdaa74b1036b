from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.cart import CartService, line_data
from storefront.database import get_db
from storefront.models import User
from storefront.schemas import CartAdd, CartUpdate
from storefront.security import get_current_user

router = APIRouter(prefix="/api/cart", tags=["Cart"])


def get_cart_service(db: Session = Depends(get_db), user: User = Depends(get_current_user)) -> CartService:
    return CartService(db, user)


@router.get("", summary="Current user's cart")
def get_cart(cart: CartService = Depends(get_cart_service)):
    return {"success": True, "message": "Cart retrieved successfully", "data": cart.get_cart()}


@router.get("/count", summary="Total quantity in the cart")
def cart_count(cart: CartService = Depends(get_cart_service)):
    return {"success": True, "data": {"count": cart.count()}}


@router.post("", summary="Add a product to the cart")
@router.post("/add", summary="Add a product to the cart", include_in_schema=False)
def add_to_cart(request: CartAdd, cart: CartService = Depends(get_cart_service)):
    product, line = cart.add_item(request.product_id, request.quantity)
    return {
        "success": True,
        "message": f"{product.name} added to cart successfully",
        "data": line_data(line),
    }


@router.put("/{cart_id}", summary="Change a cart line's quantity")
def update_cart_item(cart_id: int, request: CartUpdate, cart: CartService = Depends(get_cart_service)):
    line = cart.update_item(cart_id, request.quantity)
    return {"success": True, "message": "Cart updated successfully", "data": line_data(line)}


@router.delete("/{cart_id}", summary="Remove a cart line")
def remove_from_cart(cart_id: int, cart: CartService = Depends(get_cart_service)):
    cart.remove_item(cart_id)
    return {"success": True, "message": "Item removed from cart successfully"}


@router.delete("", summary="Remove every line from the cart")
def clear_cart(cart: CartService = Depends(get_cart_service)):
    cart.clear()
    return {"success": True, "message": "Cart cleared successfully"}
