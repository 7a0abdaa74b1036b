from fastapi import APIRouter, Depends, status

from storefront.cart import CartService
from storefront.checkout import CheckoutService, PaymentMethod
from storefront.routers.cart import get_cart_service
from storefront.schemas import CheckoutRequest

router = APIRouter(prefix="/api/checkout", tags=["Checkout"])


def get_checkout_service(cart: CartService = Depends(get_cart_service)) -> CheckoutService:
    return CheckoutService(cart)


@router.get("/summary", summary="Order totals for the current cart")
def checkout_summary(payment_method: PaymentMethod = PaymentMethod.CARD,
                     checkout: CheckoutService = Depends(get_checkout_service)):
    return {"success": True, "data": checkout.summary(payment_method)}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Place a simulated order")
def place_order(request: CheckoutRequest, checkout: CheckoutService = Depends(get_checkout_service)):
    order = checkout.place_order(request)
    return {"success": True, "message": "Order placed successfully", "data": order}
