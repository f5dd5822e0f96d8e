"""Cart API routes."""

from fastapi import APIRouter

from storefront.api.deps import Cart, Session, drain_notifications
from storefront.core.session import SessionState
from storefront.schemas.cart import (
    AddCartItemRequest,
    CartLineSchema,
    CartResponse,
    SetQuantityRequest,
)
from storefront.services.cart_service import CartEngine

router = APIRouter(prefix="/cart", tags=["cart"])


def _cart_response(cart: CartEngine, session: SessionState) -> CartResponse:
    return CartResponse(
        lines=[
            CartLineSchema(product_id=product_id, quantity=quantity)
            for product_id, quantity in cart.lines().items()
        ],
        count=cart.count(),
        amount=cart.amount(),
        notifications=drain_notifications(session),
    )


@router.get("", response_model=CartResponse)
async def get_cart(cart: Cart, session: Session) -> CartResponse:
    return _cart_response(cart, session)


@router.post("/items", response_model=CartResponse)
async def add_cart_item(data: AddCartItemRequest, cart: Cart, session: Session) -> CartResponse:
    """Add one unit of a product to the session's cart."""
    cart.add_item(data.product_id)
    return _cart_response(cart, session)


@router.put("/items/{product_id}", response_model=CartResponse)
async def set_cart_quantity(
    product_id: str,
    data: SetQuantityRequest,
    cart: Cart,
    session: Session,
) -> CartResponse:
    """Set a line's quantity. Zero or less removes the line."""
    cart.set_quantity(product_id, data.quantity)
    return _cart_response(cart, session)


@router.delete("", response_model=CartResponse)
async def clear_cart(cart: Cart, session: Session) -> CartResponse:
    cart.clear()
    return _cart_response(cart, session)
