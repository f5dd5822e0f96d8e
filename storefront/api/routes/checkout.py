"""Checkout API routes."""

from fastapi import APIRouter, status

from storefront.api.deps import Checkout, Locks, Session, drain_notifications
from storefront.schemas.checkout import (
    CheckoutDraftUpdate,
    CheckoutResult,
    CheckoutSummary,
    PlaceOrderRequest,
    PromoRequest,
    PromoResult,
)

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.get("", response_model=CheckoutSummary)
async def get_checkout_summary(checkout: Checkout) -> CheckoutSummary:
    """Price preview for the session's cart, selected address and draft."""
    return checkout.summary()


@router.put("/draft", response_model=CheckoutSummary)
async def update_checkout_draft(data: CheckoutDraftUpdate, checkout: Checkout) -> CheckoutSummary:
    if data.payment_method is not None:
        checkout.set_payment_method(data.payment_method)
    if data.notes is not None:
        checkout.set_notes(data.notes)
    return checkout.summary()


@router.post("/promo", response_model=PromoResult)
async def apply_promo_code(data: PromoRequest, checkout: Checkout) -> PromoResult:
    """Apply a promo code. An unknown code resets the discount to zero."""
    return checkout.apply_promo(data.code)


@router.post(
    "/orders",
    response_model=CheckoutResult,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"description": "Sign-in required"},
        409: {"description": "A checkout for this session is already processing"},
        422: {"description": "Empty cart, missing address or invalid card"},
        503: {"description": "Order could not be stored; the cart is kept"},
    },
)
async def place_order(
    data: PlaceOrderRequest,
    checkout: Checkout,
    locks: Locks,
    session: Session,
) -> CheckoutResult:
    """Place the order for the session's cart.

    A second submit while the first is processing is rejected with 409.
    If the remote store is unavailable the order is kept in local storage
    and the response says so.
    """
    async with locks.hold(session.token):
        result = await checkout.place_order(data.card)
    result.notifications = drain_notifications(session)
    return result
