"""Customer order API routes."""

from fastapi import APIRouter

from storefront.api.deps import CurrentUser, Orders, Policy
from storefront.core.exceptions import NotFoundError
from storefront.schemas.order import Order, OrderListResponse

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=OrderListResponse)
async def list_my_orders(user: CurrentUser, order_service: Orders) -> OrderListResponse:
    """List the signed-in user's orders, newest first."""
    orders = await order_service.list_orders_for_user(str(user.user_id))
    return OrderListResponse(items=orders)


@router.get("/{order_id}", response_model=Order)
async def get_my_order(
    order_id: str,
    user: CurrentUser,
    order_service: Orders,
    policy: Policy,
) -> Order:
    """Get one order. Other users' orders are reported as not found."""
    order = await order_service.get_order(order_id)
    if order.user_id != str(user.user_id) and not policy.is_admin(user):
        raise NotFoundError(f"Order {order_id} not found")
    return order
