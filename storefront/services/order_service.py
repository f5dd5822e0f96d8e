"""Order queries and back-office lifecycle transitions."""

import logging

from storefront.core.exceptions import NotFoundError, PersistenceExhausted
from storefront.schemas.order import Order, OrderStatus, PaymentStatus
from storefront.services.codecs import ORDERS
from storefront.services.persistence import PersistenceAdapter, get_persistence_adapter

logger = logging.getLogger(__name__)


class OrderService:
    """Reads committed orders and applies one-way status transitions.

    Transitions are confirmed against the store before they are reported:
    a failed update is logged and raised, never reported as applied.
    """

    def __init__(self, adapter: PersistenceAdapter | None = None) -> None:
        self._adapter = adapter

    @property
    def adapter(self) -> PersistenceAdapter:
        if self._adapter is None:
            self._adapter = get_persistence_adapter()
        return self._adapter

    async def list_orders(self) -> list[Order]:
        """All orders from both stores, newest first."""
        return await self.adapter.fetch_all(ORDERS)

    async def list_orders_for_user(self, user_id: str) -> list[Order]:
        return [order for order in await self.list_orders() if order.user_id == user_id]

    async def get_order(self, order_id: str) -> Order:
        """Get an order by ID.

        Raises:
            NotFoundError: If no store holds the order.
        """
        return await self.adapter.fetch_one(ORDERS, order_id)

    async def mark_delivered(self, order_id: str) -> Order:
        """Move an order to Delivered. Already delivered orders are returned unchanged."""
        order = await self.get_order(order_id)
        if order.status == OrderStatus.DELIVERED:
            return order
        return await self._update(order_id, {"status": OrderStatus.DELIVERED})

    async def mark_paid(self, order_id: str) -> Order:
        """Mark a cash-on-delivery order as paid. Already paid orders are returned unchanged."""
        order = await self.get_order(order_id)
        if order.payment_status == PaymentStatus.PAID:
            return order
        return await self._update(order_id, {"payment_status": PaymentStatus.PAID})

    async def _update(self, order_id: str, patch: dict) -> Order:
        try:
            order = await self.adapter.update(ORDERS, order_id, patch)
        except (NotFoundError, PersistenceExhausted) as e:
            logger.error("Order %s update %s failed: %s", order_id, sorted(patch), e.message)
            raise
        logger.info("Order %s updated: %s (%s)", order_id, sorted(patch), order.source.value)
        return order
