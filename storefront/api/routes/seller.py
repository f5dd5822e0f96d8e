"""Seller back-office API routes. Every route requires an admin user."""

import logging

from fastapi import APIRouter, Response, status

from storefront.api.deps import AdminUser, Orders, Products
from storefront.schemas.order import Order, OrderListResponse
from storefront.schemas.product import Product, ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/seller", tags=["seller"])


@router.get("/orders", response_model=OrderListResponse)
async def list_all_orders(user: AdminUser, order_service: Orders) -> OrderListResponse:
    """List every order from both stores, newest first."""
    return OrderListResponse(items=await order_service.list_orders())


@router.post("/orders/{order_id}/delivered", response_model=Order)
async def mark_order_delivered(order_id: str, user: AdminUser, order_service: Orders) -> Order:
    logger.info("Seller %s marking order %s delivered", user.user_id, order_id)
    return await order_service.mark_delivered(order_id)


@router.post("/orders/{order_id}/paid", response_model=Order)
async def mark_order_paid(order_id: str, user: AdminUser, order_service: Orders) -> Order:
    """Record payment collected for a cash-on-delivery order."""
    logger.info("Seller %s marking order %s paid", user.user_id, order_id)
    return await order_service.mark_paid(order_id)


@router.post("/products", response_model=Product, status_code=status.HTTP_201_CREATED)
async def create_product(data: ProductCreate, user: AdminUser, product_service: Products) -> Product:
    return await product_service.create_product(data)


@router.patch("/products/{product_id}", response_model=Product)
async def update_product(
    product_id: str,
    data: ProductUpdate,
    user: AdminUser,
    product_service: Products,
) -> Product:
    """Update only the fields present in the request body."""
    return await product_service.update_product(product_id, data)


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(product_id: str, user: AdminUser, product_service: Products) -> Response:
    await product_service.delete_product(product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
