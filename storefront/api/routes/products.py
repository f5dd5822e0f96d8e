"""Product catalog API routes."""

from typing import Annotated

from fastapi import APIRouter, Query

from storefront.api.deps import Products
from storefront.schemas.product import Product, ProductListResponse

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=ProductListResponse)
async def list_products(
    product_service: Products,
    category: Annotated[str | None, Query(description="Filter by category")] = None,
    q: Annotated[str | None, Query(description="Search name and description")] = None,
) -> ProductListResponse:
    """List products, newest first. Products are publicly readable."""
    if q:
        products = await product_service.search_products(q)
    else:
        products = await product_service.list_products()
    if category:
        wanted = category.lower()
        products = [p for p in products if p.category.lower() == wanted]
    return ProductListResponse(products=products)


@router.get("/{product_id}", response_model=Product)
async def get_product(product_id: str, product_service: Products) -> Product:
    return await product_service.get_product(product_id)
