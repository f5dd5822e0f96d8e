"""Product service for catalog reads and seller CRUD operations."""

import logging

from storefront.schemas.product import Product, ProductCreate, ProductUpdate
from storefront.services.codecs import PRODUCTS
from storefront.services.persistence import PersistenceAdapter, get_persistence_adapter

logger = logging.getLogger(__name__)


class ProductService:
    """Service for product operations."""

    def __init__(self, adapter: PersistenceAdapter | None = None) -> None:
        """Initialize product service.

        Args:
            adapter: Optional persistence adapter for testing.
        """
        self._adapter = adapter

    @property
    def adapter(self) -> PersistenceAdapter:
        if self._adapter is None:
            self._adapter = get_persistence_adapter()
        return self._adapter

    async def list_products(self) -> list[Product]:
        """All products, newest first."""
        return await self.adapter.fetch_all(PRODUCTS)

    async def catalog(self) -> dict[str, Product]:
        """Products keyed by ID, for cart pricing."""
        return {product.id: product for product in await self.list_products()}

    async def get_product(self, product_id: str) -> Product:
        """Get a product by ID.

        Raises:
            NotFoundError: If the product does not exist.
        """
        return await self.adapter.fetch_one(PRODUCTS, product_id)

    async def products_by_category(self, category: str) -> list[Product]:
        wanted = category.lower()
        return [p for p in await self.list_products() if p.category.lower() == wanted]

    async def search_products(self, term: str) -> list[Product]:
        """Case-insensitive substring match on name or description."""
        needle = term.lower()
        return [
            p
            for p in await self.list_products()
            if needle in p.name.lower() or needle in p.description.lower()
        ]

    async def create_product(self, data: ProductCreate) -> Product:
        product = await self.adapter.commit(PRODUCTS, data)
        logger.info("Created product %s (%s)", product.id, product.source.value)
        return product

    async def update_product(self, product_id: str, data: ProductUpdate) -> Product:
        """Update the fields set on ``data``; others are left untouched.

        Raises:
            NotFoundError: If the product does not exist.
        """
        patch = data.model_dump(exclude_unset=True)
        if not patch:
            return await self.get_product(product_id)
        product = await self.adapter.update(PRODUCTS, product_id, patch)
        logger.info("Updated product %s: %s", product_id, sorted(patch))
        return product

    async def delete_product(self, product_id: str) -> None:
        await self.adapter.delete(PRODUCTS, product_id)
        logger.info("Deleted product %s", product_id)
