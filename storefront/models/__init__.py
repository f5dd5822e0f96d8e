"""Remote table column definitions."""

from storefront.models.order import ORDER_COLUMNS
from storefront.models.product import PRODUCT_COLUMNS

__all__ = [
    "ORDER_COLUMNS",
    "PRODUCT_COLUMNS",
]
