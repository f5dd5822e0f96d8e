"""Column definitions for the remote Products table."""


class ProductColumns:
    """Column names of the remote Products table."""

    ID = "id"
    CREATED_AT = "created_at"
    NAME = "Product name"
    DESCRIPTION = "Product description"
    CATEGORY = "Product category"
    PRICE = "Product price"
    OFFER_PRICE = "Discounted price"
    IMAGES = "Array of image URLs"
    BESTSELLER = "Bestseller flag"
    UPDATED_AT = "Last update time"


PRODUCT_COLUMNS = ProductColumns
