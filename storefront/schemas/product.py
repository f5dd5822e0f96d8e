"""Product Pydantic schemas for catalog and seller API models."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.common import RecordSource, UtcDatetime

PLACEHOLDER_IMAGE = "/assets/default-product.png"


class ProductBase(BaseModel):
    """Base product fields shared across schemas."""

    name: str = Field(..., min_length=1, max_length=255, description="Product name")
    description: str = Field(default="", description="Product description")
    category: str = Field(..., min_length=1, description="Product category")
    price: Decimal = Field(..., ge=0, description="List price")
    offer_price: Decimal | None = Field(default=None, ge=0, description="Discounted price, if any")
    images: list[str] = Field(default_factory=lambda: [PLACEHOLDER_IMAGE], description="Image URLs")
    bestseller: bool = Field(default=False, description="Bestseller flag")


class ProductCreate(ProductBase):
    """Schema for creating a new product."""

    model_config = ConfigDict(from_attributes=True)


class ProductUpdate(BaseModel):
    """Schema for a partial product update. Unset fields are left untouched."""

    model_config = ConfigDict(from_attributes=True)

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    category: str | None = Field(default=None, min_length=1)
    price: Decimal | None = Field(default=None, ge=0)
    offer_price: Decimal | None = Field(default=None, ge=0)
    images: list[str] | None = None
    bestseller: bool | None = None


class Product(ProductBase):
    """A catalog product as decoded from a store."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Product identifier")
    created_at: UtcDatetime | None = Field(default=None, description="Creation timestamp")
    updated_at: UtcDatetime | None = Field(default=None, description="Last update timestamp")
    source: RecordSource = Field(default=RecordSource.REMOTE, description="Store holding the record")

    @property
    def effective_price(self) -> Decimal:
        """Offer price when present, else list price."""
        return self.offer_price if self.offer_price is not None else self.price

    @property
    def primary_image(self) -> str:
        return self.images[0] if self.images else PLACEHOLDER_IMAGE


class ProductListResponse(BaseModel):
    """Schema for product list response."""

    model_config = ConfigDict(from_attributes=True)

    products: list[Product] = Field(description="List of products")
