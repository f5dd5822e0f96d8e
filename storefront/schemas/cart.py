"""Cart Pydantic schemas for API request/response models."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.common import NotificationSchema


class AddCartItemRequest(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str = Field(..., min_length=1, description="Product to add one unit of")


class SetQuantityRequest(BaseModel):
    """Negative quantities are accepted and treated as zero."""

    model_config = ConfigDict(from_attributes=True)

    quantity: int = Field(..., description="New quantity; 0 removes the line")


class CartLineSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str = Field(description="Product identifier")
    quantity: int = Field(ge=1, description="Quantity in cart")


class CartResponse(BaseModel):
    """Cart contents with derived aggregates."""

    model_config = ConfigDict(from_attributes=True)

    lines: list[CartLineSchema] = Field(description="Cart lines")
    count: int = Field(description="Total number of units")
    amount: Decimal = Field(description="Cart amount, truncated to 2 decimals")
    notifications: list[NotificationSchema] = Field(default_factory=list)
