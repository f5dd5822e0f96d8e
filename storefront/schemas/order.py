"""Order Pydantic schemas."""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.address import Address
from storefront.schemas.common import RecordSource, UtcDatetime


class PaymentMethod(str, Enum):
    CARD = "card"
    COD = "cod"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"


class OrderStatus(str, Enum):
    PLACED = "Order Placed"
    DELIVERED = "Delivered"


class OrderItem(BaseModel):
    """Historical record of one purchased line. Not a live price."""

    model_config = ConfigDict(from_attributes=True)

    product_id: str = Field(description="Product identifier")
    name: str = Field(description="Product name at order time")
    price: Decimal = Field(ge=0, description="Unit price at order time")
    quantity: int = Field(ge=1, description="Quantity ordered")
    image: str = Field(description="Primary product image at order time")


class OrderCreate(BaseModel):
    """Order fields assembled by checkout, before the store assigns identity."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(description="Ordering user ID")
    user_email: str | None = Field(default=None, description="Ordering user email")
    items: list[OrderItem] = Field(description="Ordered items")
    amount: Decimal = Field(ge=0, description="Final charged total")
    address: Address = Field(description="Shipping address snapshot")
    payment_method: PaymentMethod = Field(description="card or cod")
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    promo_code: str | None = Field(default=None)
    notes: str = Field(default="")
    status: OrderStatus = Field(default=OrderStatus.PLACED)


class Order(OrderCreate):
    """A persisted order."""

    id: str = Field(description="Durable order identifier")
    created_at: UtcDatetime = Field(description="Creation timestamp")
    source: RecordSource = Field(default=RecordSource.REMOTE, description="Store holding the record")


class OrderListResponse(BaseModel):
    """Schema for order list API responses."""

    model_config = ConfigDict(from_attributes=True)

    items: list[Order] = Field(description="List of orders")
