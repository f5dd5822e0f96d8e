"""Checkout Pydantic schemas for API request/response models."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.common import NotificationSchema, RecordSource
from storefront.schemas.order import PaymentMethod


class CardDetails(BaseModel):
    """Card fields as typed by the user. Never persisted."""

    model_config = ConfigDict(from_attributes=True)

    card_number: str = Field(default="", description="Card number, spaces allowed")
    expiry_date: str = Field(default="", description="Expiry as MM/YY")
    cvv: str = Field(default="", description="3 or 4 digit security code")
    cardholder_name: str = Field(default="", description="Name on card")


class CheckoutDraftUpdate(BaseModel):
    """Partial update of the checkout draft."""

    model_config = ConfigDict(from_attributes=True)

    payment_method: PaymentMethod | None = Field(default=None, description="card or cod")
    notes: str | None = Field(default=None, max_length=2000, description="Order notes")


class CheckoutDraft(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payment_method: PaymentMethod = Field(default=PaymentMethod.CARD)
    promo_code: str = Field(default="", description="Applied promo code, empty if none")
    notes: str = Field(default="")


class PromoRequest(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str = Field(..., description="Promo code as entered")


class PromoResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    applied: bool = Field(description="Whether the code was recognised")
    percent: Decimal = Field(description="Discount percentage now in effect")
    message: str = Field(description="User-facing result message")


class CheckoutSummary(BaseModel):
    """Price preview. The committed amount is recomputed at order time."""

    model_config = ConfigDict(from_attributes=True)

    draft: CheckoutDraft
    item_count: int = Field(description="Units in cart")
    subtotal: Decimal = Field(description="Cart amount")
    discount_percent: Decimal = Field(description="Discount percentage")
    discount_amount: Decimal = Field(description="Discount in whole currency units")
    total: Decimal = Field(description="Amount that would be charged")
    selected_address_id: str | None = Field(default=None)


class PlaceOrderRequest(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    card: CardDetails | None = Field(default=None, description="Required when paying by card")


class CheckoutResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: str = Field(description="Committed order ID")
    source: RecordSource = Field(description="Store that persisted the order")
    message: str = Field(description="User-facing outcome message")
    notifications: list[NotificationSchema] = Field(default_factory=list)
