"""Shipping address schemas."""

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.common import NotificationSchema

ADDRESS_FIELDS = ("full_name", "phone_number", "pincode", "area", "city", "state")


class AddressFields(BaseModel):
    """User-entered address fields.

    Emptiness is checked by the address book, not here, so a blank field
    reaches it and is reported with the other blank fields at once.
    """

    model_config = ConfigDict(from_attributes=True)

    full_name: str = Field(default="", description="Recipient name")
    phone_number: str = Field(default="", description="Contact phone number")
    pincode: str = Field(default="", description="Postal code")
    area: str = Field(default="", description="Street and area")
    city: str = Field(default="", description="City")
    state: str = Field(default="", description="State or region")


class Address(AddressFields):
    """A saved address. Immutable once created."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str = Field(description="Time-based address identifier")
    user_id: str = Field(default="guest", description="Owner user ID or 'guest'")


class AddressListResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    items: list[Address] = Field(description="Saved addresses")
    selected_id: str | None = Field(default=None, description="Currently selected address ID")


class SelectAddressRequest(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    address_id: str = Field(..., min_length=1, description="ID of a saved address")


class AddressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    address: Address | None = Field(description="The address, or None if none is selected")
    notifications: list[NotificationSchema] = Field(default_factory=list)
