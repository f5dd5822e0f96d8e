"""Address book API routes."""

from fastapi import APIRouter, status

from storefront.api.deps import Addresses, Session, drain_notifications
from storefront.schemas.address import (
    AddressFields,
    AddressListResponse,
    AddressResponse,
    SelectAddressRequest,
)

router = APIRouter(prefix="/addresses", tags=["addresses"])


@router.get("", response_model=AddressListResponse)
async def list_addresses(addresses: Addresses) -> AddressListResponse:
    selected = addresses.selected()
    return AddressListResponse(
        items=addresses.list(),
        selected_id=selected.id if selected else None,
    )


@router.post("", response_model=AddressResponse, status_code=status.HTTP_201_CREATED)
async def save_address(data: AddressFields, addresses: Addresses, session: Session) -> AddressResponse:
    """Save a new address. Every field is required and must not be blank."""
    address = addresses.save(data)
    return AddressResponse(address=address, notifications=drain_notifications(session))


@router.get("/selected", response_model=AddressResponse)
async def get_selected_address(addresses: Addresses) -> AddressResponse:
    return AddressResponse(address=addresses.selected())


@router.put("/selected", response_model=AddressResponse)
async def select_address(data: SelectAddressRequest, addresses: Addresses) -> AddressResponse:
    """Select a saved address for checkout.

    The selection is a snapshot of the address at this moment.
    """
    address = addresses.get(data.address_id)
    addresses.select(address)
    return AddressResponse(address=address)
