"""Address book backed by session storage."""

import logging
import time

from pydantic import ValidationError as PydanticValidationError

from storefront.core.exceptions import NotFoundError, ValidationError
from storefront.core.local_storage import LocalStorageError
from storefront.core.session import SessionState
from storefront.schemas.address import ADDRESS_FIELDS, Address, AddressFields

logger = logging.getLogger(__name__)

ADDRESSES_KEY = "userAddresses"
SELECTED_KEY = "selectedAddress"


class AddressBook:
    """Saved shipping addresses and the address selected for checkout.

    Addresses are immutable once saved; there is no update or delete.
    """

    def __init__(self, session: SessionState) -> None:
        self.session = session

    def _read(self, key: str, default: object) -> object:
        try:
            return self.session.storage.get_json(key, default=default)
        except LocalStorageError as e:
            logger.error("Ignoring unreadable %s: %s", key, e)
            return default

    def list(self) -> list[Address]:
        stored = self._read(ADDRESSES_KEY, [])
        addresses = []
        for entry in stored if isinstance(stored, list) else []:
            try:
                addresses.append(Address.model_validate(entry))
            except PydanticValidationError as e:
                logger.error("Skipping invalid stored address: %s", e)
        return addresses

    def get(self, address_id: str) -> Address:
        for address in self.list():
            if address.id == address_id:
                return address
        raise NotFoundError(f"Address {address_id} not found")

    def _new_id(self, existing: set[str]) -> str:
        candidate = time.time_ns() // 1_000_000
        while str(candidate) in existing:
            candidate += 1
        return str(candidate)

    def save(self, fields: AddressFields) -> Address:
        """Validate and append a new address.

        Args:
            fields: The six address fields.

        Returns:
            Address: The saved address with its generated ID.

        Raises:
            ValidationError: If any field is empty.
        """
        missing = [name for name in ADDRESS_FIELDS if not getattr(fields, name).strip()]
        if missing:
            raise ValidationError(
                "Please fill in all address fields",
                details=[
                    {"loc": ["body", name], "msg": "Field must not be empty", "type": "missing"}
                    for name in missing
                ],
            )

        addresses = self.list()
        address = Address(
            id=self._new_id({a.id for a in addresses}),
            user_id=self.session.owner_id,
            **{name: getattr(fields, name).strip() for name in ADDRESS_FIELDS},
        )
        addresses.append(address)
        self.session.storage.set_json(ADDRESSES_KEY, [a.model_dump(mode="json") for a in addresses])

        logger.info("Saved address %s for %s", address.id, address.user_id)
        self.session.notify("Address saved successfully!")
        return address

    def select(self, address: Address) -> None:
        self.session.storage.set_json(SELECTED_KEY, address.model_dump(mode="json"))

    def selected(self) -> Address | None:
        """The address last selected in this session, as it was when selected."""
        stored = self._read(SELECTED_KEY, None)
        if stored is None:
            return None
        try:
            return Address.model_validate(stored)
        except PydanticValidationError as e:
            logger.error("Ignoring invalid selected address: %s", e)
            return None
