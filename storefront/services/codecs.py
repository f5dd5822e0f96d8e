"""Record codecs between domain models and stored representations.

A codec describes one record kind: the remote table it lives in, the local
storage key of its fallback log, and how rows are encoded and decoded.
Decoding is explicit and raises MalformedRecord instead of defaulting, except
for the product image placeholder.
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from storefront.core.exceptions import MalformedRecord
from storefront.models.order import ORDER_COLUMNS as OC
from storefront.models.product import PRODUCT_COLUMNS as PC
from storefront.schemas.address import Address
from storefront.schemas.common import RecordSource
from storefront.schemas.order import Order
from storefront.schemas.product import PLACEHOLDER_IMAGE, Product

R = TypeVar("R", bound=BaseModel)


def _decimal(value: Any, field: str, record_id: str | None) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise MalformedRecord(f"Field {field!r} is missing or not numeric", record_id)
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise MalformedRecord(f"Field {field!r} is not numeric: {value!r}", record_id) from e


def _json_column(row: dict[str, Any], column: str, record_id: str | None) -> Any:
    raw = row.get(column)
    if raw is None:
        raise MalformedRecord(f"Column {column!r} is missing", record_id)
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedRecord(f"Column {column!r} is not valid JSON: {e}", record_id) from e


def _require(data: Any, key: str, column: str, record_id: str | None) -> Any:
    if not isinstance(data, dict) or key not in data:
        raise MalformedRecord(f"{column!r} has no {key!r}", record_id)
    return data[key]


class RecordCodec(ABC, Generic[R]):
    """Encoding rules for one record kind."""

    kind: str
    table: str
    local_key: str
    model: type[R]

    @abstractmethod
    def to_row(self, record: R) -> dict[str, Any]:
        """Encode a record as a remote insert row."""

    @abstractmethod
    def from_row(self, row: dict[str, Any]) -> R:
        """Decode a remote row.

        Raises:
            MalformedRecord: If a required column is missing or undecodable.
        """

    @abstractmethod
    def patch_row(self, row: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
        """Return the remote columns to update for a field-level patch."""

    def build(self, data: BaseModel, record_id: str, created_at: datetime) -> R:
        """Give creation data its identity."""
        return self.model.model_validate(
            {**data.model_dump(), "id": record_id, "created_at": created_at, "source": RecordSource.REMOTE}
        )

    def to_local(self, record: R) -> dict[str, Any]:
        return record.model_dump(mode="json")

    def from_local(self, entry: Any) -> R:
        if not isinstance(entry, dict):
            raise MalformedRecord(f"Local {self.kind} entry is not an object")
        try:
            return self.model.model_validate({**entry, "source": RecordSource.LOCAL})
        except PydanticValidationError as e:
            raise MalformedRecord(f"Local {self.kind} entry is invalid: {e}", entry.get("id")) from e

    def apply_patch(self, record: R, patch: dict[str, Any]) -> R:
        return self.model.model_validate({**record.model_dump(), **patch})

    def _validate(self, data: dict[str, Any], record_id: str | None) -> R:
        try:
            return self.model.model_validate(data)
        except PydanticValidationError as e:
            raise MalformedRecord(f"Remote {self.kind} row is invalid: {e}", record_id) from e


def address_to_storage(address: Address) -> dict[str, Any]:
    return {
        "_id": address.id,
        "userId": address.user_id,
        "fullName": address.full_name,
        "phoneNumber": address.phone_number,
        "pincode": address.pincode,
        "area": address.area,
        "city": address.city,
        "state": address.state,
    }


def address_from_storage(data: Any, record_id: str | None) -> dict[str, Any]:
    column = OC.SHIPPING
    return {
        "id": str(_require(data, "_id", column, record_id)),
        "user_id": str(data.get("userId") or "guest"),
        "full_name": _require(data, "fullName", column, record_id),
        "phone_number": _require(data, "phoneNumber", column, record_id),
        "pincode": _require(data, "pincode", column, record_id),
        "area": _require(data, "area", column, record_id),
        "city": _require(data, "city", column, record_id),
        "state": _require(data, "state", column, record_id),
    }


class OrderCodec(RecordCodec[Order]):
    """Orders table, nested fields stored as JSON text columns."""

    kind = "order"
    table = "Orders"
    local_key = "userOrders"
    model = Order

    def to_row(self, record: Order) -> dict[str, Any]:
        return {
            OC.ID: record.id,
            OC.CREATED_AT: record.created_at.isoformat(),
            OC.CUSTOMER: json.dumps({"userId": record.user_id, "userEmail": record.user_email}),
            OC.ITEMS: json.dumps(
                [
                    {
                        "productId": item.product_id,
                        "name": item.name,
                        "price": float(item.price),
                        "quantity": item.quantity,
                        "image": item.image,
                    }
                    for item in record.items
                ]
            ),
            OC.STATUS: record.status.value,
            OC.SHIPPING: json.dumps(
                {"address": address_to_storage(record.address), "amount": float(record.amount)}
            ),
            OC.PAYMENT: json.dumps(
                {
                    "paymentMethod": record.payment_method.value,
                    "paymentStatus": record.payment_status.value,
                    "promoCode": record.promo_code,
                    "discount": float(record.discount_percent),
                    "notes": record.notes,
                }
            ),
        }

    def from_row(self, row: dict[str, Any]) -> Order:
        record_id = str(row["id"]) if row.get("id") is not None else None
        if record_id is None:
            raise MalformedRecord("Order row has no id")

        customer = _json_column(row, OC.CUSTOMER, record_id)
        items = _json_column(row, OC.ITEMS, record_id)
        shipping = _json_column(row, OC.SHIPPING, record_id)
        payment = _json_column(row, OC.PAYMENT, record_id)
        if not isinstance(items, list):
            raise MalformedRecord(f"{OC.ITEMS!r} is not a list", record_id)
        status = row.get(OC.STATUS)
        if not status:
            raise MalformedRecord(f"Column {OC.STATUS!r} is missing", record_id)

        data = {
            "id": record_id,
            "created_at": row.get(OC.CREATED_AT),
            "user_id": str(_require(customer, "userId", OC.CUSTOMER, record_id)),
            "user_email": customer.get("userEmail"),
            "items": [
                {
                    "product_id": str(_require(item, "productId", OC.ITEMS, record_id)),
                    "name": _require(item, "name", OC.ITEMS, record_id),
                    "price": _decimal(_require(item, "price", OC.ITEMS, record_id), "price", record_id),
                    "quantity": _require(item, "quantity", OC.ITEMS, record_id),
                    "image": item.get("image") or PLACEHOLDER_IMAGE,
                }
                for item in items
            ],
            "amount": _decimal(_require(shipping, "amount", OC.SHIPPING, record_id), "amount", record_id),
            "address": address_from_storage(_require(shipping, "address", OC.SHIPPING, record_id), record_id),
            "payment_method": _require(payment, "paymentMethod", OC.PAYMENT, record_id),
            "payment_status": _require(payment, "paymentStatus", OC.PAYMENT, record_id),
            "discount_percent": _decimal(payment.get("discount", 0), "discount", record_id),
            "promo_code": payment.get("promoCode") or None,
            "notes": payment.get("notes") or "",
            "status": status,
            "source": RecordSource.REMOTE,
        }
        return self._validate(data, record_id)

    def patch_row(self, row: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
        record_id = str(row.get("id"))
        changes: dict[str, Any] = {}
        for field, value in patch.items():
            value = getattr(value, "value", value)
            if field == "status":
                changes[OC.STATUS] = value
            elif field == "payment_status":
                # Preserve any other keys already stored in the payment column.
                payment = _json_column(row, OC.PAYMENT, record_id)
                if not isinstance(payment, dict):
                    raise MalformedRecord(f"{OC.PAYMENT!r} is not an object", record_id)
                changes[OC.PAYMENT] = json.dumps({**payment, "paymentStatus": value})
            else:
                raise ValueError(f"Order field {field!r} cannot be updated")
        return changes


class ProductCodec(RecordCodec[Product]):
    """Products table. Identity and creation time are assigned remotely."""

    kind = "product"
    table = "Products"
    local_key = "products"
    model = Product

    _columns = {
        "name": PC.NAME,
        "description": PC.DESCRIPTION,
        "category": PC.CATEGORY,
        "price": PC.PRICE,
        "offer_price": PC.OFFER_PRICE,
        "images": PC.IMAGES,
        "bestseller": PC.BESTSELLER,
    }

    @staticmethod
    def _encode(field: str, value: Any) -> Any:
        if isinstance(value, Decimal):
            return float(value)
        if field == "images":
            return list(value) if value else [PLACEHOLDER_IMAGE]
        return value

    def to_row(self, record: Product) -> dict[str, Any]:
        return {
            column: self._encode(field, getattr(record, field))
            for field, column in self._columns.items()
        }

    @staticmethod
    def _images(raw: Any) -> list[str]:
        # Unreadable image lists fall back to the placeholder by policy.
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError:
                return [PLACEHOLDER_IMAGE]
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, list) or not raw:
            return [PLACEHOLDER_IMAGE]
        return [str(url) for url in raw]

    def from_row(self, row: dict[str, Any]) -> Product:
        record_id = str(row["id"]) if row.get("id") is not None else None
        if record_id is None:
            raise MalformedRecord("Product row has no id")
        name = row.get(PC.NAME)
        if not name:
            raise MalformedRecord(f"Column {PC.NAME!r} is missing", record_id)

        offer_price = row.get(PC.OFFER_PRICE)
        data = {
            "id": record_id,
            "name": name,
            "description": row.get(PC.DESCRIPTION) or "",
            "category": row.get(PC.CATEGORY) or "",
            "price": _decimal(row.get(PC.PRICE), PC.PRICE, record_id),
            "offer_price": _decimal(offer_price, PC.OFFER_PRICE, record_id) if offer_price is not None else None,
            "images": self._images(row.get(PC.IMAGES)),
            "bestseller": bool(row.get(PC.BESTSELLER) or False),
            "created_at": row.get(PC.CREATED_AT),
            "updated_at": row.get(PC.UPDATED_AT),
            "source": RecordSource.REMOTE,
        }
        return self._validate(data, record_id)

    def patch_row(self, row: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        for field, value in patch.items():
            if field not in self._columns:
                raise ValueError(f"Product field {field!r} cannot be updated")
            changes[self._columns[field]] = self._encode(field, value)
        changes[PC.UPDATED_AT] = datetime.now(timezone.utc).isoformat()
        return changes

    def apply_patch(self, record: Product, patch: dict[str, Any]) -> Product:
        return super().apply_patch(record, {**patch, "updated_at": datetime.now(timezone.utc)})


ORDERS = OrderCodec()
PRODUCTS = ProductCodec()
