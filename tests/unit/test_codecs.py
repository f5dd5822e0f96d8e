"""Unit tests for the order and product record codecs."""

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from storefront.core.exceptions import MalformedRecord
from storefront.models import ORDER_COLUMNS as OC
from storefront.models import PRODUCT_COLUMNS as PC
from storefront.schemas.common import RecordSource
from storefront.schemas.order import OrderStatus, PaymentStatus
from storefront.schemas.product import PLACEHOLDER_IMAGE
from storefront.services.codecs import ORDERS, PRODUCTS


@pytest.fixture
def order_row() -> dict:
    """An Orders row as stored remotely."""
    return {
        "id": "660e8400-e29b-41d4-a716-446655440000",
        "created_at": "2024-05-01T10:00:00+00:00",
        "Customer information": json.dumps({"userId": "user-1", "userEmail": "buyer@example.com"}),
        "Order items": json.dumps(
            [{"productId": "prod-1", "name": "Smart Watch", "price": 49.99, "quantity": 2, "image": "/w.png"}]
        ),
        "Order status": "Order Placed",
        "Shipping details": json.dumps(
            {
                "address": {
                    "_id": "1714557600000",
                    "userId": "user-1",
                    "fullName": "Jane Doe",
                    "phoneNumber": "5550100",
                    "pincode": "94107",
                    "area": "1 Market St",
                    "city": "San Francisco",
                    "state": "CA",
                },
                "amount": 89,
            }
        ),
        "Payment information": json.dumps(
            {"paymentMethod": "cod", "paymentStatus": "Pending", "promoCode": "SAVE10", "discount": 10, "notes": ""}
        ),
    }


class TestOrderCodec:
    """Tests for OrderCodec."""

    def test_decodes_remote_row(self, order_row: dict) -> None:
        order = ORDERS.from_row(order_row)

        assert order.user_id == "user-1"
        assert order.items[0].price == Decimal("49.99")
        assert order.items[0].quantity == 2
        assert order.address.full_name == "Jane Doe"
        assert order.amount == Decimal("89")
        assert order.payment_status == PaymentStatus.PENDING
        assert order.status == OrderStatus.PLACED
        assert order.source == RecordSource.REMOTE
        assert order.created_at == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)

    def test_encoded_row_decodes_to_same_order(self, order_row: dict) -> None:
        order = ORDERS.from_row(order_row)

        assert ORDERS.from_row(ORDERS.to_row(order)) == order

    def test_accepts_already_decoded_json_columns(self, order_row: dict) -> None:
        order_row[OC.CUSTOMER] = json.loads(order_row[OC.CUSTOMER])

        assert ORDERS.from_row(order_row).user_email == "buyer@example.com"

    def test_rejects_invalid_json_column(self, order_row: dict) -> None:
        order_row[OC.ITEMS] = "[not json"

        with pytest.raises(MalformedRecord) as exc_info:
            ORDERS.from_row(order_row)

        assert exc_info.value.record_id == order_row["id"]

    def test_rejects_missing_address_field(self, order_row: dict) -> None:
        shipping = json.loads(order_row[OC.SHIPPING])
        del shipping["address"]["city"]
        order_row[OC.SHIPPING] = json.dumps(shipping)

        with pytest.raises(MalformedRecord):
            ORDERS.from_row(order_row)

    def test_rejects_unknown_status(self, order_row: dict) -> None:
        order_row[OC.STATUS] = "Lost"

        with pytest.raises(MalformedRecord):
            ORDERS.from_row(order_row)

    def test_payment_status_patch_keeps_other_payment_fields(self, order_row: dict) -> None:
        changes = ORDERS.patch_row(order_row, {"payment_status": PaymentStatus.PAID})

        payment = json.loads(changes[OC.PAYMENT])
        assert payment["paymentStatus"] == "Paid"
        assert payment["promoCode"] == "SAVE10"
        assert payment["paymentMethod"] == "cod"

    def test_rejects_patch_of_immutable_field(self, order_row: dict) -> None:
        with pytest.raises(ValueError):
            ORDERS.patch_row(order_row, {"amount": Decimal("1")})

    def test_local_entry_must_be_object(self) -> None:
        with pytest.raises(MalformedRecord):
            ORDERS.from_local(["not", "an", "order"])


class TestProductCodec:
    """Tests for ProductCodec."""

    def test_decodes_remote_row(self) -> None:
        product = PRODUCTS.from_row(
            {
                "id": 7,
                "created_at": "2024-05-01T10:00:00",
                PC.NAME: "Smart Watch",
                PC.DESCRIPTION: None,
                PC.CATEGORY: "Watch",
                PC.PRICE: 59.99,
                PC.OFFER_PRICE: 49.99,
                PC.IMAGES: '["https://cdn.example.com/w1.png", "https://cdn.example.com/w2.png"]',
                PC.BESTSELLER: None,
            }
        )

        assert product.id == "7"
        assert product.description == ""
        assert product.effective_price == Decimal("49.99")
        assert product.images == ["https://cdn.example.com/w1.png", "https://cdn.example.com/w2.png"]
        assert product.bestseller is False
        assert product.created_at.tzinfo == timezone.utc

    @pytest.mark.parametrize("images", [None, "", "{broken", "[]", []])
    def test_unreadable_images_fall_back_to_placeholder(self, images: object) -> None:
        product = PRODUCTS.from_row({"id": "1", PC.NAME: "Mouse", PC.CATEGORY: "Accessories", PC.PRICE: 10, PC.IMAGES: images})

        assert product.images == [PLACEHOLDER_IMAGE]
        assert product.primary_image == PLACEHOLDER_IMAGE

    def test_rejects_non_numeric_price(self) -> None:
        with pytest.raises(MalformedRecord):
            PRODUCTS.from_row({"id": "1", PC.NAME: "Mouse", PC.CATEGORY: "Accessories", PC.PRICE: "ten"})

    def test_insert_row_leaves_identity_to_remote(self, sample_products: list) -> None:
        row = PRODUCTS.to_row(sample_products[0])

        assert "id" not in row
        assert "created_at" not in row
        assert row[PC.PRICE] == 99.99
        assert row[PC.OFFER_PRICE] == 79.99

    def test_patch_sets_update_time(self) -> None:
        changes = PRODUCTS.patch_row({"id": "1"}, {"price": Decimal("12.50"), "offer_price": None})

        assert changes[PC.PRICE] == 12.5
        assert changes[PC.OFFER_PRICE] is None
        assert PC.UPDATED_AT in changes
