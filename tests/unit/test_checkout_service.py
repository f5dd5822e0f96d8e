"""Unit tests for CheckoutOrchestrator."""

import asyncio
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from storefront.core.exceptions import (
    AuthenticationError,
    CheckoutInProgress,
    PersistenceExhausted,
    ValidationError,
)
from storefront.core.local_storage import MemoryStorage
from storefront.core.session import SessionLocks, SessionState
from storefront.schemas.address import AddressFields
from storefront.schemas.checkout import CardDetails
from storefront.schemas.common import RecordSource
from storefront.schemas.order import OrderStatus, PaymentMethod, PaymentStatus
from storefront.schemas.product import Product
from storefront.services.address_service import ADDRESSES_KEY, AddressBook
from storefront.services.cart_service import CartEngine
from storefront.services.checkout_service import (
    PAYMENT_METHOD_KEY,
    CheckoutOrchestrator,
    CheckoutState,
    validate_card,
)
from storefront.services.codecs import ORDERS
from storefront.services.order_service import OrderService
from storefront.services.payment import SimulatedPaymentGateway
from storefront.services.persistence import PersistenceAdapter
from storefront.services.promo import PromoCodes

VALID_CARD = CardDetails(
    card_number="4242 4242 4242 4242",
    expiry_date="12/30",
    cvv="123",
    cardholder_name="Jane Doe",
)


@pytest.fixture
def p1_catalog() -> dict[str, Product]:
    """One product with an offer price of 25.00."""
    return {
        "P1": Product(
            id="P1",
            name="Bluetooth Speaker",
            category="Speaker",
            price=Decimal("30.00"),
            offer_price=Decimal("25.00"),
        )
    }


@pytest.fixture
def buyer_session(buyer: Any) -> SessionState:
    return SessionState(token="d" * 64, storage=MemoryStorage(), user=buyer)


@pytest.fixture
def promo_codes() -> PromoCodes:
    return PromoCodes({"SAVE10": Decimal("0.10"), "WELCOME20": Decimal("0.20")})


def build_checkout(
    session: SessionState,
    catalog: dict[str, Product],
    adapter: PersistenceAdapter,
    promo_codes: PromoCodes,
    select_address: bool = True,
) -> CheckoutOrchestrator:
    cart = CartEngine(session, catalog)
    cart.set_quantity("P1", 2)
    addresses = AddressBook(session)
    if select_address:
        address = addresses.save(
            AddressFields(
                full_name="Jane Doe",
                phone_number="5550100",
                pincode="94107",
                area="1 Market St",
                city="San Francisco",
                state="CA",
            )
        )
        addresses.select(address)
    session.drain_notifications()
    return CheckoutOrchestrator(
        session=session,
        cart=cart,
        addresses=addresses,
        adapter=adapter,
        promo_codes=promo_codes,
        payment_gateway=SimulatedPaymentGateway(delay_seconds=0),
    )


@pytest.fixture
def checkout(
    buyer_session: SessionState,
    p1_catalog: dict[str, Product],
    local_adapter: PersistenceAdapter,
    promo_codes: PromoCodes,
) -> CheckoutOrchestrator:
    return build_checkout(buyer_session, p1_catalog, local_adapter, promo_codes)


class TestPlaceOrder:
    """End-to-end checkout scenarios."""

    @pytest.mark.asyncio
    async def test_card_order_is_paid(
        self, checkout: CheckoutOrchestrator, local_adapter: PersistenceAdapter
    ) -> None:
        result = await checkout.place_order(VALID_CARD)

        order = await local_adapter.fetch_one(ORDERS, result.order_id)
        assert order.amount == Decimal("50.00")
        assert order.status == OrderStatus.PLACED
        assert order.payment_status == PaymentStatus.PAID
        assert order.items[0].price == Decimal("25.00")
        assert order.items[0].quantity == 2
        assert order.address.full_name == "Jane Doe"
        assert order.user_email == "buyer@example.com"
        assert checkout.state == CheckoutState.COMMITTED

    @pytest.mark.asyncio
    async def test_cod_order_is_pending_until_marked_paid(
        self, checkout: CheckoutOrchestrator, local_adapter: PersistenceAdapter
    ) -> None:
        checkout.set_payment_method(PaymentMethod.COD)

        result = await checkout.place_order()
        order = await local_adapter.fetch_one(ORDERS, result.order_id)
        assert order.payment_status == PaymentStatus.PENDING

        paid = await OrderService(local_adapter).mark_paid(result.order_id)
        assert paid.payment_status == PaymentStatus.PAID

    @pytest.mark.asyncio
    async def test_failing_remote_commits_locally(
        self,
        buyer_session: SessionState,
        p1_catalog: dict[str, Product],
        memory_storage: MemoryStorage,
        promo_codes: PromoCodes,
    ) -> None:
        remote = MagicMock()
        remote.table.side_effect = Exception("service unavailable")
        adapter = PersistenceAdapter(remote=remote, local=memory_storage, timeout_seconds=0.5)
        checkout = build_checkout(buyer_session, p1_catalog, adapter, promo_codes)

        result = await checkout.place_order(VALID_CARD)

        assert result.source == RecordSource.LOCAL
        assert result.message == "Order saved locally due to server issues. Please contact support."
        assert result.order_id in [o.id for o in await adapter.fetch_all(ORDERS)]

    @pytest.mark.asyncio
    async def test_missing_address_writes_nothing(
        self,
        buyer_session: SessionState,
        p1_catalog: dict[str, Product],
        local_adapter: PersistenceAdapter,
        memory_storage: MemoryStorage,
        promo_codes: PromoCodes,
    ) -> None:
        checkout = build_checkout(buyer_session, p1_catalog, local_adapter, promo_codes, select_address=False)

        with pytest.raises(ValidationError, match="Please select a delivery address"):
            await checkout.place_order(VALID_CARD)

        assert checkout.state == CheckoutState.IDLE
        assert checkout.cart.count() == 2
        assert memory_storage.get_item(ORDERS.local_key) is None

    @pytest.mark.asyncio
    async def test_success_clears_cart_and_draft(
        self, checkout: CheckoutOrchestrator, buyer_session: SessionState
    ) -> None:
        checkout.set_notes("Leave at the door")
        checkout.apply_promo("SAVE10")

        await checkout.place_order(VALID_CARD)

        assert checkout.cart.count() == 0
        assert CartEngine(buyer_session, {}).lines() == {}
        assert checkout.draft().notes == ""
        assert checkout.draft().promo_code == ""

    @pytest.mark.asyncio
    async def test_promo_discount_applied_at_commit(
        self, checkout: CheckoutOrchestrator, local_adapter: PersistenceAdapter
    ) -> None:
        checkout.apply_promo("save10")

        result = await checkout.place_order(VALID_CARD)

        order = await local_adapter.fetch_one(ORDERS, result.order_id)
        assert order.amount == Decimal("45.00")
        assert order.discount_percent == Decimal("10")
        assert order.promo_code == "SAVE10"

    @pytest.mark.asyncio
    async def test_guest_is_asked_to_sign_in(
        self,
        p1_catalog: dict[str, Product],
        local_adapter: PersistenceAdapter,
        memory_storage: MemoryStorage,
        promo_codes: PromoCodes,
    ) -> None:
        guest = SessionState(token="e" * 64, storage=MemoryStorage())
        checkout = build_checkout(guest, p1_catalog, local_adapter, promo_codes)

        with pytest.raises(AuthenticationError):
            await checkout.place_order(VALID_CARD)

        assert checkout.state == CheckoutState.FAILED
        assert checkout.failure_reason == "Unauthenticated"
        assert memory_storage.get_item(ORDERS.local_key) is None

    @pytest.mark.asyncio
    async def test_empty_cart_is_rejected(self, checkout: CheckoutOrchestrator) -> None:
        checkout.cart.clear()

        with pytest.raises(ValidationError, match="Your cart is empty"):
            await checkout.place_order(VALID_CARD)

    @pytest.mark.asyncio
    async def test_invalid_card_is_rejected_before_payment(self, checkout: CheckoutOrchestrator) -> None:
        checkout.payment_gateway = AsyncMock()

        with pytest.raises(ValidationError, match="Please enter a valid CVV"):
            await checkout.place_order(VALID_CARD.model_copy(update={"cvv": "12"}))

        checkout.payment_gateway.authorize.assert_not_called()
        assert checkout.state == CheckoutState.IDLE

    @pytest.mark.asyncio
    async def test_exhausted_persistence_keeps_cart(
        self, checkout: CheckoutOrchestrator, buyer_session: SessionState
    ) -> None:
        checkout.adapter = MagicMock()
        checkout.adapter.commit = AsyncMock(side_effect=PersistenceExhausted())

        with pytest.raises(PersistenceExhausted):
            await checkout.place_order(VALID_CARD)

        assert checkout.state == CheckoutState.FAILED
        assert checkout.cart.count() == 2
        messages = [n.message for n in buyer_session.drain_notifications()]
        assert "Failed to process order. Please try again." in messages

    @pytest.mark.asyncio
    async def test_retry_after_failure_commits(
        self, checkout: CheckoutOrchestrator, local_adapter: PersistenceAdapter
    ) -> None:
        checkout.adapter = MagicMock()
        checkout.adapter.commit = AsyncMock(side_effect=PersistenceExhausted())
        with pytest.raises(PersistenceExhausted):
            await checkout.place_order(VALID_CARD)

        checkout.adapter = local_adapter
        result = await checkout.place_order(VALID_CARD)

        assert checkout.state == CheckoutState.COMMITTED
        assert len(await local_adapter.fetch_all(ORDERS)) == 1
        assert result.order_id

    @pytest.mark.asyncio
    async def test_second_submit_while_processing_is_rejected(
        self, checkout: CheckoutOrchestrator, local_adapter: PersistenceAdapter
    ) -> None:
        checkout.payment_gateway = SimulatedPaymentGateway(delay_seconds=0.05)

        first = asyncio.create_task(checkout.place_order(VALID_CARD))
        await asyncio.sleep(0.01)
        with pytest.raises(CheckoutInProgress):
            await checkout.place_order(VALID_CARD)
        await first

        assert len(await local_adapter.fetch_all(ORDERS)) == 1


class TestSessionCart:
    """Checkout against a cart shared with other requests of the session."""

    @staticmethod
    def other_request(
        session: SessionState, catalog: dict[str, Product], adapter: PersistenceAdapter, promo_codes: PromoCodes
    ) -> CheckoutOrchestrator:
        return CheckoutOrchestrator(
            session=session,
            cart=CartEngine(session, catalog),
            addresses=AddressBook(session),
            adapter=adapter,
            promo_codes=promo_codes,
            payment_gateway=SimulatedPaymentGateway(delay_seconds=0),
        )

    @pytest.mark.asyncio
    async def test_stale_submit_after_commit_places_no_second_order(
        self,
        checkout: CheckoutOrchestrator,
        buyer_session: SessionState,
        p1_catalog: dict[str, Product],
        local_adapter: PersistenceAdapter,
        promo_codes: PromoCodes,
    ) -> None:
        second = self.other_request(buyer_session, p1_catalog, local_adapter, promo_codes)
        assert second.cart.count() == 2
        locks = SessionLocks()

        async with locks.hold(buyer_session.token):
            await checkout.place_order(VALID_CARD)
        async with locks.hold(buyer_session.token):
            with pytest.raises(ValidationError, match="Your cart is empty"):
                await second.place_order(VALID_CARD)

        orders = await local_adapter.fetch_all(ORDERS)
        assert [o.amount for o in orders] == [Decimal("50.00")]
        assert second.state == CheckoutState.IDLE

    @pytest.mark.asyncio
    async def test_line_added_during_payment_survives_commit(
        self,
        checkout: CheckoutOrchestrator,
        buyer_session: SessionState,
        p1_catalog: dict[str, Product],
        local_adapter: PersistenceAdapter,
    ) -> None:
        checkout.payment_gateway = SimulatedPaymentGateway(delay_seconds=0.05)

        placing = asyncio.create_task(checkout.place_order(VALID_CARD))
        await asyncio.sleep(0.01)
        CartEngine(buyer_session, p1_catalog).add_item("P2")
        result = await placing

        order = await local_adapter.fetch_one(ORDERS, result.order_id)
        assert [item.product_id for item in order.items] == ["P1"]
        assert CartEngine(buyer_session, p1_catalog).lines() == {"P2": 1}

    @pytest.mark.asyncio
    async def test_order_is_unaffected_by_later_address_changes(
        self,
        checkout: CheckoutOrchestrator,
        buyer_session: SessionState,
        local_adapter: PersistenceAdapter,
    ) -> None:
        checkout.set_payment_method(PaymentMethod.COD)
        original = checkout.addresses.selected()

        result = await checkout.place_order()
        committed = await local_adapter.fetch_one(ORDERS, result.order_id)

        moved = original.model_copy(update={"city": "Oakland", "area": "9 Broadway"})
        buyer_session.storage.set_json(ADDRESSES_KEY, [moved.model_dump(mode="json")])
        checkout.addresses.select(moved)

        order = await local_adapter.fetch_one(ORDERS, result.order_id)
        assert order.address == original
        assert order.address.city == "San Francisco"
        assert order.items == committed.items
        assert order.items[0].quantity == 2
        assert order.amount == Decimal("50.00")
        assert order.payment_method == PaymentMethod.COD
        assert checkout.addresses.selected().city == "Oakland"


class TestDraft:
    """Tests for the checkout draft and summary."""

    def test_defaults_to_card(self, checkout: CheckoutOrchestrator) -> None:
        assert checkout.draft().payment_method == PaymentMethod.CARD

    def test_ignores_unknown_stored_method(
        self, checkout: CheckoutOrchestrator, buyer_session: SessionState
    ) -> None:
        buyer_session.storage.set_item(PAYMENT_METHOD_KEY, "bitcoin")

        assert checkout.draft().payment_method == PaymentMethod.CARD

    def test_invalid_promo_resets_discount(
        self, checkout: CheckoutOrchestrator, buyer_session: SessionState
    ) -> None:
        checkout.apply_promo("WELCOME20")
        result = checkout.apply_promo("BOGUS")

        assert result.applied is False
        assert checkout.draft().promo_code == ""
        assert checkout.summary().total == Decimal("50.00")
        assert buyer_session.drain_notifications()[-1].type == "error"

    def test_summary(self, checkout: CheckoutOrchestrator) -> None:
        checkout.apply_promo("WELCOME20")

        summary = checkout.summary()

        assert summary.item_count == 2
        assert summary.subtotal == Decimal("50.00")
        assert summary.discount_percent == Decimal("20")
        assert summary.discount_amount == Decimal("10")
        assert summary.total == Decimal("40.00")
        assert summary.selected_address_id is not None


class TestValidateCard:
    """Tests for card field validation."""

    def test_accepts_valid_card(self) -> None:
        validate_card(VALID_CARD)

    @pytest.mark.parametrize(
        ("update", "message"),
        [
            ({"card_number": "4242 4242 4242"}, "Please enter a valid card number"),
            ({"card_number": "4242-4242-4242-4242"}, "Please enter a valid card number"),
            ({"expiry_date": "1230"}, "Please enter a valid expiry date"),
            ({"cvv": "12a"}, "Please enter a valid CVV"),
            ({"cardholder_name": "   "}, "Please enter the cardholder name"),
        ],
    )
    def test_rejects_invalid_field(self, update: dict, message: str) -> None:
        with pytest.raises(ValidationError, match=message):
            validate_card(VALID_CARD.model_copy(update=update))

    def test_missing_card(self) -> None:
        with pytest.raises(ValidationError, match="Please enter a valid card number"):
            validate_card(None)
