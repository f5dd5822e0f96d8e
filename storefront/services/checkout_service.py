"""Checkout orchestration: validation, payment, order assembly and commit."""

import asyncio
import logging
import re
from enum import Enum

from storefront.core.exceptions import (
    AuthenticationError,
    CheckoutInProgress,
    ValidationError,
)
from storefront.core.local_storage import LocalStorageError
from storefront.core.session import SessionState
from storefront.schemas.address import Address
from storefront.schemas.checkout import (
    CardDetails,
    CheckoutDraft,
    CheckoutResult,
    CheckoutSummary,
    PromoResult,
)
from storefront.schemas.common import RecordSource
from storefront.schemas.order import (
    OrderCreate,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from storefront.services.address_service import AddressBook
from storefront.services.cart_service import CartEngine
from storefront.services.codecs import ORDERS
from storefront.services.payment import PaymentGateway
from storefront.services.persistence import PersistenceAdapter
from storefront.services.promo import PromoCodes, as_percent, discount_amount, discounted_total

logger = logging.getLogger(__name__)

PAYMENT_METHOD_KEY = "checkoutPaymentMethod"
PROMO_CODE_KEY = "checkoutPromoCode"
ORDER_NOTES_KEY = "checkoutOrderNotes"

EXPIRY_PATTERN = re.compile(r"^\d{2}/\d{2}$")
CVV_PATTERN = re.compile(r"^\d{3,4}$")

PLACED_MESSAGE = "Order placed successfully!"
SAVED_LOCALLY_MESSAGE = "Order saved locally due to server issues. Please contact support."
FAILED_MESSAGE = "Failed to process order. Please try again."


class CheckoutState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    PROCESSING = "processing"
    COMMITTED = "committed"
    FAILED = "failed"


def validate_card(card: CardDetails | None) -> None:
    """Check the card fields a user typed.

    Raises:
        ValidationError: On the first invalid field.
    """
    card = card or CardDetails()
    number = card.card_number.replace(" ", "")
    if len(number) < 16 or not number.isdigit():
        raise ValidationError("Please enter a valid card number", details=[_field_error("card_number")])
    if not EXPIRY_PATTERN.match(card.expiry_date):
        raise ValidationError("Please enter a valid expiry date", details=[_field_error("expiry_date")])
    if not CVV_PATTERN.match(card.cvv):
        raise ValidationError("Please enter a valid CVV", details=[_field_error("cvv")])
    if not card.cardholder_name.strip():
        raise ValidationError("Please enter the cardholder name", details=[_field_error("cardholder_name")])


def _field_error(name: str) -> dict:
    return {"loc": ["body", "card", name], "msg": "Invalid value", "type": "value_error"}


class CheckoutOrchestrator:
    """Drives one checkout attempt for a session.

    States: IDLE -> VALIDATING -> PROCESSING -> COMMITTED | FAILED.
    Validation failures return to IDLE without touching any store. A commit
    failure leaves the cart intact so the attempt can be retried.
    """

    def __init__(
        self,
        session: SessionState,
        cart: CartEngine,
        addresses: AddressBook,
        adapter: PersistenceAdapter,
        promo_codes: PromoCodes,
        payment_gateway: PaymentGateway,
    ) -> None:
        self.session = session
        self.cart = cart
        self.addresses = addresses
        self.adapter = adapter
        self.promo_codes = promo_codes
        self.payment_gateway = payment_gateway
        self.state = CheckoutState.IDLE
        self.failure_reason: str | None = None

    # Draft

    def draft(self) -> CheckoutDraft:
        storage = self.session.storage
        method = storage.get_item(PAYMENT_METHOD_KEY)
        return CheckoutDraft(
            payment_method=PaymentMethod(method) if method in {m.value for m in PaymentMethod} else PaymentMethod.CARD,
            promo_code=storage.get_item(PROMO_CODE_KEY) or "",
            notes=storage.get_item(ORDER_NOTES_KEY) or "",
        )

    def set_payment_method(self, method: PaymentMethod) -> None:
        self.session.storage.set_item(PAYMENT_METHOD_KEY, method.value)

    def set_notes(self, notes: str) -> None:
        self.session.storage.set_item(ORDER_NOTES_KEY, notes)

    def clear_draft(self) -> None:
        for key in (PAYMENT_METHOD_KEY, PROMO_CODE_KEY, ORDER_NOTES_KEY):
            self.session.storage.remove_item(key)

    def apply_promo(self, code: str) -> PromoResult:
        """Apply a promo code. Unknown codes reset the discount to zero."""
        result = self.promo_codes.evaluate(code)
        if result.applied:
            self.session.storage.set_item(PROMO_CODE_KEY, code.strip().upper())
            self.session.notify(result.message)
        else:
            self.session.storage.remove_item(PROMO_CODE_KEY)
            self.session.notify(result.message, "error")
        return result

    def summary(self) -> CheckoutSummary:
        """Price preview for the current cart and draft."""
        draft = self.draft()
        fraction = self.promo_codes.fraction_for(draft.promo_code)
        subtotal = self.cart.amount()
        selected = self.addresses.selected()
        return CheckoutSummary(
            draft=draft,
            item_count=self.cart.count(),
            subtotal=subtotal,
            discount_percent=as_percent(fraction),
            discount_amount=discount_amount(subtotal, fraction),
            total=discounted_total(subtotal, fraction),
            selected_address_id=selected.id if selected else None,
        )

    # Placing the order

    def _validate(self, lines: dict[str, int], card: CardDetails | None) -> Address:
        if not lines:
            raise ValidationError("Your cart is empty")
        if not self._order_items(lines):
            raise ValidationError("None of the products in your cart are available")

        address = self.addresses.selected()
        if address is None:
            raise ValidationError("Please select a delivery address")

        if not self.session.is_authenticated:
            raise AuthenticationError(
                "Please sign in to place your order",
                details=[{"msg": "/sign-in?redirectTo=/checkout", "type": "redirect"}],
            )

        if self.draft().payment_method == PaymentMethod.CARD:
            validate_card(card)
        return address

    def _order_items(self, lines: dict[str, int]) -> list[OrderItem]:
        items = []
        for product_id, quantity in lines.items():
            product = self.cart.catalog.get(product_id)
            if product is None:
                logger.warning("Dropping unknown product %s from order", product_id)
                continue
            items.append(
                OrderItem(
                    product_id=product_id,
                    name=product.name,
                    price=product.effective_price,
                    quantity=quantity,
                    image=product.primary_image,
                )
            )
        return items

    def _fail(self, reason: str) -> None:
        self.state = CheckoutState.FAILED
        self.failure_reason = reason

    async def place_order(self, card: CardDetails | None = None) -> CheckoutResult:
        """Validate, authorize payment and commit the order exactly once.

        Args:
            card: Card fields, required when the draft's method is card.

        Returns:
            CheckoutResult: The committed order's ID and which store holds it.

        Raises:
            CheckoutInProgress: If this checkout is already processing.
            ValidationError: On invalid input; state returns to IDLE.
            AuthenticationError: If nobody is signed in; state becomes FAILED.
            PersistenceExhausted: If the order could not be stored anywhere;
                state becomes FAILED and the cart is kept.
        """
        if self.state == CheckoutState.PROCESSING:
            raise CheckoutInProgress()

        self.state = CheckoutState.VALIDATING
        self.failure_reason = None
        # The stored cart is the source of truth; an earlier submit may have
        # committed it after this engine was built.
        self.cart.reload()
        submitted = self.cart.lines()
        try:
            address = self._validate(submitted, card)
        except AuthenticationError:
            self._fail("Unauthenticated")
            raise
        except ValidationError as e:
            self.state = CheckoutState.IDLE
            self.failure_reason = e.message
            self.session.notify(e.message, "error")
            raise

        self.state = CheckoutState.PROCESSING
        try:
            draft = self.draft()
            fraction = self.promo_codes.fraction_for(draft.promo_code)
            amount = discounted_total(self.cart.amount(), fraction)

            authorization = await self.payment_gateway.authorize(amount, draft.payment_method, card)

            order_data = OrderCreate(
                user_id=self.session.owner_id,
                user_email=self.session.user.email,
                items=self._order_items(submitted),
                amount=amount,
                address=address.model_copy(deep=True),
                payment_method=draft.payment_method,
                payment_status=PaymentStatus.PAID if authorization.captured else PaymentStatus.PENDING,
                discount_percent=as_percent(fraction),
                promo_code=draft.promo_code or None,
                notes=draft.notes,
                status=OrderStatus.PLACED,
            )
            order = await self.adapter.commit(ORDERS, order_data)
        except asyncio.CancelledError:
            self._fail("Cancelled")
            raise
        except Exception as e:
            self._fail(str(e))
            logger.error("Checkout failed for session user %s: %s", self.session.owner_id, e)
            self.session.notify(FAILED_MESSAGE, "error")
            raise

        self.state = CheckoutState.COMMITTED
        try:
            self.cart.remove_ordered(submitted)
            self.clear_draft()
        except LocalStorageError as e:
            # The order exists; a stale cart must not turn success into failure.
            logger.error("Order %s committed but session cleanup failed: %s", order.id, e)

        if order.source == RecordSource.LOCAL:
            message = SAVED_LOCALLY_MESSAGE
            self.session.notify(message, "info")
        else:
            message = PLACED_MESSAGE
            self.session.notify(message)
        logger.info("Order %s placed (%s) amount=%s", order.id, order.source.value, order.amount)
        return CheckoutResult(order_id=order.id, source=order.source, message=message)
