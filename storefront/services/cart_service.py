"""Cart engine: product quantities for one session."""

import logging
from collections.abc import Mapping
from decimal import ROUND_FLOOR, Decimal

from storefront.core.local_storage import LocalStorageError
from storefront.core.session import SessionState
from storefront.schemas.product import Product

logger = logging.getLogger(__name__)

CART_KEY = "cartItems"
CENT = Decimal("0.01")


class CartEngine:
    """Mapping of product ID to quantity, mirrored to session storage.

    Every mutation is written through to storage immediately, and the
    mapping is rehydrated from storage on construction, so a reload never
    loses pending cart state.
    """

    def __init__(self, session: SessionState, catalog: Mapping[str, Product]) -> None:
        """Initialize the cart from the session's stored copy.

        Args:
            session: Session owning the cart.
            catalog: Products by ID, used for names and prices.
        """
        self.session = session
        self.catalog = catalog
        self._items: dict[str, int] = self._load()

    def _load(self) -> dict[str, int]:
        try:
            stored = self.session.storage.get_json(CART_KEY, default={})
        except LocalStorageError as e:
            logger.error("Discarding unreadable cart for session: %s", e)
            return {}
        if not isinstance(stored, dict):
            logger.error("Discarding cart stored as %s", type(stored).__name__)
            return {}

        items: dict[str, int] = {}
        for product_id, quantity in stored.items():
            if isinstance(quantity, int) and not isinstance(quantity, bool) and quantity > 0:
                items[str(product_id)] = quantity
        return items

    def _save(self) -> None:
        self.session.storage.set_json(CART_KEY, self._items)

    def lines(self) -> dict[str, int]:
        """Snapshot of the cart mapping."""
        return dict(self._items)

    def add_item(self, product_id: str) -> int:
        """Add one unit of a product.

        Returns:
            int: The product's new quantity.
        """
        self._items[product_id] = self._items.get(product_id, 0) + 1
        self._save()

        product = self.catalog.get(product_id)
        name = product.name if product else "Item"
        self.session.notify(f"{name} added to cart!")
        return self._items[product_id]

    def set_quantity(self, product_id: str, quantity: int) -> None:
        """Set a line's quantity. Zero or less removes the line."""
        if quantity <= 0:
            self._items.pop(product_id, None)
        else:
            self._items[product_id] = quantity
        self._save()

    def count(self) -> int:
        return sum(quantity for quantity in self._items.values() if quantity > 0)

    def amount(self) -> Decimal:
        """Cart total, floored to cents. Amounts never round up.

        Lines whose product is not in the catalog contribute nothing.
        """
        total = Decimal("0")
        for product_id, quantity in self._items.items():
            product = self.catalog.get(product_id)
            if product is None or quantity <= 0:
                continue
            total += product.effective_price * quantity
        return total.quantize(CENT, rounding=ROUND_FLOOR)

    def reload(self) -> None:
        """Replace the in-memory mapping with the stored one.

        Another request for the same session may have changed the stored
        cart since this engine was built.
        """
        self._items = self._load()

    def remove_ordered(self, ordered: Mapping[str, int]) -> None:
        """Take ordered quantities out of the stored cart.

        Lines added or increased by other requests since the order was
        assembled stay in the cart. An emptied cart removes the key.
        """
        items = self._load()
        for product_id, quantity in ordered.items():
            remaining = items.get(product_id, 0) - quantity
            if remaining > 0:
                items[product_id] = remaining
            else:
                items.pop(product_id, None)
        self._items = items
        if items:
            self._save()
        else:
            self.session.storage.remove_item(CART_KEY)

    def clear(self) -> None:
        self._items = {}
        self.session.storage.remove_item(CART_KEY)
