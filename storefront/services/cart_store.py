"""
Cart Store

Single source of truth for the shopping cart. State is immutable: every
operation builds a new CartState, swaps it in, persists the item list and
notifies subscribers. No operation raises; bad stored data or failed writes
are logged.
"""

import math
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Optional, Protocol

import httpx
from pydantic import TypeAdapter, ValidationError

from ..models.cart import CartLineItem, CartState, Product
from ..models.user import User
from .analytics import AnalyticsTracker
from .errors import OrdersApiError
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

CART_STORAGE_KEY = "cart"
CENTS = Decimal("0.01")

_items_adapter = TypeAdapter(list[CartLineItem])
_item_adapter = TypeAdapter(CartLineItem)
_raw_items_adapter = TypeAdapter(list[dict[str, Any]])


class CatalogLookup(Protocol):
    """Catalog collaborator used to refresh stock figures"""

    async def get_product(self, product_id: str) -> Product: ...


def parse_quantity(raw: Any) -> Optional[int]:
    """
    Validate a quantity typed by the user.

    Returns None for values the cart must ignore: non-numeric, NaN,
    fractional, zero or negative.
    """
    if isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or math.isinf(value) or not value.is_integer():
        return None
    quantity = int(value)
    return quantity if quantity > 0 else None


def serialize_items(items) -> str:
    """Encode line items the way they are kept in storage"""
    return _items_adapter.dump_json(list(items), by_alias=True).decode()


def deserialize_items(raw: str) -> tuple[CartLineItem, ...]:
    """
    Decode stored line items.

    Entries that fail validation and duplicate product ids are dropped one
    by one; the rest of the cart is kept. Raises ValidationError only when
    the stored value is not a JSON list of objects.
    """
    seen: set[str] = set()
    items = []
    for entry in _raw_items_adapter.validate_json(raw):
        try:
            item = _item_adapter.validate_python(entry)
        except ValidationError as e:
            logger.warning(f"Dropping invalid cart entry {entry.get('productId')}: {e.error_count()} error(s)")
            continue
        if item.product_id in seen:
            logger.warning(f"Dropping duplicate cart entry for {item.product_id}")
            continue
        seen.add(item.product_id)
        items.append(item)
    return tuple(items)


class CartStore:
    """Shopping cart with quantity validation against catalog stock"""

    def __init__(
        self,
        storage: KeyValueStorage,
        tracker: Optional[AnalyticsTracker] = None,
    ):
        self._storage = storage
        self._tracker = tracker
        self._listeners: list[Callable[[CartState], None]] = []
        self._state = self._load()

    # ==================== State ====================

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def items(self) -> tuple[CartLineItem, ...]:
        return self._state.items

    @property
    def has_errors(self) -> bool:
        return self._state.has_errors

    @property
    def tracker(self) -> Optional[AnalyticsTracker]:
        return self._tracker

    def subscribe(self, listener: Callable[[CartState], None]) -> Callable[[], None]:
        """Register a state listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _load(self) -> CartState:
        try:
            raw = self._storage.get_item(CART_STORAGE_KEY)
            if not raw:
                return CartState()
            return CartState(items=deserialize_items(raw))
        except (OSError, ValidationError, ValueError) as e:
            logger.error(f"Failed to parse cart data: {e}")
            return CartState()

    def _commit(self, new_state: CartState) -> None:
        self._state = new_state
        try:
            self._storage.set_item(CART_STORAGE_KEY, serialize_items(new_state.items))
        except OSError as e:
            logger.error(f"Failed to persist cart: {e}")

        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                logger.exception("Cart listener failed")

    def _track(self, event_type: str, product_id: str, user: Optional[User], **metadata) -> None:
        if self._tracker is not None:
            self._tracker.track(event_type, product_id, user, metadata)

    def _replace_item(self, product_id: str, **changes) -> Optional[CartState]:
        if self._state.find(product_id) is None:
            return None
        return CartState(
            items=tuple(
                item.model_copy(update=changes) if item.product_id == product_id else item
                for item in self._state.items
            )
        )

    # ==================== Operations ====================

    def add_to_cart(self, product: Product, user: Optional[User] = None) -> CartState:
        """Add one unit of a product, inserting it when not yet in the cart"""
        existing = self._state.find(product.id)

        if existing:
            self._commit(
                self._replace_item(
                    product.id,
                    quantity=existing.quantity + 1,
                    available_quantity=product.available_quantity,
                )
            )
            self._track("add_to_cart", product.id, user, quantity=existing.quantity + 1)
        else:
            item = CartLineItem(
                product_id=product.id,
                name=product.name,
                price=product.price,
                quantity=1,
                available_quantity=product.available_quantity,
                max_quantity_error=False,
            )
            self._commit(CartState(items=self._state.items + (item,)))
            self._track("add_to_cart_new", product.id, user, price=str(product.price))

        return self._state

    def remove_from_cart(self, product_id: str, user: Optional[User] = None) -> CartState:
        """Remove a line item. Absent products are ignored."""
        if self._state.find(product_id) is None:
            return self._state

        self._commit(
            CartState(
                items=tuple(i for i in self._state.items if i.product_id != product_id)
            )
        )
        self._track("remove_from_cart", product_id, user)
        return self._state

    def update_quantity(
        self,
        product_id: str,
        quantity: int,
        user: Optional[User] = None,
    ) -> CartState:
        """
        Set the quantity of a line item.

        Callers validate input with parse_quantity first. Anything that is
        not a positive int is ignored so the stored cart stays loadable.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            logger.warning(f"Ignoring invalid quantity {quantity!r} for {product_id}")
            return self._state

        new_state = self._replace_item(product_id, quantity=quantity)
        if new_state is None:
            return self._state

        self._commit(new_state)
        self._track("update_cart_quantity", product_id, user, quantity=quantity)
        return self._state

    def clear_cart(self) -> CartState:
        """Empty the cart"""
        self._commit(CartState())
        return self._state

    def get_total(self) -> Decimal:
        """Sum of price * quantity, rounded to cents"""
        total = sum((item.line_total for item in self._state.items), Decimal("0"))
        return total.quantize(CENTS, rounding=ROUND_HALF_UP)

    async def check_quantities(self) -> bool:
        """
        Flag every line item whose quantity exceeds available stock.

        The flags are committed to state before returning whether any
        item is in error.
        """
        updated = CartState(
            items=tuple(
                item.model_copy(update={"max_quantity_error": item.exceeds_stock})
                for item in self._state.items
            )
        )
        if updated != self._state:
            self._commit(updated)
        return self._state.has_errors

    def set_available_quantity(self, product_id: str, available_quantity: int) -> CartState:
        """Record the current catalog stock for a line item"""
        new_state = self._replace_item(
            product_id,
            available_quantity=max(0, available_quantity),
        )
        if new_state is not None:
            self._commit(new_state)
        return self._state

    async def refresh_availability(self, catalog: CatalogLookup) -> CartState:
        """Refresh stock for every line item from the catalog"""
        stock: dict[str, int] = {}
        for item in self._state.items:
            try:
                product = await catalog.get_product(item.product_id)
            except (OrdersApiError, httpx.HTTPError) as e:
                logger.warning(f"Could not refresh stock for {item.product_id}: {e}")
                continue
            stock[item.product_id] = product.available_quantity

        if stock:
            self._commit(
                CartState(
                    items=tuple(
                        item.model_copy(update={"available_quantity": stock[item.product_id]})
                        if item.product_id in stock
                        else item
                        for item in self._state.items
                    )
                )
            )
        return self._state

    def snapshot(self) -> list[CartLineItem]:
        """Copy of the current line items, immune to later mutations"""
        return [item.model_copy() for item in self._state.items]
