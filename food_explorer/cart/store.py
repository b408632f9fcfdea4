from __future__ import annotations

import json
import logging
from typing import Any, Callable, List, Mapping, Optional

from food_explorer.cart.models import CartLine, CartState, Order
from food_explorer.cart.reducer import (
    AddToCart,
    ClearCart,
    Command,
    Initialize,
    RecordOrder,
    RemoveFromCart,
    UpdateQuantity,
    apply,
)
from food_explorer.constants import CART_STORAGE_KEY, ORDERS_STORAGE_KEY
from food_explorer.db.sqlite import Storage

logger = logging.getLogger(__name__)

Listener = Callable[[CartState], None]


class StoreLifecycleError(RuntimeError):
    pass


class StoreNotReadyError(StoreLifecycleError):
    pass


class StoreAlreadyInitializedError(StoreLifecycleError):
    pass


class CartStore:
    """Cart and order history, mirrored to storage after every transition.

    Lifecycle: created uninitialized, becomes ready after `initialize()` (or
    `load()`, which reads storage and calls it). Mutations before that are a
    programming error and raise StoreNotReadyError; a second initialize
    raises StoreAlreadyInitializedError.
    """

    def __init__(self, storage: Storage) -> None:
        self._storage = storage
        self._state = CartState()
        self._ready = False
        self._listeners: List[Listener] = []

    # ---------------- lifecycle ----------------

    @property
    def ready(self) -> bool:
        return self._ready

    def load(self) -> CartState:
        items: list = []
        orders: Optional[list] = None

        combined = self._read_json(CART_STORAGE_KEY)
        if isinstance(combined, dict):
            items = self._parse(combined.get("items") or [], CartLine.from_dict, CART_STORAGE_KEY)
            fallback_orders = combined.get("orders")
        else:
            fallback_orders = None

        orders_raw = self._read_json(ORDERS_STORAGE_KEY)
        if isinstance(orders_raw, list):
            orders = self._parse(orders_raw, Order.from_dict, ORDERS_STORAGE_KEY)
        elif isinstance(fallback_orders, list):
            # старые сохранения: история только внутри общего блоба
            orders = self._parse(fallback_orders, Order.from_dict, CART_STORAGE_KEY)

        snapshot = CartState(items=items, orders=orders or [])
        self.initialize(snapshot)
        logger.info("Cart loaded: %s line(s), %s order(s)", len(snapshot.items), len(snapshot.orders))
        return self._state

    def initialize(self, snapshot: CartState) -> None:
        if self._ready:
            raise StoreAlreadyInitializedError("cart store is already initialized")
        self._ready = True
        self._transition(Initialize(snapshot))

    # ---------------- reads ----------------

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def items(self) -> List[CartLine]:
        return list(self._state.items)

    @property
    def orders(self) -> List[Order]:
        return list(self._state.orders)

    @property
    def total_item_count(self) -> int:
        return sum(it.quantity for it in self._state.items)

    def get_line(self, code: str) -> Optional[CartLine]:
        for it in self._state.items:
            if it.code == code:
                return it
        return None

    def get_order(self, order_id: str) -> Optional[Order]:
        for o in self._state.orders:
            if o.id == order_id:
                return o
        return None

    # ---------------- mutations ----------------

    def dispatch(self, command: Command) -> CartState:
        if isinstance(command, Initialize):
            raise StoreLifecycleError("initialize() is boot-time only; use CartStore.initialize")
        if not self._ready:
            raise StoreNotReadyError("cart store used before initialize()/load()")
        return self._transition(command)

    def add_to_cart(self, product: Mapping[str, Any], quantity: int = 1) -> CartState:
        return self.dispatch(AddToCart(product, quantity))

    def remove_from_cart(self, code: str) -> CartState:
        return self.dispatch(RemoveFromCart(code))

    def update_quantity(self, code: str, quantity: int) -> CartState:
        return self.dispatch(UpdateQuantity(code, quantity))

    def clear_cart(self) -> CartState:
        return self.dispatch(ClearCart())

    def record_order(self, order: Order) -> CartState:
        return self.dispatch(RecordOrder(order))

    # ---------------- subscriptions ----------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------------- internals ----------------

    def _transition(self, command: Command) -> CartState:
        self._state = apply(self._state, command)
        self._persist()
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("Cart listener %r failed", listener)
        return self._state

    def _persist(self) -> None:
        try:
            self._storage.set_item(CART_STORAGE_KEY, json.dumps(self._state.to_dict(), ensure_ascii=False))
            self._storage.set_item(
                ORDERS_STORAGE_KEY,
                json.dumps([o.to_dict() for o in self._state.orders], ensure_ascii=False),
            )
        except Exception:
            # in-memory state stays as is; only the next reload may lose this write
            logger.exception("Error saving cart data")

    def _read_json(self, key: str) -> Any:
        try:
            raw = self._storage.get_item(key)
        except Exception:
            logger.warning("Error reading %s from storage", key, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Stored %s is not valid JSON, ignoring it", key)
            return None

    @staticmethod
    def _parse(rows: Any, factory: Callable[[Mapping[str, Any]], Any], key: str) -> list:
        try:
            return [factory(r) for r in rows]
        except (KeyError, TypeError, ValueError, AttributeError):
            logger.warning("Stored %s has malformed entries, ignoring it", key)
            return []
