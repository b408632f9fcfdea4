from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Tuple

from food_explorer.cart.models import Order
from food_explorer.cart.store import CartStore
from food_explorer.constants import INVALID_EMAIL_MESSAGE
from food_explorer.services.pricing import Totals, calc_totals
from food_explorer.utils.validators import is_valid_email

logger = logging.getLogger(__name__)

ORDER_ID_ALPHABET = string.digits + string.ascii_uppercase


class CheckoutStep(str, Enum):
    REVIEW = "review"
    EMAIL = "email"
    CONFIRMATION = "confirmation"


def generate_order_id() -> str:
    return "ORD-" + "".join(secrets.choice(ORDER_ID_ALPHABET) for _ in range(7))


def order_timestamp(now: datetime) -> Tuple[str, str]:
    # "Oct 19, 2026", "02:05 PM" (local time)
    return f"{now:%b} {now.day}, {now.year}", now.strftime("%I:%M %p")


class CheckoutFlow:
    """review -> email -> confirmation. Only email -> review goes backwards."""

    def __init__(
        self,
        store: CartStore,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = generate_order_id,
    ) -> None:
        self.store = store
        self._clock = clock
        self._id_factory = id_factory
        self.step = CheckoutStep.REVIEW
        self.email = ""
        self.order: Optional[Order] = None

    @property
    def totals(self) -> Totals:
        if self.step == CheckoutStep.CONFIRMATION and self.order is not None:
            return calc_totals(self.order.items)
        return calc_totals(self.store.items)

    def proceed(self) -> Tuple[bool, str]:
        if self.step != CheckoutStep.REVIEW:
            return False, f"cannot continue from {self.step.value}"
        if not self.store.items:
            return False, "Your cart is empty"
        self.step = CheckoutStep.EMAIL
        return True, "ok"

    def back(self) -> Tuple[bool, str]:
        if self.step != CheckoutStep.EMAIL:
            return False, f"cannot go back from {self.step.value}"
        self.step = CheckoutStep.REVIEW
        return True, "ok"

    def place_order(self, email: str) -> Tuple[bool, str]:
        if self.step != CheckoutStep.EMAIL:
            return False, f"cannot place an order from {self.step.value}"
        email = (email or "").strip()
        self.email = email
        if not is_valid_email(email):
            return False, INVALID_EMAIL_MESSAGE
        items = self.store.items
        if not items:
            return False, "Your cart is empty"

        date_str, time_str = order_timestamp(self._clock())
        order = Order(
            id=self._id_factory(),
            date=date_str,
            time=time_str,
            items=list(items),
            total=calc_totals(items).total,
            email=email,
        )

        # точка невозврата: заказ записан, корзина очищена
        self.store.record_order(order)
        self.store.clear_cart()
        self.order = order
        self.step = CheckoutStep.CONFIRMATION
        logger.info("Order %s placed: %s item(s), total=%.2f", order.id, order.item_count, order.total)
        return True, "Order placed successfully!"

    def reset(self) -> None:
        self.step = CheckoutStep.REVIEW
        self.email = ""
        self.order = None
