from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from food_explorer.cart.models import CartLine
from food_explorer.config import settings
from food_explorer.constants import FREE_SHIPPING_OVER, SHIPPING_FEE, TAX_RATE, UNIT_PRICE


@dataclass(frozen=True)
class Totals:
    item_count: int
    subtotal: float
    tax: float
    shipping: float
    total: float


def line_total(line: CartLine) -> float:
    return round(line.quantity * UNIT_PRICE, settings.decimals)


def calc_totals(items: Iterable[CartLine]) -> Totals:
    items = list(items)
    subtotal = round(sum(it.quantity * UNIT_PRICE for it in items), settings.decimals)
    tax = round(subtotal * TAX_RATE, settings.decimals)
    shipping = 0.0 if subtotal > FREE_SHIPPING_OVER else SHIPPING_FEE
    return Totals(
        item_count=sum(it.quantity for it in items),
        subtotal=subtotal,
        tax=tax,
        shipping=shipping,
        total=round(subtotal + tax + shipping, settings.decimals),
    )
