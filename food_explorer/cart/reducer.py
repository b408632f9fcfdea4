"""Cart commands and the single state-transition function.

Every change to the cart or order history is one of the command dataclasses
below, and `apply` is the only place that knows how to turn a command into a
new `CartState`. `apply` never mutates its input.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping, Union

from food_explorer.cart.models import CartLine, CartState, Order
from food_explorer.constants import MAX_ORDERS


@dataclass(frozen=True)
class Initialize:
    state: CartState


@dataclass(frozen=True)
class AddToCart:
    product: Mapping[str, Any]
    quantity: int = 1


@dataclass(frozen=True)
class RemoveFromCart:
    code: str


@dataclass(frozen=True)
class UpdateQuantity:
    code: str
    quantity: int


@dataclass(frozen=True)
class ClearCart:
    pass


@dataclass(frozen=True)
class RecordOrder:
    order: Order


Command = Union[Initialize, AddToCart, RemoveFromCart, UpdateQuantity, ClearCart, RecordOrder]


def apply(state: CartState, command: Command) -> CartState:
    if isinstance(command, Initialize):
        return CartState(items=list(command.state.items), orders=list(command.state.orders))

    if isinstance(command, AddToCart):
        code = str(command.product["code"])
        if any(it.code == code for it in state.items):
            items = [
                replace(it, quantity=it.quantity + command.quantity) if it.code == code else it
                for it in state.items
            ]
            return replace(state, items=items)
        line = CartLine.from_product(command.product, command.quantity)
        return replace(state, items=[*state.items, line])

    if isinstance(command, RemoveFromCart):
        return replace(state, items=[it for it in state.items if it.code != command.code])

    if isinstance(command, UpdateQuantity):
        # no clamping here: callers keep quantity >= 1
        items = [
            replace(it, quantity=command.quantity) if it.code == command.code else it
            for it in state.items
        ]
        return replace(state, items=items)

    if isinstance(command, ClearCart):
        return replace(state, items=[])

    if isinstance(command, RecordOrder):
        orders = [*state.orders, command.order]
        if len(orders) > MAX_ORDERS:
            orders = orders[len(orders) - MAX_ORDERS:]
        return replace(state, orders=orders)

    raise TypeError(f"unknown cart command: {command!r}")
