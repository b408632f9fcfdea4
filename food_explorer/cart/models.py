from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from food_explorer.constants import UNNAMED_PRODUCT


@dataclass(frozen=True)
class CartLine:
    """One product in the cart, keyed by its catalog code."""

    code: str
    name: str
    quantity: int
    image: Optional[str] = None
    brand: Optional[str] = None

    @classmethod
    def from_product(cls, product: Mapping[str, Any], quantity: int = 1) -> CartLine:
        # the store only needs these fields; nutrition etc. stays in the catalog payload
        return cls(
            code=str(product["code"]),
            name=product.get("product_name") or product.get("product_name_en") or UNNAMED_PRODUCT,
            quantity=quantity,
            image=product.get("image_url") or product.get("image_front_url") or None,
            brand=product.get("brands") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"code": self.code, "name": self.name}
        if self.image is not None:
            data["image"] = self.image
        if self.brand is not None:
            data["brand"] = self.brand
        data["quantity"] = self.quantity
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CartLine:
        return cls(
            code=str(data["code"]),
            name=data.get("name") or UNNAMED_PRODUCT,
            quantity=int(data["quantity"]),
            image=data.get("image"),
            brand=data.get("brand"),
        )


@dataclass(frozen=True)
class Order:
    """Snapshot of a completed checkout. `total` is stored, never recomputed."""

    id: str
    date: str
    time: str
    items: List[CartLine]
    total: float
    email: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "time": self.time,
            "items": [it.to_dict() for it in self.items],
            "total": self.total,
            "email": self.email,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Order:
        return cls(
            id=str(data["id"]),
            date=str(data.get("date", "")),
            time=str(data.get("time", "")),
            items=[CartLine.from_dict(it) for it in data.get("items", [])],
            total=float(data.get("total", 0.0)),
            email=str(data.get("email", "")),
        )

    @property
    def item_count(self) -> int:
        return sum(it.quantity for it in self.items)


@dataclass(frozen=True)
class CartState:
    items: List[CartLine] = field(default_factory=list)
    orders: List[Order] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [it.to_dict() for it in self.items],
            "orders": [o.to_dict() for o in self.orders],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CartState:
        return cls(
            items=[CartLine.from_dict(it) for it in data.get("items") or []],
            orders=[Order.from_dict(o) for o in data.get("orders") or []],
        )
