from typing import Any, Dict

from food_explorer.cart.models import CartLine, Order


def make_product(code: str, **fields: Any) -> Dict[str, Any]:
    product = {"code": code, "product_name": f"Product {code}", "brands": "Acme"}
    product.update(fields)
    return product


def make_order(order_id: str, *lines: CartLine, total: float = 100.0, email: str = "a@b.com") -> Order:
    return Order(id=order_id, date="Oct 19, 2026", time="10:00 AM", items=list(lines), total=total, email=email)
