import re

EMAIL_RE = re.compile(r"\S+@\S+\.\S+")


def require_positive_number(v: float, name: str = "value") -> None:
    if v <= 0:
        raise ValueError(f"{name} must be > 0")


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_RE.search(email) is not None


def parse_quantity(text: str, default: int = 1) -> int:
    t = (text or "").strip()
    if not t:
        return default
    qty = int(t)
    require_positive_number(qty, "quantity")
    return qty
