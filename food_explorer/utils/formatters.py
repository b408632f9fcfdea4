import re

from food_explorer.config import settings


def money(v: float) -> str:
    return f"{v:.{settings.decimals}f} {settings.currency}"


def format_category_name(category: str) -> str:
    """'en:breakfast-cereals' -> 'Breakfast Cereals'"""
    name = category.replace("-", " ")
    name = re.sub(r"^en:", "", name, flags=re.IGNORECASE)
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), name)


def truncate_text(text: str, max_length: int) -> str:
    if not text:
        return ""
    return text[:max_length].strip() + "..." if len(text) > max_length else text


def format_ingredients_text(ingredients_text: str) -> str:
    if not ingredients_text:
        return "No ingredients listed"
    # OFF marks allergens as _milk_ / **milk**
    return re.sub(r"[*_]", "", ingredients_text).strip()
