"""Read-only helpers that turn a raw catalog product into display facts.

The cart never looks at any of this; only the product cards, the detail page
and the bot's product message do.
"""
from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Optional

from food_explorer.constants import UNNAMED_PRODUCT

ALLERGEN_TAGS = {
    "en:milk": "Milk",
    "en:gluten": "Gluten",
    "en:nuts": "Nuts",
    "en:soybeans": "Soy",
    "en:eggs": "Eggs",
}

NUTRIENT_FIELDS = [
    ("energy_100g", "Energy", "kJ"),
    ("fat_100g", "Fat", "g"),
    ("carbohydrates_100g", "Carbohydrates", "g"),
    ("sugars_100g", "Sugars", "g"),
    ("fiber_100g", "Fiber", "g"),
    ("proteins_100g", "Proteins", "g"),
    ("salt_100g", "Salt", "g"),
    ("sodium_100g", "Sodium", "g"),
]


def product_name(product: Mapping[str, Any]) -> str:
    return product.get("product_name") or product.get("product_name_en") or UNNAMED_PRODUCT


def product_image(product: Mapping[str, Any]) -> Optional[str]:
    return product.get("image_url") or product.get("image_front_url") or None


def nutrition_grade(product: Mapping[str, Any]) -> Optional[str]:
    grade = (product.get("nutrition_grades") or "").strip()
    return grade.upper() if grade else None


def dietary_labels(product: Mapping[str, Any]) -> List[str]:
    ingredients = (product.get("ingredients_text") or "").lower()
    labels = (product.get("labels") or "").lower()
    allergens = product.get("allergens")

    out = []
    if "vegan" in ingredients or "vegan" in labels:
        out.append("Vegan")
    if "gluten free" in labels:
        out.append("Gluten Free")
    # no allergen data at all is not the same as "dairy free"
    if allergens is not None and "milk" not in allergens.lower():
        out.append("Dairy Free")
    return out


def allergen_warnings(product: Mapping[str, Any]) -> List[str]:
    tags = product.get("allergens_tags") or []
    return [label for tag, label in ALLERGEN_TAGS.items() if tag in tags]


def _as_float(v: Any) -> Optional[float]:
    # OFF sends numbers as strings ("12.5", "") often enough
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def _as_int(v: Any) -> int:
    f = _as_float(v)
    return int(f) if f is not None else 0


def highlights(product: Mapping[str, Any]) -> List[str]:
    out = []
    energy = _as_float((product.get("nutriments") or {}).get("energy_100g"))
    if energy is not None:
        out.append(f"{round(energy)} kJ")
    count = _as_int(product.get("additives_n"))
    if count > 0:
        out.append(f"{count} additives")
    return out


def nutrient_rows(product: Mapping[str, Any]) -> List[Dict[str, Any]]:
    nutriments = product.get("nutriments") or {}
    rows = []
    for key, label, unit in NUTRIENT_FIELDS:
        value = _as_float(nutriments.get(key))
        if value is None:
            continue
        rows.append({"label": label, "value": round(value, 2), "unit": unit})
    return rows


GRADE_DESCRIPTIONS = {
    "A": "Very good nutritional quality",
    "B": "Good nutritional quality",
    "C": "Average nutritional quality",
    "D": "Poor nutritional quality",
    "E": "Very poor nutritional quality",
}

NOVA_GROUPS = {
    1: (
        "Unprocessed or minimally processed foods",
        "Foods that have not been altered or have been altered as little as possible, "
        "such as fresh fruits, vegetables, grains, meat, milk.",
    ),
    2: (
        "Processed culinary ingredients",
        "Substances extracted from group 1 foods or from nature, such as oils, butter, sugar, salt.",
    ),
    3: (
        "Processed foods",
        "Products made by adding salt, oil, sugar or other group 2 substances to group 1 foods, "
        "such as canned vegetables, fruits in syrup.",
    ),
    4: (
        "Ultra-processed food and drink products",
        "Products made mostly from substances not usually used in cooking, such as flavors, "
        "colors, sweeteners, and other industrial additives.",
    ),
}

MANY_ADDITIVES = 10
MAX_ADDITIVE_TAGS = 10


def grade_description(product: Mapping[str, Any]) -> str:
    return GRADE_DESCRIPTIONS.get(nutrition_grade(product) or "", "Unknown")


def nova_group(product: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    group = _as_int(product.get("nova_group"))
    if group not in NOVA_GROUPS:
        return None
    title, description = NOVA_GROUPS[group]
    return {"group": group, "title": title, "description": description}


def additives(product: Mapping[str, Any]) -> List[str]:
    """'en:e322i' -> 'E322I', first ten tags only."""
    tags = product.get("additives_tags")
    if not isinstance(tags, list):
        return []
    return [str(t).split(":", 1)[-1].upper() for t in tags[:MAX_ADDITIVE_TAGS]]


def completeness(product: Mapping[str, Any]) -> Dict[str, Any]:
    ratio = _as_float(product.get("completeness")) or 0.0
    percent = round(ratio * 100)
    if percent == 100:
        label = "Complete"
    elif percent > 75:
        label = "Mostly complete"
    elif percent > 50:
        label = "Partially complete"
    else:
        label = "Limited info"
    return {"percent": percent, "label": label}


def health_warnings(product: Mapping[str, Any]) -> List[Dict[str, str]]:
    out = []
    count = _as_int(product.get("additives_n"))
    if count > MANY_ADDITIVES:
        out.append({"title": "Many Additives", "text": f"This product contains {count} additives."})
    grade = nutrition_grade(product)
    if grade in ("D", "E"):
        out.append({"title": "Low Nutrition Quality", "text": f"This product has a {grade} nutrition grade."})
    if _as_int(product.get("nova_group")) == 4:
        out.append({"title": "Ultra-Processed", "text": "This product is ultra-processed (NOVA group 4)."})
    return out
