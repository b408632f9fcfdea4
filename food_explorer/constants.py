# ключи durable-хранилища (исторические имена, не менять)
CART_STORAGE_KEY = "food_explorer_cart"
ORDERS_STORAGE_KEY = "food_explorer_orders"

MAX_ORDERS = 10
UNNAMED_PRODUCT = "Unnamed Product"

CATEGORY_ALL = "all"
MAX_CATEGORIES = 50
FALLBACK_CATEGORIES = [
    "beverages",
    "snacks",
    "dairy",
    "breakfast",
    "fruits",
    "vegetables",
    "meat",
    "seafood",
    "bakery",
    "desserts",
]

SORT_OPTIONS = {
    "name-asc": "Name (A-Z)",
    "name-desc": "Name (Z-A)",
    "grade-asc": "Grade (A → E)",
    "grade-desc": "Grade (E → A)",
    "created-asc": "Oldest First",
    "created-desc": "Newest First",
    "popularity": "Most Popular",
}
DEFAULT_SORT = "name-asc"

# mocked checkout pricing
UNIT_PRICE = 240.0
TAX_RATE = 0.08
SHIPPING_FEE = 300.0
FREE_SHIPPING_OVER = 2000.0

LOAD_ERROR_MESSAGE = "Failed to load products. Please check your connection and try again."
INVALID_EMAIL_MESSAGE = "Please enter a valid email address"
