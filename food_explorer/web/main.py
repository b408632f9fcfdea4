from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit

from fastapi import APIRouter, FastAPI, Form, HTTPException, Request
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from food_explorer.cart.models import CartState
from food_explorer.cart.store import CartStore
from food_explorer.config import LOG_FORMAT, settings
from food_explorer.constants import CATEGORY_ALL, DEFAULT_SORT, SORT_OPTIONS, UNIT_PRICE
from food_explorer.db.sqlite import SqliteStorage
from food_explorer.services.catalog import CatalogClient, CatalogError
from food_explorer.services.checkout import CheckoutFlow, CheckoutStep
from food_explorer.services.listing import CatalogListing
from food_explorer.services.receipt_pdf import generate_receipt_pdf
from food_explorer.utils import product_info
from food_explorer.utils.formatters import format_category_name, format_ingredients_text, money, truncate_text
from food_explorer.utils.validators import parse_quantity
from food_explorer.web.drawer import CartDrawer

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"
STATIC_DIR = BASE_DIR / "static"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["money"] = money
templates.env.filters["category_name"] = format_category_name
templates.env.filters["truncate_text"] = truncate_text
templates.env.filters["ingredients"] = format_ingredients_text
templates.env.globals["info"] = product_info
templates.env.globals["UNIT_PRICE"] = UNIT_PRICE

router = APIRouter()


def _redirect(url: str, msg: str = "") -> RedirectResponse:
    if msg:
        url += ("&" if "?" in url else "?") + urlencode({"msg": msg})
    return RedirectResponse(url=url, status_code=303)


def _safe_next(url: str) -> str:
    # только локальные пути
    if not url or not url.startswith("/") or url.startswith("//"):
        return "/"
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query) if k != "msg"]
    return parts.path + ("?" + urlencode(query) if query else "")


def _log_cart_change(state: CartState) -> None:
    logger.debug("Cart changed: %s line(s), %s order(s)", len(state.items), len(state.orders))


def create_app(
    store: Optional[CartStore] = None,
    catalog: Optional[CatalogClient] = None,
) -> FastAPI:
    app = FastAPI(title="Food Explorer")

    storage = None
    if store is None:
        storage = SqliteStorage()
        store = CartStore(storage)
    catalog = catalog or CatalogClient()

    app.state.store = store
    app.state.catalog = catalog
    app.state.listing = CatalogListing(catalog)
    app.state.checkout = CheckoutFlow(store)
    app.state.drawer = CartDrawer()
    store.subscribe(_log_cart_change)

    if STATIC_DIR.exists():
        app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    @app.on_event("startup")
    def _startup() -> None:
        logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
        if storage is not None:
            storage.init_db()
        if not store.ready:
            store.load()

    app.include_router(router)

    @app.exception_handler(404)
    async def _not_found(request: Request, exc: Exception) -> HTMLResponse:
        detail = getattr(exc, "detail", "") or ""
        return _render(request, "not_found.html", {"detail": detail}, status_code=404)

    return app


def _render(request: Request, name: str, ctx: dict[str, Any], status_code: int = 200) -> HTMLResponse:
    state = request.app.state
    store: CartStore = state.store
    base = {
        "request": request,
        "cart_items": store.items,
        "cart_count": store.total_item_count,
        "drawer_open": state.drawer.is_open,
        "message": request.query_params.get("msg", ""),
        "current_url": request.url.path + (f"?{request.url.query}" if request.url.query else ""),
        "debounce_ms": settings.search_debounce_ms,
    }
    base.update(ctx)
    return templates.TemplateResponse(request, name, base, status_code=status_code)


# ---------------- catalog ----------------

@router.get("/", response_class=HTMLResponse)
async def index(request: Request, q: str = "", category: str = CATEGORY_ALL, sort: str = DEFAULT_SORT):
    listing: CatalogListing = request.app.state.listing
    await listing.load_categories()
    await listing.ensure(q, category)
    if sort not in SORT_OPTIONS:
        sort = DEFAULT_SORT
    ctx = {
        "products": listing.sorted_products(sort),
        "total_count": listing.total_count,
        "has_more": listing.has_more,
        "categories": listing.categories,
        "sort_options": SORT_OPTIONS,
        "q": listing.term,
        "category": listing.category,
        "sort": sort,
    }
    if listing.error and not request.query_params.get("msg"):
        ctx["message"] = listing.error
    return _render(request, "index.html", ctx)


@router.post("/more")
async def more(request: Request, q: str = Form(""), category: str = Form(CATEGORY_ALL), sort: str = Form(DEFAULT_SORT)):
    listing: CatalogListing = request.app.state.listing
    await listing.ensure(q, category)
    await listing.load_more()
    url = "/?" + urlencode({"q": listing.term, "category": listing.category, "sort": sort})
    return _redirect(url, listing.error or "")


@router.post("/barcode")
def barcode_search(barcode: str = Form("")):
    barcode = barcode.strip()
    if not barcode:
        return _redirect("/", "Please enter a barcode")
    return _redirect(f"/product/{barcode}")


@router.get("/product/{barcode}", response_class=HTMLResponse)
async def product_detail(request: Request, barcode: str):
    catalog: CatalogClient = request.app.state.catalog
    product = None
    error = ""
    try:
        product = await catalog.get_product_by_barcode(barcode)
        if product is None:
            error = "Product not found"
    except CatalogError:
        logger.warning("Product lookup failed for %s", barcode, exc_info=True)
        error = "Failed to load product details"
    return _render(
        request,
        "product.html",
        {"product": product, "barcode": barcode, "message": error or request.query_params.get("msg", "")},
        status_code=404 if error == "Product not found" else 200,
    )


# ---------------- cart ----------------

@router.post("/cart/add")
def cart_add(
    request: Request,
    code: str = Form(...),
    product_name: str = Form(""),
    brands: str = Form(""),
    image_url: str = Form(""),
    quantity: str = Form("1"),
    next: str = Form("/"),
):
    try:
        qty = parse_quantity(quantity)
    except ValueError:
        return _redirect(_safe_next(next), "Quantity must be a positive whole number")
    product = {"code": code, "product_name": product_name, "brands": brands, "image_url": image_url}
    request.app.state.store.add_to_cart(product, qty)
    return _redirect(_safe_next(next), "Added to cart")


@router.post("/cart/update")
def cart_update(request: Request, code: str = Form(...), quantity: int = Form(...), next: str = Form("/")):
    request.app.state.store.update_quantity(code, max(1, quantity))
    return _redirect(_safe_next(next))


@router.post("/cart/increment")
def cart_increment(request: Request, code: str = Form(...), next: str = Form("/")):
    store: CartStore = request.app.state.store
    line = store.get_line(code)
    if line:
        store.update_quantity(code, line.quantity + 1)
    return _redirect(_safe_next(next))


@router.post("/cart/decrement")
def cart_decrement(request: Request, code: str = Form(...), next: str = Form("/")):
    store: CartStore = request.app.state.store
    line = store.get_line(code)
    if line:
        store.update_quantity(code, max(1, line.quantity - 1))
    return _redirect(_safe_next(next))


@router.post("/cart/remove")
def cart_remove(request: Request, code: str = Form(...), next: str = Form("/")):
    request.app.state.store.remove_from_cart(code)
    return _redirect(_safe_next(next))


@router.post("/cart/clear")
def cart_clear(request: Request, next: str = Form("/")):
    request.app.state.store.clear_cart()
    return _redirect(_safe_next(next))


@router.post("/cart/open")
def cart_open(request: Request, next: str = Form("/")):
    request.app.state.drawer.open()
    return _redirect(_safe_next(next))


@router.post("/cart/close")
def cart_close(request: Request, next: str = Form("/")):
    request.app.state.drawer.close()
    return _redirect(_safe_next(next))


# ---------------- checkout ----------------

@router.get("/checkout", response_class=HTMLResponse)
def checkout_get(request: Request):
    flow: CheckoutFlow = request.app.state.checkout
    items = flow.order.items if flow.step == CheckoutStep.CONFIRMATION and flow.order else request.app.state.store.items
    return _render(request, "checkout.html", {"flow": flow, "items": items, "totals": flow.totals})


@router.post("/checkout/start")
def checkout_start(request: Request):
    request.app.state.drawer.close()
    flow: CheckoutFlow = request.app.state.checkout
    if flow.step == CheckoutStep.CONFIRMATION:
        flow.reset()
    return _redirect("/checkout")


@router.post("/checkout/continue")
def checkout_continue(request: Request):
    ok, err = request.app.state.checkout.proceed()
    return _redirect("/checkout", "" if ok else err)


@router.post("/checkout/back")
def checkout_back(request: Request):
    flow: CheckoutFlow = request.app.state.checkout
    if flow.step == CheckoutStep.EMAIL:
        flow.back()
        return _redirect("/checkout")
    return _redirect("/")


@router.post("/checkout/place")
def checkout_place(request: Request, email: str = Form("")):
    ok, msg = request.app.state.checkout.place_order(email)
    return _redirect("/checkout", msg)


@router.post("/checkout/done")
def checkout_done(request: Request):
    request.app.state.checkout.reset()
    return _redirect("/")


# ---------------- orders ----------------

@router.get("/orders", response_class=HTMLResponse)
def orders(request: Request):
    return _render(request, "orders.html", {"orders": request.app.state.store.orders})


@router.get("/orders/{order_id}/receipt.pdf", response_class=FileResponse)
def order_receipt(request: Request, order_id: str):
    order = request.app.state.store.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    path = generate_receipt_pdf(order)
    return FileResponse(path, filename=Path(path).name, media_type="application/pdf")


app = create_app()
