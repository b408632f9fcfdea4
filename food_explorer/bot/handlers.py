import html
import logging
from typing import Any, Dict, List

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.types import FSInputFile, Message, ReplyKeyboardRemove

from food_explorer.bot.keyboards import BACK_TEXT, CONTINUE_TEXT, checkout_email_kb, checkout_review_kb, main_kb
from food_explorer.bot.states import CheckoutStates
from food_explorer.cart.store import CartStore
from food_explorer.config import settings
from food_explorer.services.catalog import CatalogClient, CatalogError
from food_explorer.services.checkout import CheckoutFlow, CheckoutStep
from food_explorer.services.listing import CatalogListing
from food_explorer.services.pricing import calc_totals
from food_explorer.services.receipt_pdf import generate_receipt_pdf
from food_explorer.utils import product_info
from food_explorer.utils.formatters import format_category_name, format_ingredients_text, money, truncate_text
from food_explorer.utils.validators import parse_quantity

logger = logging.getLogger(__name__)

router = Router()


def _is_admin(message: Message) -> bool:
    try:
        return int(message.from_user.id) == int(settings.admin_id)
    except Exception:
        return False


def _product_line(p: Dict[str, Any]) -> str:
    name = html.escape(truncate_text(product_info.product_name(p), 50))
    brand = f" — {html.escape(p['brands'])}" if p.get("brands") else ""
    grade = product_info.nutrition_grade(p)
    grade_s = f" [{grade}]" if grade else ""
    return f"• {name}{brand}{grade_s}\n  /add {p['code']}"


def _products_text(products: List[Dict[str, Any]], listing: CatalogListing) -> str:
    if not products:
        return "No products found."
    lines = [_product_line(p) for p in products]
    footer = f"\nShowing {len(listing.products)} of {listing.total_count}."
    if listing.has_more:
        footer += " More: /more"
    return "\n".join(lines) + "\n" + footer


def _product_text(p: Dict[str, Any]) -> str:
    lines = [f"<b>{html.escape(product_info.product_name(p))}</b>"]
    if p.get("brands"):
        lines.append(html.escape(p["brands"]))
    lines.append(f"Barcode: {p['code']}")
    grade = product_info.nutrition_grade(p)
    if grade:
        lines.append(f"Nutri-Score: {grade} ({product_info.grade_description(p)})")
    nova = product_info.nova_group(p)
    if nova:
        lines.append(f"NOVA {nova['group']}: {nova['title']}")
    labels = product_info.dietary_labels(p) + product_info.highlights(p)
    if labels:
        lines.append(" · ".join(labels))
    warnings = product_info.allergen_warnings(p)
    if warnings:
        lines.append(f"⚠️ Contains: {', '.join(warnings)}")
    for w in product_info.health_warnings(p):
        lines.append(f"⚠️ {w['title']}: {w['text']}")
    lines.append("")
    lines.append(html.escape(truncate_text(format_ingredients_text(p.get("ingredients_text") or ""), 400)))
    for row in product_info.nutrient_rows(p):
        lines.append(f"{row['label']}: {row['value']} {row['unit']}")
    lines.append(f"\nAdd: /add {p['code']}")
    return "\n".join(lines)


def _cart_text(store: CartStore) -> str:
    items = store.items
    if not items:
        return "🧺 Cart is empty. Find something with /search"
    lines = ["<b>Your cart</b>"]
    for it in items:
        brand = f" ({html.escape(it.brand)})" if it.brand else ""
        lines.append(f"• {html.escape(it.name)}{brand} × {it.quantity}  <code>{it.code}</code>")
    totals = calc_totals(items)
    lines.append("")
    lines.append(f"Items: {store.total_item_count}")
    lines.append(f"Subtotal: {money(totals.subtotal)}")
    lines.append(f"Tax: {money(totals.tax)}")
    lines.append(f"Shipping: {money(totals.shipping) if totals.shipping else 'FREE'}")
    lines.append(f"<b>Total: {money(totals.total)}</b>")
    return "\n".join(lines)


@router.message(Command("start"))
async def cmd_start(message: Message):
    if not _is_admin(message):
        return
    await message.answer("✅ Food Explorer is running. /help for commands", reply_markup=main_kb())


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext, checkout: CheckoutFlow):
    if not _is_admin(message):
        return
    await state.clear()
    if checkout.step != CheckoutStep.CONFIRMATION:
        checkout.reset()
    await message.answer("❎ Cancelled.", reply_markup=ReplyKeyboardRemove())


@router.message(Command("help"))
async def cmd_help(message: Message):
    if not _is_admin(message):
        return

    text = (
        "<b>Food Explorer — commands</b>\n\n"
        "<b>Catalog</b>\n"
        "/search TERM — search products\n"
        "/categories — list categories\n"
        "/category NAME — products in a category\n"
        "/more — next page\n"
        "/product BARCODE — product details\n\n"
        "<b>Cart</b>\n"
        "/add BARCODE [QTY] — add to cart\n"
        "/cart — show cart\n"
        "/qty BARCODE QTY — set quantity\n"
        "/remove BARCODE — remove line\n"
        "/clear — empty the cart\n\n"
        "<b>Orders</b>\n"
        "/checkout — place an order\n"
        "/orders — last 10 orders\n"
        "/cancel — abort current input\n"
    )
    await message.answer(text)


# ---------------- catalog ----------------

@router.message(Command("categories"))
async def cmd_categories(message: Message, listing: CatalogListing):
    if not _is_admin(message):
        return
    categories = await listing.load_categories()
    lines = ["<b>Categories:</b>"]
    for c in categories:
        lines.append(f"• {html.escape(format_category_name(c))} — /category {c}")
    await message.answer("\n".join(lines))


@router.message(Command("search"))
async def cmd_search(message: Message, command: CommandObject, listing: CatalogListing):
    if not _is_admin(message):
        return
    term = (command.args or "").strip()
    if not term:
        await message.answer("Format: /search TERM")
        return
    await listing.reload(term)
    if listing.error:
        await message.answer(f"❌ {listing.error}")
        return
    await message.answer(_products_text(listing.products, listing))


@router.message(Command("category"))
async def cmd_category(message: Message, command: CommandObject, listing: CatalogListing):
    if not _is_admin(message):
        return
    category = (command.args or "").strip().lower()
    if not category:
        await message.answer("Format: /category NAME (see /categories)")
        return
    await listing.reload("", category)
    if listing.error:
        await message.answer(f"❌ {listing.error}")
        return
    await message.answer(_products_text(listing.products, listing))


@router.message(Command("more"))
async def cmd_more(message: Message, listing: CatalogListing):
    if not _is_admin(message):
        return
    if not listing.loaded:
        await listing.reload(listing.term, listing.category)
        await message.answer(_products_text(listing.products, listing))
        return
    if not listing.has_more:
        await message.answer("No more products.")
        return
    before = len(listing.products)
    await listing.load_more()
    if listing.error:
        await message.answer(f"❌ {listing.error}")
        return
    await message.answer(_products_text(listing.products[before:], listing))


@router.message(Command("product"))
async def cmd_product(message: Message, command: CommandObject, catalog: CatalogClient):
    if not _is_admin(message):
        return
    barcode = (command.args or "").strip()
    if not barcode:
        await message.answer("Please enter a barcode: /product BARCODE")
        return
    try:
        product = await catalog.get_product_by_barcode(barcode)
    except CatalogError:
        logger.warning("Product lookup failed for %s", barcode, exc_info=True)
        await message.answer("❌ Failed to load product details")
        return
    if product is None:
        await message.answer("❌ Product not found")
        return
    await message.answer(_product_text(product))


# ---------------- cart ----------------

@router.message(Command("add"))
async def cmd_add(
    message: Message,
    command: CommandObject,
    store: CartStore,
    listing: CatalogListing,
    catalog: CatalogClient,
):
    if not _is_admin(message):
        return

    parts = (command.args or "").split()
    if not parts or len(parts) > 2:
        await message.answer("Format: /add BARCODE [QTY]")
        return
    code = parts[0]
    try:
        qty = parse_quantity(parts[1] if len(parts) == 2 else "")
    except ValueError:
        await message.answer("QTY must be a positive whole number, e.g. 2")
        return

    product = next((p for p in listing.products if p.get("code") == code), None)
    if product is None:
        try:
            product = await catalog.get_product_by_barcode(code)
        except CatalogError:
            logger.warning("Product lookup failed for %s", code, exc_info=True)
            await message.answer("❌ Failed to load product details")
            return
    if product is None:
        await message.answer("❌ Product not found")
        return

    store.add_to_cart(product, qty)
    # OFF may return the canonical form of the barcode (UPC-A -> EAN-13)
    line = store.get_line(str(product["code"]))
    await message.answer(f"✅ Added to cart: {html.escape(line.name)} × {qty} (now {line.quantity})")


@router.message(Command("cart"))
async def cmd_cart(message: Message, store: CartStore):
    if not _is_admin(message):
        return
    await message.answer(_cart_text(store))


@router.message(Command("qty"))
async def cmd_qty(message: Message, command: CommandObject, store: CartStore):
    if not _is_admin(message):
        return
    parts = (command.args or "").split()
    if len(parts) != 2:
        await message.answer("Format: /qty BARCODE QTY")
        return
    code, qty_s = parts
    try:
        qty = int(qty_s)
    except ValueError:
        await message.answer("QTY must be a whole number, e.g. 3")
        return
    if store.get_line(code) is None:
        await message.answer(f"❌ {code} is not in the cart")
        return
    store.update_quantity(code, max(1, qty))
    await message.answer(_cart_text(store))


@router.message(Command("remove"))
async def cmd_remove(message: Message, command: CommandObject, store: CartStore):
    if not _is_admin(message):
        return
    code = (command.args or "").strip()
    if not code:
        await message.answer("Format: /remove BARCODE")
        return
    store.remove_from_cart(code)
    await message.answer(_cart_text(store))


@router.message(Command("clear"))
async def cmd_clear(message: Message, store: CartStore):
    if not _is_admin(message):
        return
    store.clear_cart()
    await message.answer("🧺 Cart cleared.")


# ---------------- checkout ----------------

@router.message(Command("checkout"))
async def cmd_checkout(message: Message, state: FSMContext, store: CartStore, checkout: CheckoutFlow):
    if not _is_admin(message):
        return
    checkout.reset()
    if not store.items:
        await message.answer("🧺 Cart is empty. Nothing to check out.")
        return
    await state.set_state(CheckoutStates.review)
    await message.answer(
        "1/3) Review your order\n\n" + _cart_text(store) + "\n\nCancel: /cancel",
        reply_markup=checkout_review_kb(),
    )


@router.message(CheckoutStates.review, F.text == CONTINUE_TEXT)
async def checkout_continue(message: Message, state: FSMContext, checkout: CheckoutFlow):
    if not _is_admin(message):
        return
    ok, err = checkout.proceed()
    if not ok:
        await state.clear()
        await message.answer(f"❌ {err}", reply_markup=ReplyKeyboardRemove())
        return
    await state.set_state(CheckoutStates.email)
    await message.answer(
        "2/3) Enter your email address to receive order confirmation.\nBack: «Back», cancel: /cancel",
        reply_markup=checkout_email_kb(),
    )


@router.message(CheckoutStates.email, F.text == BACK_TEXT)
async def checkout_back(message: Message, state: FSMContext, store: CartStore, checkout: CheckoutFlow):
    if not _is_admin(message):
        return
    checkout.back()
    await state.set_state(CheckoutStates.review)
    await message.answer("1/3) Review your order\n\n" + _cart_text(store), reply_markup=checkout_review_kb())


@router.message(CheckoutStates.email)
async def checkout_email(message: Message, state: FSMContext, checkout: CheckoutFlow):
    if not _is_admin(message):
        return

    ok, msg = checkout.place_order(message.text or "")
    if not ok:
        await message.answer(f"❌ {msg}\nCancel: /cancel")
        return

    await state.clear()
    order = checkout.order
    try:
        pdf_path = generate_receipt_pdf(order)
        await message.answer_document(FSInputFile(pdf_path))
    except Exception as e:
        logger.exception("Receipt PDF failed for %s", order.id)
        await message.answer(f"⚠️ Order placed, but the receipt PDF failed: {e}")

    await message.answer(
        f"✅ {msg}\n"
        f"3/3) Order <b>{order.id}</b> — {order.date} {order.time}\n"
        f"Confirmation sent to {html.escape(order.email)}\n"
        f"Total: {money(order.total)}",
        reply_markup=main_kb(),
    )


@router.message(Command("orders"))
async def cmd_orders(message: Message, store: CartStore):
    if not _is_admin(message):
        return
    orders = store.orders
    if not orders:
        await message.answer("No orders yet. Start with /search")
        return
    lines = ["<b>Orders:</b>"]
    for o in orders:
        lines.append(f"• <b>{o.id}</b> {o.date} {o.time} — {o.item_count} item(s), {money(o.total)}")
    await message.answer("\n".join(lines))
