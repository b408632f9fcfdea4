from dataclasses import replace
from datetime import datetime
from functools import partial
from types import SimpleNamespace

import httpx
import pytest
from aiogram.filters import CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage as FSMMemoryStorage

from food_explorer.bot import handlers
from food_explorer.bot.states import CheckoutStates
from food_explorer.services import receipt_pdf
from food_explorer.services.checkout import CheckoutFlow, CheckoutStep
from food_explorer.services.listing import CatalogListing

from tests.helpers import make_product

ADMIN_ID = 42


class FakeMessage:
    def __init__(self, text: str = "", user_id: int = ADMIN_ID) -> None:
        self.text = text
        self.from_user = SimpleNamespace(id=user_id)
        self.answers = []
        self.documents = []

    async def answer(self, text, **kwargs):
        self.answers.append(text)

    async def answer_document(self, document, **kwargs):
        self.documents.append(document)


def cmd(name: str, args: str = "") -> CommandObject:
    return CommandObject(prefix="/", command=name, args=args or None)


def off_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.startswith("/api/v0/product/"):
        code = path.rsplit("/", 1)[1].removesuffix(".json")
        if code == "777":
            return httpx.Response(200, json={"status": 1, "code": "777", "product": make_product("777")})
        if code == "737628064502":
            product = make_product("0737628064502", product_name="Rice Noodles")
            return httpx.Response(200, json={"status": 1, "code": "0737628064502", "product": product})
        return httpx.Response(200, json={"status": 0})
    return httpx.Response(200, json={"count": 3, "products": [make_product("1"), make_product("2")]})


@pytest.fixture(autouse=True)
def admin(monkeypatch, tmp_path):
    monkeypatch.setattr(handlers, "settings", replace(handlers.settings, admin_id=ADMIN_ID))
    monkeypatch.setattr(
        handlers,
        "generate_receipt_pdf",
        partial(receipt_pdf.generate_receipt_pdf, export_dir=str(tmp_path)),
    )


@pytest.fixture
def catalog(catalog_factory):
    return catalog_factory(off_handler)


@pytest.fixture
def listing(catalog):
    return CatalogListing(catalog)


@pytest.fixture
def checkout(store):
    return CheckoutFlow(store, clock=lambda: datetime(2026, 10, 19, 14, 5), id_factory=lambda: "ORD-TEST001")


@pytest.fixture
def state():
    return FSMContext(storage=FSMMemoryStorage(), key=StorageKey(bot_id=1, chat_id=1, user_id=ADMIN_ID))


async def test_strangers_are_ignored(store, listing, catalog):
    m = FakeMessage(user_id=7)
    await handlers.cmd_cart(m, store)
    await handlers.cmd_add(m, cmd("add", "1"), store, listing, catalog)
    assert m.answers == []
    assert store.items == []


async def test_search_then_add_from_listing(store, listing, catalog):
    m = FakeMessage()
    await handlers.cmd_search(m, cmd("search", "choc"), listing)
    assert "Product 1" in m.answers[-1]
    assert "/more" in m.answers[-1]

    await handlers.cmd_add(m, cmd("add", "2 3"), store, listing, catalog)
    assert store.get_line("2").quantity == 3
    assert "now 3" in m.answers[-1]


async def test_add_fetches_unknown_barcode(store, listing, catalog):
    m = FakeMessage()
    await handlers.cmd_add(m, cmd("add", "777"), store, listing, catalog)
    assert store.get_line("777").name == "Product 777"

    await handlers.cmd_add(m, cmd("add", "000"), store, listing, catalog)
    assert m.answers[-1] == "❌ Product not found"

    await handlers.cmd_add(m, cmd("add", "777 zero"), store, listing, catalog)
    assert "positive whole number" in m.answers[-1]


async def test_add_replies_when_catalog_returns_canonical_barcode(store, listing, catalog):
    m = FakeMessage()
    await handlers.cmd_add(m, cmd("add", "737628064502 2"), store, listing, catalog)

    assert store.get_line("737628064502") is None
    assert store.get_line("0737628064502").quantity == 2
    assert m.answers[-1] == "✅ Added to cart: Rice Noodles × 2 (now 2)"


async def test_qty_clamps_and_rejects_unknown_line(store):
    store.add_to_cart(make_product("1"), 2)
    m = FakeMessage()

    await handlers.cmd_qty(m, cmd("qty", "1 0"), store)
    assert store.get_line("1").quantity == 1

    await handlers.cmd_qty(m, cmd("qty", "9 2"), store)
    assert m.answers[-1] == "❌ 9 is not in the cart"


async def test_checkout_conversation(store, state, checkout):
    store.add_to_cart(make_product("1"), 3)
    m = FakeMessage()

    await handlers.cmd_checkout(m, state, store, checkout)
    assert await state.get_state() == CheckoutStates.review.state

    await handlers.checkout_continue(FakeMessage(handlers.CONTINUE_TEXT), state, checkout)
    assert await state.get_state() == CheckoutStates.email.state

    bad = FakeMessage("nope")
    await handlers.checkout_email(bad, state, checkout)
    assert "Please enter a valid email address" in bad.answers[-1]
    assert await state.get_state() == CheckoutStates.email.state

    good = FakeMessage("buyer@example.com")
    await handlers.checkout_email(good, state, checkout)
    assert await state.get_state() is None
    assert checkout.step == CheckoutStep.CONFIRMATION
    assert len(good.documents) == 1
    assert "ORD-TEST001" in good.answers[-1]
    assert "1077.60 INR" in good.answers[-1]
    assert store.items == []

    orders = FakeMessage()
    await handlers.cmd_orders(orders, store)
    assert "ORD-TEST001" in orders.answers[-1]


async def test_checkout_with_empty_cart(store, state, checkout):
    m = FakeMessage()
    await handlers.cmd_checkout(m, state, store, checkout)
    assert "Cart is empty" in m.answers[-1]
    assert await state.get_state() is None


async def test_back_and_cancel(store, state, checkout):
    store.add_to_cart(make_product("1"))
    await handlers.cmd_checkout(FakeMessage(), state, store, checkout)
    await handlers.checkout_continue(FakeMessage(handlers.CONTINUE_TEXT), state, checkout)

    await handlers.checkout_back(FakeMessage(handlers.BACK_TEXT), state, store, checkout)
    assert checkout.step == CheckoutStep.REVIEW
    assert await state.get_state() == CheckoutStates.review.state

    await handlers.cmd_cancel(FakeMessage(), state, checkout)
    assert await state.get_state() is None
    assert store.get_line("1") is not None
