import json

import pytest

from food_explorer.cart.models import CartLine, CartState
from food_explorer.cart.reducer import Initialize
from food_explorer.cart.store import CartStore, StoreAlreadyInitializedError, StoreLifecycleError, StoreNotReadyError
from food_explorer.constants import CART_STORAGE_KEY, MAX_ORDERS, ORDERS_STORAGE_KEY, UNNAMED_PRODUCT
from food_explorer.db.memory import MemoryStorage

from tests.helpers import make_order, make_product


def test_add_same_code_merges_into_one_line(store):
    store.add_to_cart(make_product("0001"))
    store.add_to_cart(make_product("0001"), 2)
    store.add_to_cart(make_product("0001"), 7)

    assert len(store.items) == 1
    assert store.items[0].code == "0001"
    assert store.items[0].quantity == 10
    assert store.total_item_count == 10


def test_concrete_add_then_update_to_zero_is_not_clamped(store):
    store.add_to_cart(make_product("0001"), 1)
    store.add_to_cart(make_product("0001"), 2)
    assert [(it.code, it.quantity) for it in store.items] == [("0001", 3)]

    store.update_quantity("0001", 0)

    assert store.items[0].quantity == 0


def test_new_line_takes_fields_from_product(store):
    store.add_to_cart(
        {"code": "42", "product_name_en": "Oat Milk", "image_front_url": "http://img/front.jpg", "brands": "Oatly"}
    )
    line = store.items[0]
    assert line == CartLine(code="42", name="Oat Milk", quantity=1, image="http://img/front.jpg", brand="Oatly")


def test_missing_names_fall_back_and_optional_fields_stay_empty(store):
    store.add_to_cart({"code": "7"})
    line = store.items[0]
    assert line.name == UNNAMED_PRODUCT
    assert line.image is None
    assert line.brand is None


def test_lines_keep_insertion_order(store):
    for code in ("b", "a", "c"):
        store.add_to_cart(make_product(code))
    store.add_to_cart(make_product("a"))
    assert [it.code for it in store.items] == ["b", "a", "c"]


def test_remove_then_add_starts_fresh(store):
    store.add_to_cart(make_product("0001"), 5)
    store.remove_from_cart("0001")
    assert store.items == []

    store.add_to_cart(make_product("0001"), 2)
    assert store.items[0].quantity == 2


def test_remove_and_update_unknown_code_are_noops(store):
    store.add_to_cart(make_product("x"), 2)
    store.remove_from_cart("nope")
    store.update_quantity("nope", 9)
    assert [(it.code, it.quantity) for it in store.items] == [("x", 2)]


def test_clear_cart_keeps_orders(store):
    store.record_order(make_order("ORD-1", CartLine(code="a", name="A", quantity=1)))
    store.add_to_cart(make_product("b"))
    before = store.orders

    store.clear_cart()

    assert store.items == []
    assert store.orders == before


def test_record_order_keeps_last_ten_in_order(store):
    for i in range(MAX_ORDERS + 1):
        store.record_order(make_order(f"ORD-{i}"))

    assert len(store.orders) == MAX_ORDERS
    assert [o.id for o in store.orders] == [f"ORD-{i}" for i in range(1, MAX_ORDERS + 1)]


def test_every_mutation_is_persisted_to_both_keys(store, storage):
    store.add_to_cart(make_product("a"), 3)
    combined = json.loads(storage.get_item(CART_STORAGE_KEY))
    assert combined["items"] == [{"code": "a", "name": "Product a", "brand": "Acme", "quantity": 3}]
    assert combined["orders"] == []

    store.record_order(make_order("ORD-1", CartLine(code="a", name="A", quantity=3)))
    orders = json.loads(storage.get_item(ORDERS_STORAGE_KEY))
    assert [o["id"] for o in orders] == ["ORD-1"]
    assert json.loads(storage.get_item(CART_STORAGE_KEY))["orders"] == orders


def test_round_trip_through_storage(store, storage):
    store.add_to_cart(make_product("a", image_url="http://img/a.jpg"), 2)
    store.add_to_cart({"code": "b"})
    store.record_order(make_order("ORD-1", *store.items, total=518.4))

    reloaded = CartStore(MemoryStorage(dict(storage.data)))
    reloaded.load()

    assert reloaded.items == store.items
    assert reloaded.orders == store.orders


def test_load_from_empty_storage_gives_empty_state(store):
    assert store.ready
    assert store.items == []
    assert store.orders == []


def test_load_ignores_corrupt_keys_independently():
    good_orders = json.dumps([make_order("ORD-9").to_dict()])
    storage = MemoryStorage({CART_STORAGE_KEY: "{not json", ORDERS_STORAGE_KEY: good_orders})
    s = CartStore(storage)
    s.load()

    assert s.items == []
    assert [o.id for o in s.orders] == ["ORD-9"]


def test_load_ignores_malformed_entries():
    storage = MemoryStorage({CART_STORAGE_KEY: json.dumps({"items": [{"name": "no code"}]})})
    s = CartStore(storage)
    s.load()
    assert s.items == []


def test_load_falls_back_to_combined_orders_when_orders_key_missing():
    combined = {"items": [], "orders": [make_order("ORD-OLD").to_dict()]}
    s = CartStore(MemoryStorage({CART_STORAGE_KEY: json.dumps(combined)}))
    s.load()
    assert [o.id for o in s.orders] == ["ORD-OLD"]


def test_write_failure_keeps_in_memory_state(caplog):
    storage = MemoryStorage(fail_writes=True)
    s = CartStore(storage)
    s.load()

    s.add_to_cart(make_product("a"), 2)

    assert s.items[0].quantity == 2
    assert storage.data == {}
    assert "Error saving cart data" in caplog.text


def test_mutation_before_initialize_is_rejected(storage):
    s = CartStore(storage)
    with pytest.raises(StoreNotReadyError):
        s.add_to_cart(make_product("a"))
    assert storage.writes == []


def test_initialize_is_boot_time_only(store):
    with pytest.raises(StoreAlreadyInitializedError):
        store.initialize(CartState())
    assert store.ready


def test_initialize_cannot_be_dispatched(store):
    with pytest.raises(StoreLifecycleError):
        store.dispatch(Initialize(CartState()))


def test_subscribers_see_every_transition_and_can_unsubscribe(store):
    seen = []
    unsubscribe = store.subscribe(lambda state: seen.append(sum(it.quantity for it in state.items)))

    store.add_to_cart(make_product("a"))
    store.add_to_cart(make_product("a"), 2)
    unsubscribe()
    store.clear_cart()

    assert seen == [1, 3]


def test_failing_subscriber_does_not_break_mutation(store):
    def boom(state):
        raise RuntimeError("listener bug")

    store.subscribe(boom)
    store.add_to_cart(make_product("a"))
    assert store.total_item_count == 1
