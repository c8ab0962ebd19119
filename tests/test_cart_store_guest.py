import json
from decimal import Decimal

from storefront.services.cart_store import CartState, CartStore

from tests.conftest import make_product


async def test_initialize_empty_storage_gives_empty_ready_cart(store):
    assert store.state is CartState.UNINITIALIZED
    await store.initialize()
    assert store.state is CartState.READY
    assert store.items == []


async def test_example_scenario(store, rtx):
    await store.initialize()

    await store.add_to_cart(rtx.snapshot(), 1)
    assert len(store.items) == 1
    assert store.items[0].quantity == 1
    assert store.selection.total == Decimal("999.99")

    await store.add_to_cart(rtx.snapshot(), 2)
    assert len(store.items) == 1
    item = store.items[0]
    assert item.quantity == 3
    assert store.selection.total == Decimal("2999.97")

    store.toggle_item_selection(item.id, False)
    assert store.selection.selected_items == []
    assert store.selection.total == Decimal("0.00")

    await store.remove_from_cart(item.id)
    assert store.items == []


async def test_add_merges_instead_of_duplicating(store, rtx):
    await store.initialize()
    await store.add_to_cart(rtx.snapshot(), 2)
    await store.add_to_cart(rtx.snapshot(), 5)

    lines = [it for it in store.items if it.product_id == rtx.id]
    assert len(lines) == 1
    assert lines[0].quantity == 7


async def test_add_rejects_non_positive_quantity(store, rtx, notifier):
    await store.initialize()
    assert await store.add_to_cart(rtx.snapshot(), 0) is False
    assert store.items == []
    assert notifier.messages == []


async def test_update_quantity_below_one_is_ignored(store, rtx, notifier):
    await store.initialize()
    await store.add_to_cart(rtx.snapshot(), 4)
    item_id = store.items[0].id
    notifier.messages.clear()

    for q in (0, -1, -100):
        assert await store.update_quantity(item_id, q) is False

    assert store.items[0].quantity == 4
    assert notifier.messages == []


async def test_update_quantity_sets_value(store, rtx):
    await store.initialize()
    await store.add_to_cart(rtx.snapshot())
    item_id = store.items[0].id

    assert await store.update_quantity(item_id, 6) is True
    assert store.get(item_id).quantity == 6


async def test_remove_twice_is_noop(store, rtx):
    await store.initialize()
    await store.add_to_cart(rtx.snapshot())
    other = make_product("gpu-2", "RX 7900", "799.00")
    await store.add_to_cart(other.snapshot())
    item_id = store.find_product(rtx.id).id

    assert await store.remove_from_cart(item_id) is True
    before = [it.id for it in store.items]
    assert await store.remove_from_cart(item_id) is False
    assert [it.id for it in store.items] == before


async def test_deselected_item_stays_in_cart(store, rtx):
    await store.initialize()
    other = make_product("gpu-2", "RX 7900", "799.00")
    await store.add_to_cart(rtx.snapshot())
    await store.add_to_cart(other.snapshot(), 2)
    rtx_id = store.find_product(rtx.id).id

    store.toggle_item_selection(rtx_id, False)

    assert rtx_id in [it.id for it in store.items]
    assert rtx_id not in [it.id for it in store.selection.selected_items]
    assert store.selection.total == Decimal("1598.00")


async def test_select_all(store, rtx):
    await store.initialize()
    await store.add_to_cart(rtx.snapshot())
    await store.add_to_cart(make_product("gpu-2").snapshot())

    store.select_all_items(False)
    assert store.selection.selected_items == []
    store.select_all_items(True)
    assert len(store.selection.selected_items) == 2


async def test_guest_mutations_never_touch_remote(store, cart_repo, rtx):
    await store.initialize()
    await store.add_to_cart(rtx.snapshot(), 2)
    item_id = store.items[0].id
    await store.update_quantity(item_id, 3)
    store.toggle_item_selection(item_id, False)
    store.select_all_items(True)
    await store.remove_from_cart(item_id)
    await store.add_to_cart(rtx.snapshot())
    await store.clear_cart()

    assert cart_repo.calls == []


async def test_guest_cart_survives_reload(cart_repo, storage, notifier, rtx):
    first = CartStore(cart_repo, storage, notifier=notifier)
    await first.initialize()
    await first.add_to_cart(rtx.snapshot(), 2)
    await first.add_to_cart(make_product("gpu-2", price="120.50").snapshot(), 1)

    second = CartStore(cart_repo, storage, notifier=notifier)
    await second.initialize()

    assert [(it.product_id, it.quantity) for it in second.items] == [
        ("gpu-1", 2),
        ("gpu-2", 1),
    ]
    assert [it.id for it in second.items] == [it.id for it in first.items]
    assert second.items[1].price == Decimal("120.50")


async def test_guest_cart_is_stored_as_json_list(store, storage, rtx):
    await store.initialize()
    await store.add_to_cart(rtx.snapshot())

    stored = json.loads(storage.get_item("cart"))
    assert stored[0]["product_id"] == "gpu-1"
    assert stored[0]["quantity"] == 1


async def test_corrupt_storage_degrades_to_empty_cart(store, storage):
    storage.set_item("cart", "{not json")
    await store.initialize()
    assert store.state is CartState.READY
    assert store.items == []


async def test_clear_cart_empties_storage(store, storage, rtx):
    await store.initialize()
    await store.add_to_cart(rtx.snapshot())
    await store.clear_cart()
    assert store.items == []
    assert json.loads(storage.get_item("cart")) == []


async def test_listeners_are_notified_until_unsubscribed(store, rtx):
    await store.initialize()
    seen = []
    unsubscribe = store.subscribe(lambda s: seen.append(len(s.items)))

    await store.add_to_cart(rtx.snapshot())
    unsubscribe()
    await store.add_to_cart(make_product("gpu-2").snapshot())

    assert seen == [1]


async def test_broken_notifier_does_not_break_add(cart_repo, storage, rtx):
    class Broken:
        def success(self, message):
            raise RuntimeError("toast service down")

        def error(self, message):
            raise RuntimeError("toast service down")

    store = CartStore(cart_repo, storage, notifier=Broken())
    await store.initialize()
    assert await store.add_to_cart(rtx.snapshot()) is True
    assert store.items[0].quantity == 1
