# storefront/services/cart_store.py
import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from pydantic import ValidationError

from storefront.core.notifications import LoggingNotifier, Notifier, notify
from storefront.models.cart import CartLineItem
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.errors import RemoteStoreError
from storefront.schemas.product import ProductSnapshot
from storefront.services.selection import Selection, project

logger = logging.getLogger(__name__)

Listener = Callable[["CartStore"], None]


class CartState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class RowChange:
    type: ChangeType
    new: dict[str, Any]
    old: dict[str, Any]


def parse_change(payload: Any) -> RowChange | None:
    """
    Normalize a realtime postgres_changes payload.

    Accepts both the {"data": {"type", "record", "old_record"}} envelope
    and the flat {"eventType", "new", "old"} shape. Returns None for
    anything else.
    """
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    if isinstance(data, dict) and "type" in data:
        kind, new, old = data.get("type"), data.get("record"), data.get("old_record")
    else:
        kind, new, old = payload.get("eventType"), payload.get("new"), payload.get("old")
    try:
        change_type = ChangeType(str(kind).upper())
    except ValueError:
        return None
    new = new if isinstance(new, dict) else {}
    old = old if isinstance(old, dict) else {}
    if change_type in (ChangeType.INSERT, ChangeType.UPDATE) and "id" not in new:
        return None
    if change_type is ChangeType.DELETE and "id" not in old:
        return None
    return RowChange(type=change_type, new=new, old=old)


class CartStore:
    """
    The cart for one session: guest (local storage) or owner (remote table).

    Lifecycle:
      UNINITIALIZED -> LOADING -> READY, and back through LOADING on
      every owner change (`initialize`).

    Writes for an owner go to the remote store first; the in-memory list
    only changes after the remote call succeeded. Realtime events from
    other sessions are folded into the list by `handle_change`.

    Remote failures never propagate: they are logged, reported through
    the notifier, and the operation returns False.
    """

    def __init__(
        self,
        cart_repo: CartRepository | None,
        storage,
        notifier: Notifier | None = None,
        storage_key: str = "cart",
    ):
        self.cart_repo = cart_repo
        self.storage = storage
        self.notifier = notifier or LoggingNotifier()
        self.storage_key = storage_key

        self.owner_id: str | None = None
        self.state = CartState.UNINITIALIZED
        self._items: list[CartLineItem] = []
        self._channel = None
        self._listeners: list[Listener] = []
        self._product_locks: dict[str, asyncio.Lock] = {}
        self._tasks: set[asyncio.Task] = set()
        self._generation = 0

    # ---- read side ----

    @property
    def items(self) -> list[CartLineItem]:
        return list(self._items)

    @property
    def selection(self) -> Selection:
        return project(self._items)

    def get(self, item_id: str) -> CartLineItem | None:
        return next((it for it in self._items if it.id == item_id), None)

    def find_product(self, product_id: str) -> CartLineItem | None:
        return next((it for it in self._items if it.product_id == product_id), None)

    # ---- listeners ----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a change listener; returns the matching unsubscribe.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        if self.owner_id is None:
            self._persist()
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Cart listener failed")

    # ---- local storage ----

    def _load_local(self) -> list[CartLineItem]:
        raw = self.storage.get_item(self.storage_key)
        if not raw:
            return []
        try:
            return [CartLineItem.model_validate(it) for it in json.loads(raw)]
        except (json.JSONDecodeError, TypeError, ValidationError):
            logger.error("Discarding unreadable guest cart under key %r", self.storage_key)
            return []

    def _persist(self) -> None:
        payload = json.dumps([it.model_dump(mode="json") for it in self._items])
        try:
            self.storage.set_item(self.storage_key, payload)
        except OSError:
            logger.exception("Failed to persist guest cart")

    # ---- lifecycle ----

    async def initialize(self, owner_id: str | None = None) -> None:
        """
        (Re)load the cart for `owner_id`, or the guest cart when None.

        Replaces the whole list. A failed remote fetch leaves an empty
        cart; it is logged but not reported to the user.
        """
        await self._close_channel()
        self.state = CartState.LOADING
        self.owner_id = owner_id
        self._generation += 1
        generation = self._generation
        self._product_locks.clear()
        self._items = []

        if owner_id is None:
            self._items = self._load_local()
        else:
            items = await self._fetch_remote(owner_id)
            if self._superseded(generation, "initialize"):
                return
            self._items = items
            try:
                channel = await self.cart_repo.subscribe(owner_id, self.handle_change)
            except RemoteStoreError as exc:
                logger.error("Realtime subscription for %s failed: %s", owner_id, exc)
            else:
                if self._superseded(generation, "initialize"):
                    await self._release(channel)
                    return
                self._channel = channel

        self.state = CartState.READY
        logger.info(
            "Cart ready for %s with %d item(s)",
            owner_id or "guest",
            len(self._items),
        )
        self._changed()

    async def _fetch_remote(self, owner_id: str) -> list[CartLineItem]:
        try:
            rows = await self.cart_repo.list_for_owner(owner_id)
        except RemoteStoreError as exc:
            logger.error("Error fetching cart for %s: %s", owner_id, exc)
            return []
        return [CartLineItem.from_row(r) for r in rows]

    async def reload(self) -> None:
        """Refetch an owner's rows, keeping local selection flags by id."""
        if self.owner_id is None:
            return
        owner_id, generation = self.owner_id, self._generation
        previous = {it.id: it for it in self._items}
        fresh = await self._fetch_remote(owner_id)
        if self._superseded(generation, "reload"):
            return
        for it in fresh:
            if it.id in previous:
                it.selected = previous[it.id].selected
                it.image = previous[it.id].image
        self._items = fresh
        self._changed()

    async def close(self) -> None:
        await self._close_channel()
        self._listeners.clear()

    async def _close_channel(self) -> None:
        if self._channel is None:
            return
        channel, self._channel = self._channel, None
        await self._release(channel)

    async def _release(self, channel) -> None:
        try:
            await self.cart_repo.unsubscribe(channel)
        except RemoteStoreError as exc:
            logger.warning("Failed to close realtime channel: %s", exc)

    def attach(self, identity) -> Callable[[], None]:
        """
        Follow an IdentityProvider: every sign-in/sign-out re-initializes.
        """
        return identity.on_change(self.initialize)

    # ---- mutations ----

    def _lock_for(self, product_id: str) -> asyncio.Lock:
        lock = self._product_locks.get(product_id)
        if lock is None:
            lock = self._product_locks[product_id] = asyncio.Lock()
        return lock

    async def add_to_cart(self, product: ProductSnapshot, quantity: int = 1) -> bool:
        """
        Add `quantity` of a product, merging into an existing line.

        Adds for the same product are serialized per store so two quick
        calls cannot both insert or both increment from the same base.
        """
        if quantity < 1:
            return False

        async with self._lock_for(product.id):
            owner_id, generation = self.owner_id, self._generation
            if owner_id is None:
                self._add_local(product, quantity)
            else:
                try:
                    applied = await self._add_remote(owner_id, generation, product, quantity)
                except RemoteStoreError as exc:
                    logger.error("Error adding %s to cart: %s", product.id, exc)
                    notify(self.notifier, "error", "Failed to add item to cart")
                    return False
                if not applied:
                    return False

        notify(self.notifier, "success", f"{product.name} added to cart")
        self._changed()
        return True

    def _add_local(self, product: ProductSnapshot, quantity: int) -> None:
        existing = self.find_product(product.id)
        if existing is not None:
            existing.quantity += quantity
            return
        self._items.append(
            CartLineItem(
                product_id=product.id,
                product_name=product.name,
                price=product.price,
                image=product.image,
                quantity=quantity,
            )
        )

    def _superseded(self, generation: int, action: str) -> bool:
        if generation == self._generation:
            return False
        logger.info("Cart was re-initialized during %s; dropping the result", action)
        return True

    async def _add_remote(
        self, owner_id: str, generation: int, product: ProductSnapshot, quantity: int
    ) -> bool:
        """
        Write the add through to the remote table, then mirror it locally.

        Returns False when the cart was re-initialized while a remote call
        was in flight; the list then belongs to another session and is left
        alone.
        """
        row = await self.cart_repo.get_item(owner_id, product.id)
        if self._superseded(generation, "add"):
            return False
        if row is not None:
            new_quantity = int(row["quantity"]) + quantity
            await self.cart_repo.update_quantity(str(row["id"]), owner_id, new_quantity)
            if self._superseded(generation, "add"):
                return False
            local = self.get(str(row["id"]))
            if local is None:
                local = CartLineItem.from_row(row)
                local.image = product.image
                self._items.append(local)
            local.quantity = new_quantity
            return True

        item = CartLineItem(
            product_id=product.id,
            product_name=product.name,
            price=product.price,
            image=product.image,
            quantity=quantity,
            user_id=owner_id,
        )
        await self.cart_repo.insert(item.remote_payload())
        if self._superseded(generation, "add"):
            return False
        # The realtime echo may already have appended this id.
        echoed = self.get(item.id)
        if echoed is None:
            self._items.append(item)
        else:
            echoed.image = item.image
        return True

    async def remove_from_cart(self, item_id: str) -> bool:
        item = self.get(item_id)
        if item is None:
            return False

        owner_id, generation = self.owner_id, self._generation
        if owner_id is not None:
            try:
                await self.cart_repo.delete(item_id, owner_id)
            except RemoteStoreError as exc:
                logger.error("Error removing %s from cart: %s", item_id, exc)
                notify(self.notifier, "error", "Failed to remove item from cart")
                return False
            if self._superseded(generation, "remove"):
                return False

        self._items = [it for it in self._items if it.id != item_id]
        notify(self.notifier, "success", f"{item.product_name} removed from cart")
        self._changed()
        return True

    async def update_quantity(self, item_id: str, quantity: int) -> bool:
        """
        Set a line's quantity. Values below 1 are ignored.

        Stock is not checked here; callers clamp against the catalog.
        """
        if quantity < 1:
            return False
        item = self.get(item_id)
        if item is None:
            return False

        owner_id, generation = self.owner_id, self._generation
        if owner_id is not None:
            try:
                await self.cart_repo.update_quantity(item_id, owner_id, quantity)
            except RemoteStoreError as exc:
                logger.error("Error updating quantity of %s: %s", item_id, exc)
                notify(self.notifier, "error", "Failed to update quantity")
                return False
            if self._superseded(generation, "update"):
                return False

        item.quantity = quantity
        notify(self.notifier, "success", "Cart updated")
        self._changed()
        return True

    def toggle_item_selection(self, item_id: str, selected: bool) -> bool:
        item = self.get(item_id)
        if item is None:
            return False
        item.selected = selected
        self._changed()
        return True

    def select_all_items(self, selected: bool) -> None:
        for item in self._items:
            item.selected = selected
        self._changed()

    async def clear_cart(self) -> bool:
        """
        Empty the cart. The local list is cleared even if the remote
        delete failed; the return value reports the remote outcome.
        """
        ok = True
        owner_id, generation = self.owner_id, self._generation
        if owner_id is not None:
            try:
                await self.cart_repo.clear(owner_id)
            except RemoteStoreError as exc:
                logger.error("Error clearing cart for %s: %s", owner_id, exc)
                notify(self.notifier, "error", "Failed to clear cart")
                ok = False
            if self._superseded(generation, "clear"):
                return False

        self._items = []
        if ok:
            notify(self.notifier, "success", "Cart cleared")
        self._changed()
        return ok

    # ---- realtime ----

    def handle_change(self, payload: Any) -> None:
        """
        Fold one realtime event into the list.

        Unknown payloads schedule a full reload instead of guessing.
        """
        change = parse_change(payload)
        if change is None:
            logger.debug("Unrecognized cart change payload, reloading: %r", payload)
            self._schedule_reload()
            return

        row = change.old if change.type is ChangeType.DELETE else change.new
        row_owner = row.get("user_id")
        if row_owner is not None and str(row_owner) != self.owner_id:
            return

        item_id = str(row["id"])
        logger.debug("Cart %s event for %s", change.type.value, item_id)

        if change.type is ChangeType.INSERT:
            if self.get(item_id) is not None:
                return
            try:
                self._items.append(CartLineItem.from_row(change.new))
            except (KeyError, ValueError, ValidationError):
                self._schedule_reload()
                return
        elif change.type is ChangeType.UPDATE:
            item = self.get(item_id)
            if item is None:
                # Row we never saw; resync rather than guess.
                self._schedule_reload()
                return
            item.merge_row(change.new)
        else:
            if self.get(item_id) is None:
                return
            self._items = [it for it in self._items if it.id != item_id]

        self._changed()

    def _schedule_reload(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running loop; cart reload skipped")
            return
        task = loop.create_task(self.reload())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
