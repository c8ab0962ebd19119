import asyncio
import os
import time
import uuid
from decimal import Decimal

import pytest
from jose import jwt

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "anon-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-secret")

from storefront.core.local_storage import MemoryStorage  # noqa: E402
from storefront.repositories.errors import RemoteErrorKind, RemoteStoreError  # noqa: E402
from storefront.schemas.product import ProductRead  # noqa: E402
from storefront.services.cart_store import CartStore  # noqa: E402

OWNER = str(uuid.UUID("11111111-1111-1111-1111-111111111111"))
OTHER_OWNER = str(uuid.UUID("22222222-2222-2222-2222-222222222222"))


class FakeCartRepository:
    """In-memory stand-in for the remote cart_items table."""

    def __init__(self):
        self.rows: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.fail: set[str] = set()
        self.callbacks: dict[str, object] = {}
        self.closed: list[object] = []
        self.gates: dict[str, asyncio.Event] = {}

    def _check(self, op, *args):
        self.calls.append((op, *args))
        if op in self.fail:
            raise RemoteStoreError(RemoteErrorKind.UNAVAILABLE, f"{op} failed")

    def hold(self, op) -> asyncio.Event:
        """Block `op` until the returned event is set."""
        gate = self.gates[op] = asyncio.Event()
        return gate

    async def _gate(self, op):
        gate = self.gates.get(op)
        if gate is not None:
            await gate.wait()

    def add_row(self, owner_id, product_id, quantity=1, price="10.00", name="GPU"):
        row = {
            "id": str(uuid.uuid4()),
            "user_id": owner_id,
            "product_id": product_id,
            "product_name": name,
            "price": price,
            "quantity": quantity,
        }
        self.rows[row["id"]] = row
        return row

    async def list_for_owner(self, owner_id):
        self._check("list_for_owner", owner_id)
        await self._gate("list_for_owner")
        return [dict(r) for r in self.rows.values() if r["user_id"] == owner_id]

    async def get_item(self, owner_id, product_id):
        self._check("get_item", owner_id, product_id)
        for r in self.rows.values():
            if r["user_id"] == owner_id and r["product_id"] == product_id:
                return dict(r)
        return None

    async def insert(self, row):
        self._check("insert", row["user_id"], row)
        await self._gate("insert")
        self.rows[row["id"]] = dict(row)
        return dict(row)

    async def update_quantity(self, item_id, owner_id, quantity):
        self._check("update_quantity", owner_id, item_id, quantity)
        await self._gate("update_quantity")
        row = self.rows.get(item_id)
        if row and row["user_id"] == owner_id:
            row["quantity"] = quantity

    async def delete(self, item_id, owner_id):
        self._check("delete", owner_id, item_id)
        await self._gate("delete")
        row = self.rows.get(item_id)
        if row and row["user_id"] == owner_id:
            del self.rows[item_id]

    async def clear(self, owner_id):
        self._check("clear", owner_id)
        for key in [k for k, r in self.rows.items() if r["user_id"] == owner_id]:
            del self.rows[key]

    async def subscribe(self, owner_id, callback):
        self._check("subscribe", owner_id)
        channel = object()
        self.callbacks[owner_id] = callback
        return channel

    async def unsubscribe(self, channel):
        self.closed.append(channel)

    def owners_touched(self):
        return {c[1] for c in self.calls}


class FakeProductRepository:
    def __init__(self, products=()):
        self.products = {p.id: p for p in products}
        self.fail = False

    async def get_by_id(self, product_id):
        if self.fail:
            raise RemoteStoreError(RemoteErrorKind.UNAVAILABLE, "catalog down")
        return self.products.get(product_id)

    async def list_by_ids(self, product_ids):
        if self.fail:
            raise RemoteStoreError(RemoteErrorKind.UNAVAILABLE, "catalog down")
        return [self.products[i] for i in product_ids if i in self.products]


class FakeOrderRepository:
    def __init__(self):
        self.rows: dict[str, dict] = {}
        self.fail: set[str] = set()

    def _check(self, op):
        if op in self.fail:
            raise RemoteStoreError(RemoteErrorKind.UNAVAILABLE, f"{op} failed")

    async def create(self, order):
        self._check("create")
        self.rows[order["id"]] = dict(order)
        return dict(order)

    async def list_for_owner(self, owner_id, skip=0, limit=50):
        self._check("list_for_owner")
        rows = [r for r in self.rows.values() if r["user_id"] == owner_id]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return rows[skip : skip + limit]

    async def list_all(self, status=None, skip=0, limit=50):
        self._check("list_all")
        rows = [r for r in self.rows.values() if status is None or r["status"] == status]
        return rows[skip : skip + limit]

    async def get_by_id(self, order_id):
        self._check("get_by_id")
        return self.rows.get(order_id)

    async def update_status(self, order_id, status):
        self._check("update_status")
        self.rows[order_id]["status"] = status
        return dict(self.rows[order_id])


class FakeRoleRepository:
    def __init__(self, admins=()):
        self.admins = set(admins)
        self.fail = False

    async def has_role(self, user_id, role):
        if self.fail:
            raise RemoteStoreError(RemoteErrorKind.UNAVAILABLE, "roles down")
        return role == "admin" and user_id in self.admins


class RecordingNotifier:
    def __init__(self):
        self.messages: list[tuple[str, str]] = []

    def success(self, message):
        self.messages.append(("success", message))

    def error(self, message):
        self.messages.append(("error", message))

    @property
    def errors(self):
        return [m for level, m in self.messages if level == "error"]


def make_token(sub=OWNER, email="buyer@example.com", secret="test-secret", exp_delta=3600):
    claims = {"sub": sub, "email": email, "exp": int(time.time()) + exp_delta}
    return jwt.encode(claims, secret, algorithm="HS256")


def make_product(product_id="gpu-1", name="RTX 4080", price="999.99", stock=10):
    return ProductRead(id=product_id, name=name, price=Decimal(price), stock=stock)


@pytest.fixture
def cart_repo():
    return FakeCartRepository()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def store(cart_repo, storage, notifier):
    return CartStore(cart_repo, storage, notifier=notifier)


@pytest.fixture
def rtx():
    return make_product()
