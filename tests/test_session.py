from types import SimpleNamespace

from storefront.services import session as session_module
from storefront.services.cart_store import CartStore
from storefront.services.order_service import OrderService
from storefront.services.session import StorefrontSession, create_session

from tests.conftest import OWNER, FakeOrderRepository, FakeProductRepository


class FakeAuth:
    def __init__(self, user=None):
        self.user = user
        self.signed_out = False

    async def get_session(self):
        return SimpleNamespace(user=self.user) if self.user else None

    async def sign_in_with_password(self, credentials):
        self.user = SimpleNamespace(id=OWNER, email=credentials["email"])
        return SimpleNamespace(user=self.user)

    async def sign_out(self):
        self.signed_out = True
        self.user = None


async def test_sign_in_and_out_switch_carts(cart_repo, storage, notifier, rtx):
    cart_repo.add_row(OWNER, "gpu-7", quantity=2)
    store = CartStore(cart_repo, storage, notifier=notifier)
    client = SimpleNamespace(auth=FakeAuth())
    session = StorefrontSession(
        client, store, OrderService(FakeOrderRepository(), FakeProductRepository())
    )

    await session.start()
    await store.add_to_cart(rtx.snapshot())
    assert [it.product_id for it in store.items] == ["gpu-1"]

    user = await session.sign_in("buyer@example.com", "secret")
    assert user.id == OWNER
    assert [it.product_id for it in store.items] == ["gpu-7"]

    await session.sign_out()
    assert client.auth.signed_out
    assert [it.product_id for it in store.items] == ["gpu-1"]

    await session.close()


async def test_start_with_existing_session_loads_owner_cart(cart_repo, storage, notifier):
    cart_repo.add_row(OWNER, "gpu-7")
    store = CartStore(cart_repo, storage, notifier=notifier)
    client = SimpleNamespace(
        auth=FakeAuth(SimpleNamespace(id=OWNER, email="buyer@example.com"))
    )
    session = StorefrontSession(
        client, store, OrderService(FakeOrderRepository(), FakeProductRepository())
    )

    await session.start()

    assert session.user.email == "buyer@example.com"
    assert store.owner_id == OWNER
    assert [it.product_id for it in store.items] == ["gpu-7"]


async def test_create_session_uses_the_anon_client(monkeypatch, storage):
    client = SimpleNamespace(auth=FakeAuth())

    async def fake_public():
        return client

    monkeypatch.setattr(session_module, "supabase_public", fake_public)

    session = await create_session(storage)

    assert session.auth_client is client
    assert session.cart.cart_repo.client is client
    assert session.order_service.order_repo.client is client
