# storefront/services/session.py
import logging

from storefront.core.auth import CurrentUser, IdentityProvider
from storefront.core.config import get_settings
from storefront.core.notifications import Notifier
from storefront.core.supabase_client import supabase_public
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.order import CheckoutRequest, OrderRead
from storefront.services.cart_store import CartStore
from storefront.services.order_service import OrderService

logger = logging.getLogger(__name__)


class StorefrontSession:
    """
    Client-side session: one signed-in (or guest) shopper, one cart.

    Sign-in and sign-out go through Supabase Auth; every identity
    transition re-initializes the cart through the IdentityProvider.

    Usage:

        session = StorefrontSession(client, store, order_service)
        await session.start()
        await session.sign_in("me@example.com", "secret")
        await session.cart.add_to_cart(product.snapshot())
    """

    def __init__(
        self,
        auth_client,
        cart: CartStore,
        order_service: OrderService,
        identity: IdentityProvider | None = None,
    ):
        self.auth_client = auth_client
        self.cart = cart
        self.order_service = order_service
        self.identity = identity or IdentityProvider()
        self.user: CurrentUser | None = None
        self._detach = None

    async def start(self) -> None:
        """Pick up an existing auth session, then load the matching cart."""
        session = await self.auth_client.auth.get_session()
        user = getattr(session, "user", None) if session else None
        self._set_user(user)
        self.identity.owner_id = self.user.id if self.user else None
        self._detach = self.cart.attach(self.identity)
        await self.cart.initialize(self.identity.owner_id)

    def _set_user(self, user) -> None:
        self.user = CurrentUser(id=str(user.id), email=user.email or "") if user else None

    async def sign_in(self, email: str, password: str) -> CurrentUser:
        response = await self.auth_client.auth.sign_in_with_password(
            {"email": email, "password": password}
        )
        self._set_user(response.user)
        await self.identity.set_owner(self.user.id)
        return self.user

    async def sign_out(self) -> None:
        await self.auth_client.auth.sign_out()
        self.user = None
        await self.identity.set_owner(None)

    async def checkout(self, payload: CheckoutRequest) -> OrderRead:
        if self.user is None:
            raise PermissionError("Sign in to place an order")
        return await self.order_service.place_order(self.cart, self.user, payload)

    async def close(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None
        await self.cart.close()


async def create_session(storage, notifier: Notifier | None = None) -> StorefrontSession:
    """
    Build a shopper session on the anon client.

    The client signs the shopper in, so its queries run under RLS as
    that user.
    """
    settings = get_settings()
    client = await supabase_public()
    products = ProductRepository(client, settings.PRODUCTS_TABLE)
    cart = CartStore(
        CartRepository(client, settings.CART_TABLE),
        storage,
        notifier=notifier,
        storage_key=settings.CART_STORAGE_KEY,
    )
    orders = OrderService(OrderRepository(client, settings.ORDERS_TABLE), products)
    return StorefrontSession(client, cart, orders)
