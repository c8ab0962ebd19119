# storefront/services/cart_sessions.py
import asyncio
import logging
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable

from storefront.core.notifications import BufferedNotifier
from storefront.repositories.cart_repo import CartRepository
from storefront.services.cart_store import CartStore

logger = logging.getLogger(__name__)


@dataclass
class _Session:
    store: CartStore
    last_used: float
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class CartSessionRegistry:
    """
    Keeps one live CartStore per cart owner for the HTTP layer.

    - Authenticated carts are keyed by user id and follow the remote
      table through their realtime subscription.
    - Guest carts are keyed by guest id and stored in local storage
      under "<CART_STORAGE_KEY>:<guest id>".
    - Sessions idle for longer than `idle_seconds` are closed, and the
      least recently used ones are closed once more than `max_sessions`
      are open. A guest cart reopens from local storage, a user cart
      from the remote table.
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        storage,
        storage_key: str = "cart",
        max_sessions: int = 1000,
        idle_seconds: float = 1800,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cart_repo = cart_repo
        self.storage = storage
        self.storage_key = storage_key
        self.max_sessions = max_sessions
        self.idle_seconds = idle_seconds
        self.clock = clock
        self._sessions: OrderedDict[str, _Session] = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    @staticmethod
    def _key(owner_id: str | None, guest_id: str | None) -> str:
        if owner_id is not None:
            return f"user:{owner_id}"
        if guest_id is not None:
            return f"guest:{guest_id}"
        raise ValueError("either owner_id or guest_id is required")

    async def _open(self, owner_id: str | None, guest_id: str | None) -> _Session:
        key = self._key(owner_id, guest_id)
        async with self._lock:
            now = self.clock()
            session = self._sessions.get(key)
            if session is None:
                store = CartStore(
                    self.cart_repo,
                    self.storage,
                    notifier=BufferedNotifier(),
                    storage_key=f"{self.storage_key}:{guest_id}" if owner_id is None else self.storage_key,
                )
                await store.initialize(owner_id)
                session = self._sessions[key] = _Session(store=store, last_used=now)
                logger.info("Opened cart session %s", key)
            session.last_used = now
            self._sessions.move_to_end(key)
            evicted = self._evict(now)

        for evicted_key, old in evicted:
            logger.info("Closing idle cart session %s", evicted_key)
            await old.store.close()
        return session

    def _evict(self, now: float) -> list[tuple[str, _Session]]:
        # Most recently used entry is last and is never evicted here.
        evicted = []
        for key in list(self._sessions)[:-1]:
            session = self._sessions[key]
            if session.lock.locked():
                continue
            idle = now - session.last_used >= self.idle_seconds
            if idle or len(self._sessions) > self.max_sessions:
                evicted.append((key, self._sessions.pop(key)))
        return evicted

    async def get_store(self, owner_id: str | None, guest_id: str | None = None) -> CartStore:
        return (await self._open(owner_id, guest_id)).store

    @asynccontextmanager
    async def session(
        self, owner_id: str | None, guest_id: str | None = None
    ) -> AsyncIterator[CartStore]:
        """
        Hold the caller's cart for the duration of one request.

        Requests on the same cart run one at a time, so the toasts
        drained at the end belong to this request only.
        """
        session = await self._open(owner_id, guest_id)
        async with session.lock:
            drain = getattr(session.store.notifier, "drain", None)
            if drain is not None:
                drain()
            yield session.store
            session.last_used = self.clock()

    async def close_all(self) -> None:
        async with self._lock:
            sessions, self._sessions = list(self._sessions.values()), OrderedDict()
        for session in sessions:
            await session.store.close()
