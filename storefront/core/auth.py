# storefront/core/auth.py
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from storefront.core.config import get_settings

logger = logging.getLogger(__name__)

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can support "guest" mode (unauthenticated).
bearer_scheme = HTTPBearer(auto_error=False)

OwnerListener = Callable[[str | None], Awaitable[None]]


@dataclass(frozen=True)
class CurrentUser:
    """Identity carried by a verified Supabase access token."""

    id: str
    email: str


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CurrentUser | None:
    """
    Resolve the current user from a Supabase JWT.

    Flow:
      1. If no Authorization header => guest => return None.
      2. Decode JWT => extract 'sub' (auth user id) and 'email'.
      3. 'sub' must be a UUID (Supabase auth.users.id).

    Raises:
        HTTPException(401): if token is malformed or missing required claims.
    """
    if credentials is None:
        return None  # guest mode

    payload = decode_access_token(credentials.credentials)
    sub = payload.get("sub")
    email = payload.get("email")

    if not sub or not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub/email",
        )

    try:
        sub_uuid = uuid.UUID(sub)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid sub in token",
        )

    return CurrentUser(id=str(sub_uuid), email=email)


def require_auth(user: CurrentUser | None = Depends(get_current_user)) -> CurrentUser:
    """
    Enforce authentication.

    Raises:
        HTTPException(401): if user is None.
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user


def get_guest_id(x_guest_id: str | None = Header(default=None)) -> str | None:
    """
    Guest carts are keyed by the X-Guest-Id header (any opaque string
    the client keeps, the way a browser keeps its localStorage).
    """
    if x_guest_id is None:
        return None
    x_guest_id = x_guest_id.strip()
    if not x_guest_id or len(x_guest_id) > 64:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Guest-Id header",
        )
    return x_guest_id


class IdentityProvider:
    """
    Current cart owner for a client session.

    Listeners run on every transition (sign-in, sign-out, switching
    accounts), in registration order, and are awaited.
    """

    def __init__(self, owner_id: str | None = None):
        self.owner_id = owner_id
        self._listeners: list[OwnerListener] = []

    def on_change(self, listener: OwnerListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def set_owner(self, owner_id: str | None) -> None:
        if owner_id == self.owner_id:
            return
        logger.info("Identity changed: %s -> %s", self.owner_id or "guest", owner_id or "guest")
        self.owner_id = owner_id
        for listener in list(self._listeners):
            await listener(owner_id)
