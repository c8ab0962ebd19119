# storefront/core/supabase_client.py
from supabase import AsyncClient, acreate_client

from storefront.core.config import get_settings

_public: AsyncClient | None = None
_admin: AsyncClient | None = None


async def supabase_public() -> AsyncClient:
    """
    Create (once) an async Supabase client with the anon/public key.

    Use cases:
      - password sign-in through Supabase Auth (StorefrontSession)
      - anything a shopper's own process may do under RLS

    Note: This client still respects RLS. It only carries a user JWT
    after a sign-in through it, so the API process (which never signs
    in) cannot read rows guarded by `auth.uid() = user_id` with it.
    """
    global _public
    if _public is None:
        settings = get_settings()
        _public = await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    return _public


async def supabase_admin() -> AsyncClient:
    """
    Create (once) an async Supabase client with the service role key.

    Use cases:
      - every repository built by the API (carts, orders, products,
        roles, realtime); queries are scoped to the verified user id
      - admin order listing and status changes

    WARNING:
      - Never expose service role key to frontend.
      - Only backend should call this.

    Raises:
        RuntimeError: if SUPABASE_SERVICE_ROLE_KEY is not set.
    """
    global _admin
    if _admin is None:
        settings = get_settings()
        if not settings.SUPABASE_SERVICE_ROLE_KEY:
            raise RuntimeError("Missing SUPABASE_SERVICE_ROLE_KEY in .env")
        _admin = await acreate_client(
            settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY
        )
    return _admin
