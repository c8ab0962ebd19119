# storefront/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - SUPABASE_URL
      - SUPABASE_KEY (anon key)
      - SUPABASE_SERVICE_ROLE_KEY (the API talks to PostgREST as the service role)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)

    Optional:
      - DATABASE_URL (only used to bootstrap the schema)
    """

    PROJECT_NAME: str = "GPU Storefront"
    API_V1_STR: str = "/api/v1"

    # Supabase config
    SUPABASE_URL: str
    SUPABASE_KEY: str
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Direct Postgres connection, schema bootstrap only
    DATABASE_URL: str | None = None

    # Remote tables
    CART_TABLE: str = "cart_items"
    ORDERS_TABLE: str = "orders"
    PRODUCTS_TABLE: str = "products"
    ROLES_TABLE: str = "user_roles"

    # Guest carts are mirrored to files under this directory, one per cart
    LOCAL_STORAGE_PATH: str = ".storefront/local_storage"
    CART_STORAGE_KEY: str = "cart"

    # Live cart sessions kept by the API process
    CART_SESSION_LIMIT: int = 1000
    CART_SESSION_IDLE_SECONDS: float = 1800

    # Accounts treated as admins without a user_roles row
    ADMIN_EMAILS: list[str] = []

    DEFAULT_CURRENCY: str = "USD"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
