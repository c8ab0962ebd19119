# storefront/database.py
from functools import lru_cache

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from storefront.core.config import get_settings

# Import models so SQLModel metadata is populated before create_all()
from storefront.models import cart as _cart_models  # noqa: F401
from storefront.models import order as _order_models  # noqa: F401
from storefront.models import user as _user_models  # noqa: F401

# ---------------------------------------------------------
# Supabase Postgres connection (via pooler), used only to
# bootstrap the cart_items / orders / user_roles tables.
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=1       : keep only 1 connection to the Supabase pooler
# - max_overflow=0    : do not open extra connections beyond the pool
# - pool_pre_ping=True: validate connections before using them
# ---------------------------------------------------------


def with_sslmode(db_url: str) -> str:
    """Append sslmode=require if it is not already present."""
    if "sslmode=" in db_url:
        return db_url
    if "?" in db_url:
        return db_url + "&sslmode=require"
    return db_url + "?sslmode=require"


@lru_cache
def get_engine() -> Engine:
    settings = get_settings()
    if not settings.DATABASE_URL:
        raise RuntimeError("Missing DATABASE_URL in .env")
    return create_engine(
        with_sslmode(settings.DATABASE_URL),
        echo=False,
        pool_pre_ping=True,
        pool_size=1,
        max_overflow=0,
    )


def create_db_and_tables(engine: Engine | None = None) -> None:
    """
    Create cart_items, orders and user_roles if they do not exist.

    Run once per environment:

        python -m storefront.database
    """
    SQLModel.metadata.create_all(engine or get_engine())


if __name__ == "__main__":
    create_db_and_tables()
