from sqlalchemy import inspect
from sqlmodel import create_engine

from storefront.database import create_db_and_tables, with_sslmode


def test_tables_are_created():
    engine = create_engine("sqlite://")
    create_db_and_tables(engine)

    inspector = inspect(engine)
    assert {"cart_items", "orders", "user_roles"} <= set(inspector.get_table_names())
    cart_columns = {c["name"] for c in inspector.get_columns("cart_items")}
    assert "selected" not in cart_columns
    assert {"id", "user_id", "product_id", "product_name", "price", "quantity"} <= cart_columns


def test_sslmode_is_appended_once():
    assert with_sslmode("postgresql://h/db") == "postgresql://h/db?sslmode=require"
    assert with_sslmode("postgresql://h/db?a=1") == "postgresql://h/db?a=1&sslmode=require"
    assert with_sslmode("postgresql://h/db?sslmode=disable") == "postgresql://h/db?sslmode=disable"
