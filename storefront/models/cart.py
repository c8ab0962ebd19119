# storefront/models/cart.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlmodel import SQLModel, Field

# Columns that exist on the remote cart_items table
REMOTE_COLUMNS = ("id", "user_id", "product_id", "product_name", "price", "quantity")


class CartItem(SQLModel, table=True):
    """
    Remote cart row as stored in Supabase.
    One user cannot have 2 rows for the same product.

    No `selected` or `image` column: those live only on the in-memory
    CartLineItem.
    """

    __tablename__ = "cart_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        index=True,
    )

    product_id: str = Field(
        index=True,
    )

    product_name: str

    price: Decimal = Field(
        max_digits=12,
        decimal_places=2,
        description="Unit price when added to cart",
    )

    quantity: int = Field(
        gt=0,
        description="Must be >= 1",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class CartLineItem(SQLModel):
    """
    In-memory cart line.

    For authenticated carts this is a cache of a remote row plus the
    local-only fields; for guest carts it is the source of truth and is
    mirrored to local storage as JSON.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    product_id: str
    product_name: str
    price: Decimal
    quantity: int = Field(default=1, ge=1)
    image: str | None = None
    user_id: str | None = None
    selected: bool = True

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    @classmethod
    def from_row(cls, row: dict[str, Any], selected: bool = True) -> "CartLineItem":
        """
        Build a line item from a remote row. Unknown columns
        (created_at, updated_at, ...) are dropped.
        """
        return cls(
            id=str(row["id"]),
            product_id=str(row["product_id"]),
            product_name=row.get("product_name") or "",
            price=Decimal(str(row.get("price", 0))),
            quantity=int(row["quantity"]),
            user_id=str(row["user_id"]) if row.get("user_id") else None,
            selected=selected,
        )

    def remote_payload(self) -> dict[str, Any]:
        """Only the fields that have a column on the remote table."""
        data = self.model_dump(mode="json", include=set(REMOTE_COLUMNS))
        return {k: data[k] for k in REMOTE_COLUMNS}

    def merge_row(self, row: dict[str, Any]) -> None:
        """Apply remote column values in place, leaving local-only fields alone."""
        if "product_id" in row:
            self.product_id = str(row["product_id"])
        if row.get("product_name") is not None:
            self.product_name = row["product_name"]
        if row.get("price") is not None:
            self.price = Decimal(str(row["price"]))
        if row.get("quantity") is not None:
            self.quantity = int(row["quantity"])
