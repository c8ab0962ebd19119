# storefront/models/order.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order placed from the cart selection.

    Items, billing and shipping addresses are stored as JSON documents
    so an order stays readable after the catalog changes.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        index=True,
    )

    # paid | processing | processed | shipping | delivering | delivered | cancelled
    status: str = Field(
        default="paid",
        index=True,
        description="Order status lifecycle",
    )

    total: Decimal = Field(
        max_digits=12,
        decimal_places=2,
        description="Sum of the purchased line totals",
    )

    items: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON),
    )
    billing_address: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON),
    )
    shipping_address: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON),
    )

    customer_name: str = ""
    customer_email: str = ""

    # Simulated, e.g. "pm_1718000000000"
    payment_id: str
    payment_method: str

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
