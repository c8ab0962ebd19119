# storefront/schemas/product.py
from decimal import Decimal
from typing import Any, Literal

from sqlmodel import SQLModel, Field

Brand = Literal["NVIDIA", "AMD", "Intel"]
Category = Literal["Gaming", "Workstation", "Mining", "AI"]


class ProductRead(SQLModel):
    """
    Catalog entry as read from the products table.

    The cart never writes these; it only snapshots name/price/image
    at add-time and reads `stock` to clamp quantities.
    """

    id: str
    name: str
    brand: Brand | None = None
    model: str | None = None
    price: Decimal = Field(ge=0)
    category: Category | None = None
    image: str | None = None
    description: str | None = None
    stock: int = Field(default=0, ge=0)
    specs: dict[str, Any] | None = None

    def snapshot(self) -> "ProductSnapshot":
        return ProductSnapshot(
            id=self.id,
            name=self.name,
            price=self.price,
            image=self.image,
        )


class ProductSnapshot(SQLModel):
    """
    Denormalized product fields captured when a product is added to a cart.
    """

    id: str
    name: str
    price: Decimal = Field(ge=0)
    image: str | None = None
