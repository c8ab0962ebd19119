# storefront/schemas/cart.py
from decimal import Decimal

from sqlmodel import SQLModel, Field

from storefront.core.notifications import Notification


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.
    """

    product_id: str
    quantity: int = Field(default=1, gt=0)


class CartItemUpdate(SQLModel):
    """
    Payload for updating quantity of a cart item.

    Values below 1 are accepted here and ignored by the cart.
    """

    quantity: int


class SelectionUpdate(SQLModel):
    """
    Payload for checking/unchecking one item or the whole cart.
    """

    selected: bool


class CartLineItemRead(SQLModel):
    """
    Read model for a single cart line, including line_total.
    """

    id: str
    product_id: str
    product_name: str
    price: Decimal
    quantity: int
    image: str | None = None
    selected: bool
    line_total: Decimal


class CartView(SQLModel):
    """
    Full cart response: every line, the checkout selection and its total,
    plus any toast messages raised while serving the request.
    """

    items: list[CartLineItemRead]
    selected_item_ids: list[str]
    total_quantity: int
    selected_total: Decimal
    selected_total_display: str
    messages: list[Notification] = []
