# storefront/schemas/order.py
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel

from storefront.core.notifications import Notification

PaymentMethod = Literal["card", "paypal", "gcash", "grabpay", "cashapp"]
OrderStatus = Literal[
    "paid",
    "processing",
    "processed",
    "shipping",
    "delivering",
    "delivered",
    "cancelled",
]

# Fields that must be filled for each payment method
_PAYMENT_FIELDS: dict[str, tuple[str, ...]] = {
    "card": ("name", "card_number", "expiry", "cvc"),
    "paypal": ("paypal_email",),
    "gcash": ("gcash_number",),
    "grabpay": ("grabpay_number",),
    "cashapp": ("cashapp_username",),
}


class BillingAddress(SQLModel):
    line1: str = ""
    line2: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = "United States"

    def is_complete(self) -> bool:
        return all(
            v.strip() for v in (self.line1, self.city, self.state, self.postal_code)
        )


class CheckoutRequest(SQLModel):
    """
    Payload for placing an order from the selected cart items.

    Payment is simulated: the details are only checked for presence,
    never sent to a processor.
    """

    model_config = ConfigDict(extra="forbid")

    payment_method: PaymentMethod = "card"
    billing: BillingAddress = BillingAddress()
    use_existing_address: bool = False

    name: str = ""
    card_number: str = ""
    expiry: str = ""
    cvc: str = ""
    paypal_email: str = ""
    gcash_number: str = ""
    grabpay_number: str = ""
    cashapp_username: str = ""

    @field_validator(
        "name",
        "card_number",
        "expiry",
        "cvc",
        "paypal_email",
        "gcash_number",
        "grabpay_number",
        "cashapp_username",
    )
    @classmethod
    def strip(cls, v: str) -> str:
        return v.strip()

    @model_validator(mode="after")
    def required_fields(self) -> "CheckoutRequest":
        missing = [
            f for f in _PAYMENT_FIELDS[self.payment_method] if not getattr(self, f)
        ]
        if missing:
            raise ValueError(f"missing payment fields: {', '.join(missing)}")
        if not self.use_existing_address and not self.billing.is_complete():
            raise ValueError("billing address is incomplete")
        return self


class OrderItemRead(SQLModel):
    product_id: str
    product_name: str
    price: Decimal
    quantity: int


class OrderRead(SQLModel):
    """
    Order as stored in the orders table.
    """

    id: str
    user_id: str
    status: OrderStatus
    total: Decimal
    items: list[OrderItemRead]
    billing_address: BillingAddress | None = None
    shipping_address: BillingAddress | None = None
    customer_name: str = ""
    customer_email: str = ""
    payment_id: str
    payment_method: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CheckoutResult(SQLModel):
    order: OrderRead
    messages: list[Notification] = []


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
