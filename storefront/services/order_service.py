# storefront/services/order_service.py
import logging
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from fastapi import HTTPException, status

from storefront.core.auth import CurrentUser
from storefront.core.notifications import notify
from storefront.repositories.errors import RemoteErrorKind, RemoteStoreError
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.order import CheckoutRequest, OrderRead
from storefront.services.cart_store import CartStore
from storefront.services.selection import CENTS

logger = logging.getLogger(__name__)

# Admin status workflow. Any status may be cancelled; a cancelled
# order can be reactivated as paid.
ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "paid": {"processing", "cancelled"},
    "processing": {"processed", "cancelled"},
    "processed": {"shipping", "cancelled"},
    "shipping": {"delivering", "cancelled"},
    "delivering": {"delivered", "cancelled"},
    "delivered": {"cancelled"},
    "cancelled": {"paid"},
}


def simulated_payment_id() -> str:
    return f"pm_{int(time.time() * 1000)}"


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Turn the cart *selection* into an order (simulated payment)
      - Remove purchased lines from the cart afterwards
      - List order history
      - Enforce the admin status workflow
    """

    def __init__(self, order_repo: OrderRepository, product_repo: ProductRepository):
        self.order_repo = order_repo
        self.product_repo = product_repo

    # -------- Checkout --------

    async def _catalog_prices(self, product_ids: list[str]) -> dict[str, tuple[str, Decimal]]:
        try:
            products = await self.product_repo.list_by_ids(product_ids)
        except RemoteStoreError as exc:
            logger.warning("Catalog lookup failed, using cart snapshots: %s", exc)
            return {}
        return {p.id: (p.name, p.price) for p in products}

    async def place_order(
        self,
        store: CartStore,
        user: CurrentUser,
        payload: CheckoutRequest,
    ) -> OrderRead:
        """
        Place an order for the selected cart lines.

        Steps:
          1. Reject an empty selection.
          2. Re-read name/price from the catalog (fall back to the
             line snapshot for products that are gone).
          3. Insert the order with status 'paid' and a simulated payment id.
          4. Remove every purchased line from the cart.

        If the insert fails the cart is left untouched.
        """
        selection = store.selection
        if not selection.selected_items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No items selected for checkout",
            )

        catalog = await self._catalog_prices(
            [it.product_id for it in selection.selected_items]
        )

        items = []
        total = Decimal("0")
        for it in selection.selected_items:
            name, price = catalog.get(it.product_id, (it.product_name, it.price))
            total += price * it.quantity
            items.append(
                {
                    "product_id": it.product_id,
                    "product_name": name,
                    "price": str(price),
                    "quantity": it.quantity,
                }
            )

        now = datetime.now(timezone.utc).isoformat()
        address = payload.billing.model_dump()
        order = {
            "id": str(uuid.uuid4()),
            "user_id": user.id,
            "total": str(total.quantize(CENTS)),
            "status": "paid",
            "items": items,
            "billing_address": address,
            "shipping_address": address,
            "customer_name": payload.name,
            "customer_email": user.email,
            "payment_id": simulated_payment_id(),
            "payment_method": payload.payment_method,
            "created_at": now,
            "updated_at": now,
        }

        try:
            saved = await self.order_repo.create(order)
        except RemoteStoreError as exc:
            logger.error("Error creating order for %s: %s", user.id, exc)
            notify(store.notifier, "error", "Failed to place order")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Failed to place order",
            )

        logger.info("Order %s placed by %s", order["id"], user.id)
        for it in selection.selected_items:
            await store.remove_from_cart(it.id)

        notify(store.notifier, "success", "Order placed successfully!")
        return OrderRead.model_validate(saved)

    # -------- History --------

    async def list_user_orders(
        self,
        user_id: str,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        """
        The user's orders, newest first. A failed lookup yields an
        empty history.
        """
        try:
            rows = await self.order_repo.list_for_owner(user_id, skip, limit)
        except RemoteStoreError as exc:
            logger.error("Error fetching orders for %s: %s", user_id, exc)
            return []
        return [OrderRead.model_validate(r) for r in rows]

    # -------- Admin --------

    async def list_all_orders(
        self,
        status_filter: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        try:
            rows = await self.order_repo.list_all(status_filter, skip, limit)
        except RemoteStoreError as exc:
            if exc.kind is RemoteErrorKind.TABLE_MISSING:
                return []
            logger.error("Error listing orders: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Failed to load orders",
            )
        return [OrderRead.model_validate(r) for r in rows]

    async def update_status(self, order_id: str, new_status: str) -> OrderRead:
        """
        Move an order along the workflow (see ALLOWED_TRANSITIONS).

        Setting the current status again is a no-op.
        """
        try:
            row = await self.order_repo.get_by_id(order_id)
        except RemoteStoreError as exc:
            logger.error("Error loading order %s: %s", order_id, exc)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Failed to update order status",
            )
        if row is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )

        current = row["status"]
        if new_status == current:
            return OrderRead.model_validate(row)
        if new_status not in ALLOWED_TRANSITIONS.get(current, set()):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot change status from {current} to {new_status}",
            )

        try:
            updated = await self.order_repo.update_status(order_id, new_status)
        except RemoteStoreError as exc:
            logger.error("Error updating order %s: %s", order_id, exc)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Failed to update order status",
            )
        logger.info("Order %s status %s -> %s", order_id, current, new_status)
        return OrderRead.model_validate(updated or {**row, "status": new_status})
