# storefront/routers/orders.py
from fastapi import APIRouter, Depends

from storefront.core.auth import CurrentUser, require_auth
from storefront.dependencies import Services, get_cart_store, get_services, require_admin
from storefront.schemas.order import (
    CheckoutRequest,
    CheckoutResult,
    OrderRead,
    OrderStatus,
    OrderStatusUpdate,
)
from storefront.services.cart_store import CartStore

router = APIRouter(prefix="/orders", tags=["Orders"])


# -------- User-facing endpoints --------


@router.post("/checkout", response_model=CheckoutResult)
async def checkout(
    payload: CheckoutRequest,
    current_user: CurrentUser = Depends(require_auth),
    store: CartStore = Depends(get_cart_store),
    services: Services = Depends(get_services),
):
    """
    Place an order for the selected lines of the current user's cart.

    Payment is simulated.
    """
    order = await services.orders.place_order(store, current_user, payload)
    drain = getattr(store.notifier, "drain", None)
    return CheckoutResult(order=order, messages=drain() if drain else [])


@router.get("/me", response_model=list[OrderRead])
async def list_my_orders(
    current_user: CurrentUser = Depends(require_auth),
    services: Services = Depends(get_services),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated user's orders, newest first.
    """
    return await services.orders.list_user_orders(current_user.id, skip, limit)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[OrderRead],
    dependencies=[Depends(require_admin)],
)
async def list_all_orders(
    services: Services = Depends(get_services),
    status: OrderStatus | None = None,
    skip: int = 0,
    limit: int = 50,
):
    """
    List all orders (admin only), optionally filtered by status.
    """
    return await services.orders.list_all_orders(status, skip, limit)


@router.patch(
    "/{order_id}/status",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    services: Services = Depends(get_services),
):
    """
    Update order status (admin only).

      paid       -> processing, cancelled

      processing -> processed, cancelled

      processed  -> shipping, cancelled

      shipping   -> delivering, cancelled

      delivering -> delivered, cancelled

      delivered  -> cancelled

      cancelled  -> paid

    """
    return await services.orders.update_status(order_id, payload.status)
