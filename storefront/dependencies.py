# storefront/dependencies.py
from dataclasses import dataclass
from typing import AsyncIterator

from fastapi import Depends, HTTPException, Request, status

from storefront.core.auth import CurrentUser, get_current_user, get_guest_id, require_auth
from storefront.repositories.product_repo import ProductRepository
from storefront.services.cart_sessions import CartSessionRegistry
from storefront.services.cart_store import CartStore
from storefront.services.order_service import OrderService
from storefront.services.role_service import RoleService


@dataclass
class Services:
    """Everything the routers need, built once in the app lifespan."""

    carts: CartSessionRegistry
    products: ProductRepository
    orders: OrderService
    roles: RoleService


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_cart_store(
    services: Services = Depends(get_services),
    user: CurrentUser | None = Depends(get_current_user),
    guest_id: str | None = Depends(get_guest_id),
) -> AsyncIterator[CartStore]:
    """
    Cart for the caller: the user's cart when a bearer token is sent,
    otherwise the guest cart named by X-Guest-Id.

    The cart is held for the whole request; concurrent requests on the
    same cart wait their turn.
    """
    if user is None and guest_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Sign in or send an X-Guest-Id header",
        )
    async with services.carts.session(user.id if user else None, guest_id) as store:
        yield store


async def require_admin(
    user: CurrentUser = Depends(require_auth),
    services: Services = Depends(get_services),
) -> CurrentUser:
    """
    Enforce admin role.

    Raises:
        HTTPException(403): if the user is not an admin.
    """
    if not await services.roles.is_admin(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
