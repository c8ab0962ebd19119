# storefront/routers/cart.py
from fastapi import APIRouter, Depends, HTTPException, status

from storefront.core.config import get_settings
from storefront.core.currency import format_amount, get_currency
from storefront.dependencies import Services, get_cart_store, get_services
from storefront.repositories.errors import RemoteStoreError
from storefront.schemas.cart import (
    CartItemCreate,
    CartItemUpdate,
    CartLineItemRead,
    CartView,
    SelectionUpdate,
)
from storefront.schemas.product import ProductRead
from storefront.services.cart_store import CartStore

router = APIRouter(prefix="/cart", tags=["Cart"])


def cart_view(store: CartStore) -> CartView:
    """Render the store, draining any toasts raised by this request."""
    selection = store.selection
    drain = getattr(store.notifier, "drain", None)
    return CartView(
        items=[
            CartLineItemRead(
                id=it.id,
                product_id=it.product_id,
                product_name=it.product_name,
                price=it.price,
                quantity=it.quantity,
                image=it.image,
                selected=it.selected,
                line_total=it.line_total,
            )
            for it in store.items
        ],
        selected_item_ids=[it.id for it in selection.selected_items],
        total_quantity=sum(it.quantity for it in store.items),
        selected_total=selection.total,
        selected_total_display=format_amount(
            selection.total, get_currency(get_settings().DEFAULT_CURRENCY)
        ),
        messages=drain() if drain else [],
    )


async def _load_product(services: Services, product_id: str) -> ProductRead:
    try:
        product = await services.products.get_by_id(product_id)
    except RemoteStoreError:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to load product details",
        )
    if product is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )
    return product


def _get_line(store: CartStore, item_id: str):
    item = store.get(item_id)
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found in cart",
        )
    return item


@router.get("", response_model=CartView)
async def get_my_cart(store: CartStore = Depends(get_cart_store)):
    """
    Get the caller's cart with the checkout selection and its total.
    """
    return cart_view(store)


@router.post("", response_model=CartView)
async def add_to_cart(
    payload: CartItemCreate,
    store: CartStore = Depends(get_cart_store),
    services: Services = Depends(get_services),
):
    """
    Add a product to the cart.

    The quantity is clamped so the line never exceeds current stock.
    Out-of-stock products are rejected with 400.
    """
    product = await _load_product(services, payload.product_id)
    existing = store.find_product(product.id)
    in_cart = existing.quantity if existing else 0
    quantity = min(payload.quantity, product.stock - in_cart)
    if quantity < 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Not enough stock available",
        )
    await store.add_to_cart(product.snapshot(), quantity)
    return cart_view(store)


@router.patch("/{item_id}", response_model=CartView)
async def update_cart_item(
    item_id: str,
    payload: CartItemUpdate,
    store: CartStore = Depends(get_cart_store),
    services: Services = Depends(get_services),
):
    """
    Update quantity of a cart line, clamped to current stock.
    Quantities below 1 are ignored.
    """
    item = _get_line(store, item_id)
    quantity = payload.quantity
    if quantity >= 1:
        product = await _load_product(services, item.product_id)
        quantity = min(quantity, max(product.stock, 1))
    await store.update_quantity(item_id, quantity)
    return cart_view(store)


@router.delete("/{item_id}", response_model=CartView)
async def remove_cart_item(item_id: str, store: CartStore = Depends(get_cart_store)):
    """
    Remove a line from the cart. Unknown ids are a no-op.
    """
    await store.remove_from_cart(item_id)
    return cart_view(store)


@router.delete("", response_model=CartView)
async def clear_cart(store: CartStore = Depends(get_cart_store)):
    """
    Clear the entire cart.
    """
    await store.clear_cart()
    return cart_view(store)


@router.put("/selection", response_model=CartView)
async def select_all(payload: SelectionUpdate, store: CartStore = Depends(get_cart_store)):
    store.select_all_items(payload.selected)
    return cart_view(store)


@router.put("/{item_id}/selection", response_model=CartView)
async def toggle_selection(
    item_id: str,
    payload: SelectionUpdate,
    store: CartStore = Depends(get_cart_store),
):
    _get_line(store, item_id)
    store.toggle_item_selection(item_id, payload.selected)
    return cart_view(store)
