# storefront/services/selection.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from storefront.models.cart import CartLineItem

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class Selection:
    selected_items: list[CartLineItem]
    total: Decimal


def is_selected(item: CartLineItem) -> bool:
    # Only an explicit False excludes an item; unknown counts as selected.
    return getattr(item, "selected", None) is not False


def project(items: Iterable[CartLineItem]) -> Selection:
    """
    Derive the checkout selection from a list of cart lines.

    Keeps cart order. `total` is the sum of price * quantity
    over the selected lines, rounded to cents.
    """
    selected = [it for it in items if is_selected(it)]
    total = sum((it.price * it.quantity for it in selected), Decimal("0"))
    return Selection(selected_items=selected, total=total.quantize(CENTS))
