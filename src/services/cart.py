from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from db.models import CartItem

RECENTLY_VIEWED_LIMIT = 4


class Cart:
    """
    The client's shopping cart. One row per product id, quantity always > 0.
    """

    def __init__(self, items: Optional[Iterable[CartItem]] = None) -> None:
        self._items: List[CartItem] = []
        for item in items or ():
            self.add(item.product_id, item.quantity)

    @property
    def items(self) -> Tuple[CartItem, ...]:
        return tuple(self._items)

    @property
    def count(self) -> int:
        """Total number of units, as shown on the cart badge."""
        return sum(item.quantity for item in self._items)

    def is_empty(self) -> bool:
        return not self._items

    def quantity_of(self, product_id: str) -> int:
        for item in self._items:
            if item.product_id == product_id:
                return item.quantity
        return 0

    def add(self, product_id: str, quantity: int = 1) -> None:
        """Add units; an existing row for the product is incremented."""
        if quantity <= 0:
            raise ValueError("Quantity must be positive.")
        for i, item in enumerate(self._items):
            if item.product_id == product_id:
                self._items[i] = CartItem(product_id, item.quantity + quantity)
                return
        self._items.append(CartItem(product_id, quantity))

    def set_quantity(self, product_id: str, quantity: int) -> None:
        """Set a row's quantity; zero or less removes the row."""
        if quantity <= 0:
            self.remove(product_id)
            return
        for i, item in enumerate(self._items):
            if item.product_id == product_id:
                self._items[i] = CartItem(product_id, quantity)
                return
        self._items.append(CartItem(product_id, quantity))

    def remove(self, product_id: str) -> None:
        self._items = [i for i in self._items if i.product_id != product_id]

    def clear(self) -> None:
        self._items.clear()


class ToggleSet:
    """Ordered membership set, used for the wishlist and followed artisans."""

    def __init__(self, ids: Optional[Iterable[str]] = None) -> None:
        self._ids: List[str] = list(dict.fromkeys(ids or ()))

    def __contains__(self, id_: str) -> bool:
        return id_ in self._ids

    def __iter__(self):
        return iter(list(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    def toggle(self, id_: str) -> bool:
        """Flip membership of `id_`; returns True if it is now a member."""
        if id_ in self._ids:
            self._ids.remove(id_)
            return False
        self._ids.append(id_)
        return True


def push_recent(
    ids: Iterable[str], product_id: str, limit: int = RECENTLY_VIEWED_LIMIT
) -> List[str]:
    """Put `product_id` first, drop its older occurrence, keep at most `limit`."""
    return [product_id, *(i for i in ids if i != product_id)][:limit]
