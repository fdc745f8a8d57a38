"""
Session-scoped shopping cart.

The cart lives entirely in the shopper's session under one key and is never
written to the orders tables. Prices are snapshots taken when the product was
added; the checkout flow re-prices everything server-side before charging.
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings

logger = logging.getLogger(__name__)


@dataclass
class CartItem:
    product_id: str
    name: str
    price: Decimal
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "name": self.name,
            "price": str(self.price),
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "CartItem":
        return cls(
            product_id=str(data["productId"]),
            name=data.get("name", ""),
            price=Decimal(str(data["price"])),
            quantity=int(data["quantity"]),
        )


def _read(product, field):
    if isinstance(product, Mapping):
        return product[field]
    return getattr(product, field)


class Cart:
    """
    Cart bound to one storage mapping (normally ``request.session``).

    Items are unique by product id. Every mutation writes the whole cart back
    to storage; an emptied cart removes the key instead of storing ``[]``.
    """

    def __init__(self, storage, key=None):
        self.storage = storage
        self.key = key or settings.CART_SESSION_KEY
        self._items = self._load()

    @classmethod
    def for_request(cls, request):
        return cls(request.session)

    def _load(self):
        items = {}
        for entry in self.storage.get(self.key) or []:
            try:
                item = CartItem.from_dict(entry)
            except (KeyError, TypeError, ValueError, ArithmeticError):
                logger.warning(f"Dropping unreadable cart entry: {entry!r}")
                continue
            items[item.product_id] = item
        return items

    def _persist(self):
        if self._items:
            self.storage[self.key] = [item.to_dict() for item in self._items.values()]
        elif self.key in self.storage:
            del self.storage[self.key]

    def add_item(self, product):
        product_id = str(_read(product, "id"))
        existing = self._items.get(product_id)
        if existing:
            existing.quantity += 1
        else:
            self._items[product_id] = CartItem(
                product_id=product_id,
                name=_read(product, "name"),
                price=Decimal(str(_read(product, "price"))),
                quantity=1,
            )
        self._persist()

    def remove_item(self, product_id):
        if self._items.pop(str(product_id), None) is not None:
            self._persist()

    def set_quantity(self, product_id, quantity: int):
        if quantity < 1:
            self.remove_item(product_id)
            return
        item = self._items.get(str(product_id))
        if item:
            item.quantity = int(quantity)
            self._persist()

    def total(self) -> Decimal:
        return sum((item.subtotal for item in self._items.values()), Decimal("0.00"))

    def clear(self):
        self._items = {}
        self._persist()

    def items(self):
        return list(self._items.values())

    def as_lines(self):
        """
        The {product_id, quantity} pairs the validation service prices.
        """
        return [{"product_id": i.product_id, "quantity": i.quantity} for i in self._items.values()]

    def __iter__(self):
        return iter(self.items())

    def __len__(self):
        return len(self._items)

    def __contains__(self, product_id):
        return str(product_id) in self._items
