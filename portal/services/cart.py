"""
In-memory cart for a single buyer session.

Carts are never persisted: they live in the process and disappear on
restart or after checkout. Each buyer owns exactly one Cart; the
CartSessions registry only hands a buyer their own instance.
"""

import threading
import uuid
from dataclasses import dataclass, replace
from typing import Protocol

from portal.core.errors import ValidationError


class CartProduct(Protocol):
    """The catalog fields the cart snapshots when a product is added."""

    id: uuid.UUID
    name: str
    supplier_id: uuid.UUID | None
    sale_price: float
    max_order_quantity: int
    status: str


@dataclass
class CartLine:
    product_id: uuid.UUID
    product_name: str
    supplier_id: uuid.UUID | None
    unit_price: float  # sale_price snapshot taken when the line was created
    quantity: int
    max_quantity: int

    @property
    def line_total(self) -> float:
        return round(self.unit_price * self.quantity, 2)


class Cart:
    """
    Line-item accumulator feeding order creation.

    Quantities always stay within [1, max_quantity]; setting a line to 0
    removes it. Adding past the cap is a silent no-op (the line stays at
    the cap).
    """

    def __init__(self) -> None:
        self._lines: dict[uuid.UUID, CartLine] = {}

    def add(self, product: CartProduct, qty: int = 1) -> CartLine:
        if qty < 1:
            raise ValidationError("Quantity must be at least 1")
        if product.status == "inactive":
            raise ValidationError("Product is inactive", product_id=str(product.id))

        cap = max(1, product.max_order_quantity)
        existing = self._lines.get(product.id)

        if existing:
            existing.max_quantity = cap
            existing.quantity = min(existing.quantity + qty, cap)
            return replace(existing)

        line = CartLine(
            product_id=product.id,
            product_name=product.name,
            supplier_id=product.supplier_id,
            unit_price=product.sale_price,
            quantity=min(qty, cap),
            max_quantity=cap,
        )
        self._lines[product.id] = line
        return replace(line)

    def set_quantity(self, product_id: uuid.UUID, n: int) -> None:
        if n < 0:
            raise ValidationError("Quantity cannot be negative")

        if n == 0:
            self._lines.pop(product_id, None)
            return

        line = self._lines.get(product_id)
        if line is None:
            raise ValidationError("Item not in cart", product_id=str(product_id))
        line.quantity = min(n, line.max_quantity)

    def remove(self, product_id: uuid.UUID) -> None:
        self._lines.pop(product_id, None)

    def clear(self) -> None:
        self._lines.clear()

    def lines(self) -> list[CartLine]:
        """Copies of the current lines, in insertion order."""
        return [replace(line) for line in self._lines.values()]

    def is_empty(self) -> bool:
        return not self._lines

    def total(self) -> float:
        return round(sum(line.unit_price * line.quantity for line in self._lines.values()), 2)

    def total_quantity(self) -> int:
        return sum(line.quantity for line in self._lines.values())


class CartSessions:
    """
    Per-process registry: buyer id -> that buyer's Cart.

    Lost on restart by design.
    """

    def __init__(self) -> None:
        self._carts: dict[uuid.UUID, Cart] = {}
        self._lock = threading.Lock()

    def for_buyer(self, buyer_id: uuid.UUID) -> Cart:
        with self._lock:
            cart = self._carts.get(buyer_id)
            if cart is None:
                cart = Cart()
                self._carts[buyer_id] = cart
            return cart

    def discard(self, buyer_id: uuid.UUID) -> None:
        with self._lock:
            self._carts.pop(buyer_id, None)

    def __contains__(self, buyer_id: uuid.UUID) -> bool:
        with self._lock:
            return buyer_id in self._carts
