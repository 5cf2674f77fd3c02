"""Tests for the in-memory cart: merging, caps, quantity edits, totals."""

import uuid
from dataclasses import dataclass

import pytest

from portal.core.errors import ValidationError
from portal.services.cart import Cart, CartSessions


@dataclass
class StubProduct:
    name: str
    sale_price: float
    max_order_quantity: int = 100
    status: str = "active"
    supplier_id: uuid.UUID | None = None
    id: uuid.UUID = None

    def __post_init__(self):
        if self.id is None:
            self.id = uuid.uuid4()


class TestAdd:
    def test_new_product_creates_line_with_price_snapshot(self):
        cart = Cart()
        product = StubProduct("Çay 1kg", 10.0)

        line = cart.add(product, 3)

        assert line.quantity == 3
        assert line.unit_price == 10.0
        assert line.line_total == 30.0
        assert cart.total() == 30.0

    def test_repeated_adds_merge_into_one_line(self):
        cart = Cart()
        product = StubProduct("Şeker", 4.5)

        cart.add(product, 2)
        cart.add(product, 3)

        lines = cart.lines()
        assert len(lines) == 1
        assert lines[0].quantity == 5

    def test_add_clamps_silently_at_max_order_quantity(self):
        cart = Cart()
        product = StubProduct("Un", 20.0, max_order_quantity=5)

        cart.add(product, 4)
        line = cart.add(product, 4)

        assert line.quantity == 5
        assert cart.total_quantity() == 5

    def test_add_beyond_cap_on_first_add_is_clamped(self):
        cart = Cart()
        product = StubProduct("Yağ", 50.0, max_order_quantity=2)

        line = cart.add(product, 10)

        assert line.quantity == 2

    def test_price_snapshot_survives_catalog_price_change(self):
        cart = Cart()
        product = StubProduct("Pirinç", 12.0)
        cart.add(product)

        product.sale_price = 15.0
        cart.add(product)

        assert cart.lines()[0].unit_price == 12.0
        assert cart.total() == 24.0

    def test_inactive_product_is_rejected(self):
        cart = Cart()
        product = StubProduct("Eski ürün", 1.0, status="inactive")

        with pytest.raises(ValidationError):
            cart.add(product)

        assert cart.is_empty()

    def test_non_positive_quantity_is_rejected(self):
        cart = Cart()

        with pytest.raises(ValidationError):
            cart.add(StubProduct("X", 1.0), 0)


class TestSetQuantity:
    def test_zero_removes_line_and_total_excludes_it(self):
        cart = Cart()
        a = StubProduct("A", 10.0)
        b = StubProduct("B", 5.0)
        cart.add(a, 3)
        cart.add(b, 2)

        cart.set_quantity(a.id, 0)

        assert [line.product_id for line in cart.lines()] == [b.id]
        assert cart.total() == 10.0

    def test_zero_on_missing_line_is_a_noop(self):
        cart = Cart()
        cart.set_quantity(uuid.uuid4(), 0)
        assert cart.is_empty()

    def test_quantity_is_clamped_to_cap(self):
        cart = Cart()
        product = StubProduct("A", 1.0, max_order_quantity=10)
        cart.add(product)

        cart.set_quantity(product.id, 50)

        assert cart.lines()[0].quantity == 10

    def test_negative_quantity_is_rejected(self):
        cart = Cart()
        product = StubProduct("A", 1.0)
        cart.add(product)

        with pytest.raises(ValidationError):
            cart.set_quantity(product.id, -1)

    def test_unknown_product_is_rejected(self):
        with pytest.raises(ValidationError):
            Cart().set_quantity(uuid.uuid4(), 2)


class TestLines:
    def test_lines_are_copies(self):
        cart = Cart()
        product = StubProduct("A", 1.0)
        cart.add(product, 2)

        cart.lines()[0].quantity = 99

        assert cart.lines()[0].quantity == 2

    def test_clear_empties_cart(self):
        cart = Cart()
        cart.add(StubProduct("A", 1.0))
        cart.clear()

        assert cart.is_empty()
        assert cart.total() == 0

    def test_total_is_rounded_to_cents(self):
        cart = Cart()
        cart.add(StubProduct("A", 0.1), 3)

        assert cart.total() == 0.3


class TestCartSessions:
    def test_each_buyer_gets_own_cart(self):
        sessions = CartSessions()
        buyer_1, buyer_2 = uuid.uuid4(), uuid.uuid4()

        sessions.for_buyer(buyer_1).add(StubProduct("A", 1.0))

        assert sessions.for_buyer(buyer_2).is_empty()
        assert sessions.for_buyer(buyer_1) is sessions.for_buyer(buyer_1)

    def test_discard_drops_cart(self):
        sessions = CartSessions()
        buyer = uuid.uuid4()
        sessions.for_buyer(buyer).add(StubProduct("A", 1.0))

        sessions.discard(buyer)

        assert buyer not in sessions
        assert sessions.for_buyer(buyer).is_empty()
        assert buyer in sessions
