"""Tests for committing a cart as an order (header + items, one transaction)."""

import uuid

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from portal.core.errors import NotFoundError, PersistenceError, ValidationError
from portal.models.order import Order, OrderItem
from portal.repositories.catalog_repo import CatalogRepository
from portal.repositories.order_repo import OrderRepository
from portal.repositories.profile_repo import ProfileRepository
from portal.schemas.order import DeliveryInfo
from portal.services.cart import Cart
from portal.services.order_service import OrderService


@pytest.fixture
def service():
    return OrderService(OrderRepository(), CatalogRepository(), ProfileRepository())


def _cart(*entries):
    cart = Cart()
    for product, qty in entries:
        cart.add(product, qty)
    return cart


class TestCommitOrder:
    def test_total_is_sum_of_line_totals(self, session, service, customer, product_a, product_b):
        cart = _cart((product_a, 3), (product_b, 2))

        order = service.commit_order(session, customer.id, cart.lines(), DeliveryInfo())

        assert order.total_amount == 40.0
        assert order.status == "pending"
        assert [it.total_price for it in order.items] == [30.0, 10.0]
        assert order.order_number.startswith("ORD-")

    def test_items_snapshot_supplier_and_price(self, session, service, customer, product_a, supplier_1):
        cart = _cart((product_a, 1))
        product_a.sale_price = 99.0
        session.add(product_a)
        session.commit()

        order = service.commit_order(session, customer.id, cart.lines(), DeliveryInfo())

        item = order.items[0]
        assert item.supplier_id == supplier_1.id
        assert item.unit_price == 10.0
        assert item.product_name == "Product A"

    def test_delivery_defaults_come_from_buyer_profile(self, session, service, customer, product_a):
        order = service.commit_order(session, customer.id, _cart((product_a, 1)).lines(), DeliveryInfo())

        assert order.delivery_address == "Atatürk Cad. 1"
        assert order.delivery_phone == "+90 555 000 0000"
        assert order.delivery_email == customer.email

    def test_explicit_delivery_info_wins(self, session, service, customer, product_a):
        delivery = DeliveryInfo(delivery_address="Depo 2", notes="Kapıya bırakın")

        order = service.commit_order(session, customer.id, _cart((product_a, 1)).lines(), delivery)

        assert order.delivery_address == "Depo 2"
        assert order.notes == "Kapıya bırakın"

    def test_blank_delivery_email_falls_back_to_profile(self, session, service, customer, product_a):
        delivery = DeliveryInfo(delivery_email="  ", delivery_phone="")

        order = service.commit_order(session, customer.id, _cart((product_a, 1)).lines(), delivery)

        assert delivery.delivery_email is None
        assert order.delivery_email == customer.email
        assert order.delivery_phone == "+90 555 000 0000"

    def test_empty_cart_is_rejected(self, session, service, customer):
        with pytest.raises(ValidationError) as exc:
            service.commit_order(session, customer.id, [], DeliveryInfo())

        assert exc.value.key == "empty_cart"
        assert session.exec(select(Order)).all() == []

    def test_unknown_buyer_is_rejected(self, session, service, product_a):
        with pytest.raises(NotFoundError):
            service.commit_order(session, uuid.uuid4(), _cart((product_a, 1)).lines(), DeliveryInfo())

    def test_line_over_current_max_is_rejected(self, session, service, customer, product_a):
        cart = _cart((product_a, 8))
        product_a.max_order_quantity = 5
        session.add(product_a)
        session.commit()

        with pytest.raises(ValidationError) as exc:
            service.commit_order(session, customer.id, cart.lines(), DeliveryInfo())

        assert exc.value.details["items"][0]["product_id"] == str(product_a.id)
        assert session.exec(select(Order)).all() == []

    def test_product_deactivated_after_add_is_rejected(self, session, service, customer, product_a):
        cart = _cart((product_a, 1))
        product_a.status = "inactive"
        session.add(product_a)
        session.commit()

        with pytest.raises(ValidationError):
            service.commit_order(session, customer.id, cart.lines(), DeliveryInfo())

    def test_failed_item_insert_leaves_no_order_header(
        self, session, service, customer, product_a, monkeypatch
    ):
        def boom(*args, **kwargs):
            raise SQLAlchemyError("insert failed")

        monkeypatch.setattr(service.order_repo, "create_items", boom)

        with pytest.raises(PersistenceError):
            service.commit_order(session, customer.id, _cart((product_a, 2)).lines(), DeliveryInfo())

        assert session.exec(select(Order)).all() == []
        assert session.exec(select(OrderItem)).all() == []

    def test_order_numbers_are_unique(self, session, service, customer, product_a):
        numbers = {
            service.commit_order(session, customer.id, _cart((product_a, 1)).lines(), DeliveryInfo()).order_number
            for _ in range(5)
        }
        assert len(numbers) == 5


class TestCustomerReads:
    def test_scope_filters_current_and_past(self, session, service, customer, product_a, admin):
        first = service.commit_order(session, customer.id, _cart((product_a, 1)).lines(), DeliveryInfo())
        second = service.commit_order(session, customer.id, _cart((product_a, 2)).lines(), DeliveryInfo())
        service.transition_order(session, first.id, "cancelled", admin)

        current = service.list_for_customer(session, customer.id, "current")
        past = service.list_for_customer(session, customer.id, "past")

        assert [o.id for o in current] == [second.id]
        assert [o.id for o in past] == [first.id]
        assert len(service.list_for_customer(session, customer.id, "all")) == 2

    def test_other_buyers_order_is_not_found(self, session, service, customer, make_profile, product_a):
        order = service.commit_order(session, customer.id, _cart((product_a, 1)).lines(), DeliveryInfo())
        other = make_profile("customer", company="Başka")

        with pytest.raises(NotFoundError):
            service.get_customer_order(session, other.id, order.id)
