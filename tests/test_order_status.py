"""Tests for the order status machine: legal edges, terminal states, who may move what."""

import pytest
from sqlalchemy import update

from portal.core.errors import AuthorizationError, InvalidTransitionError
from portal.models.order import Order
from portal.repositories.catalog_repo import CatalogRepository
from portal.repositories.order_repo import OrderRepository
from portal.repositories.profile_repo import ProfileRepository
from portal.schemas.order import DeliveryInfo
from portal.services import order_status
from portal.services.cart import Cart
from portal.services.order_service import OrderService


@pytest.fixture
def service():
    return OrderService(OrderRepository(), CatalogRepository(), ProfileRepository())


@pytest.fixture
def order(session, service, customer, product_a, product_b):
    cart = Cart()
    cart.add(product_a, 3)
    cart.add(product_b, 2)
    return service.commit_order(session, customer.id, cart.lines(), DeliveryInfo())


class TestTransitionRules:
    @pytest.mark.parametrize(
        "current, requested",
        [
            ("pending", "confirmed"),
            ("pending", "cancelled"),
            ("confirmed", "preparing"),
            ("confirmed", "cancelled"),
            ("preparing", "completed"),
            ("preparing", "cancelled"),
        ],
    )
    def test_legal_edges(self, current, requested):
        order_status.validate_transition(current, requested)

    def test_pending_cannot_skip_to_completed(self):
        with pytest.raises(InvalidTransitionError) as exc:
            order_status.validate_transition("pending", "completed")

        assert exc.value.current == "pending"
        assert exc.value.requested == "completed"

    @pytest.mark.parametrize("terminal", ["completed", "cancelled"])
    @pytest.mark.parametrize("requested", order_status.STATUSES)
    def test_terminal_states_have_no_exits(self, terminal, requested):
        assert order_status.is_terminal(terminal)
        with pytest.raises(InvalidTransitionError):
            order_status.validate_transition(terminal, requested)

    def test_no_backward_edges(self):
        with pytest.raises(InvalidTransitionError):
            order_status.validate_transition("preparing", "confirmed")

    def test_unknown_status_is_rejected(self):
        with pytest.raises(InvalidTransitionError):
            order_status.validate_transition("pending", "shipped")

    def test_scopes_partition_statuses(self):
        current = order_status.statuses_for_scope("current")
        past = order_status.statuses_for_scope("past")

        assert current == {"pending", "confirmed", "preparing"}
        assert past == {"completed", "cancelled"}
        assert current | past == order_status.statuses_for_scope("all")

    @pytest.mark.parametrize(
        "status, scope",
        [
            ("pending", "current"),
            ("confirmed", "current"),
            ("preparing", "current"),
            ("completed", "past"),
            ("cancelled", "past"),
        ],
    )
    def test_scope_is_derived_from_status(self, status, scope):
        assert order_status.scope_of(status) == scope
        assert order_status.is_current(status) == (scope == "current")
        assert order_status.is_past(status) == (scope == "past")


class TestAuthorization:
    def test_staff_may_take_any_legal_edge(self):
        order_status.authorize_transition("manager", "preparing", "cancelled")

    def test_supplier_needs_items_in_order(self):
        with pytest.raises(AuthorizationError):
            order_status.authorize_transition("supplier", "pending", "confirmed", has_items=False)

    def test_supplier_cannot_cancel(self):
        with pytest.raises(AuthorizationError):
            order_status.authorize_transition("supplier", "pending", "cancelled", has_items=True)

    def test_customer_may_only_cancel_own_pending_order(self):
        order_status.authorize_transition("customer", "pending", "cancelled", is_owner=True)

        with pytest.raises(AuthorizationError):
            order_status.authorize_transition("customer", "confirmed", "cancelled", is_owner=True)
        with pytest.raises(AuthorizationError):
            order_status.authorize_transition("customer", "pending", "cancelled", is_owner=False)


class TestTransitionOrder:
    def test_full_forward_lifecycle(self, session, service, order, admin):
        for status in ("confirmed", "preparing", "completed"):
            updated = service.transition_order(session, order.id, status, admin)
            assert updated.status == status

        with pytest.raises(InvalidTransitionError):
            service.transition_order(session, order.id, "cancelled", admin)

    def test_pending_to_completed_leaves_status_unchanged(self, session, service, order, admin):
        with pytest.raises(InvalidTransitionError):
            service.transition_order(session, order.id, "completed", admin)

        assert service.get_order(session, order.id).status == "pending"

    def test_supplier_confirms_order_with_their_items(self, session, service, order, supplier_1):
        updated = service.transition_order(session, order.id, "confirmed", supplier_1)
        assert updated.status == "confirmed"

    def test_unrelated_supplier_is_forbidden(self, session, service, order, supplier_3):
        with pytest.raises(AuthorizationError):
            service.transition_order(session, order.id, "confirmed", supplier_3)

    def test_customer_cancels_own_pending_order(self, session, service, order, customer):
        updated = service.transition_order(session, order.id, "cancelled", customer)
        assert updated.status == "cancelled"

    def test_stale_expected_status_is_rejected(self, session, service, order, admin):
        service.transition_order(session, order.id, "confirmed", admin)

        with pytest.raises(InvalidTransitionError):
            service.transition_order(
                session, order.id, "cancelled", admin, expected_status="pending"
            )

        assert service.get_order(session, order.id).status == "confirmed"

    def test_concurrent_change_loses_compare_and_set(
        self, session, service, order, admin, monkeypatch
    ):
        original = service.order_repo.compare_and_set_status

        def racing(session, order_id, expected, new):
            # Another request cancels the order between our read and write
            session.execute(
                update(Order).where(Order.id == order_id).values(status="cancelled")
            )
            session.commit()
            return original(session, order_id, expected, new)

        monkeypatch.setattr(service.order_repo, "compare_and_set_status", racing)

        with pytest.raises(InvalidTransitionError) as exc:
            service.transition_order(session, order.id, "confirmed", admin)

        assert exc.value.current == "cancelled"
        assert service.get_order(session, order.id).status == "cancelled"
