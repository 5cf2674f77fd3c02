import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from portal.core.errors import (
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from portal.models.order import Order, OrderItem
from portal.models.profile import Profile
from portal.repositories.catalog_repo import CatalogRepository
from portal.repositories.order_repo import OrderRepository
from portal.repositories.profile_repo import ProfileRepository
from portal.schemas.order import (
    DeliveryInfo,
    OrderItemRead,
    OrderWithItemsRead,
    SupplierOrderView,
)
from portal.services import order_status
from portal.services.cart import CartLine
from portal.services.fulfillment import project_for_supplier

logger = logging.getLogger(__name__)

# Snapshot vs. live price differences below this are rounding noise
PRICE_DRIFT_TOLERANCE = 0.005


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Commit a cart as order header + items in one transaction
      - Re-validate cart lines against the live catalog (existence,
        status, max quantity); prices stay as snapshotted in the cart
      - Compute line totals and total_amount
      - Move orders through the status machine with a conditional update
      - Build per-supplier projections
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        catalog_repo: CatalogRepository,
        profile_repo: ProfileRepository,
        order_number_prefix: str = "ORD",
    ):
        self.order_repo = order_repo
        self.catalog_repo = catalog_repo
        self.profile_repo = profile_repo
        self.order_number_prefix = order_number_prefix

    # -------- Commit --------

    def commit_order(
        self,
        session: Session,
        buyer_id: uuid.UUID,
        lines: list[CartLine],
        delivery: DeliveryInfo,
    ) -> OrderWithItemsRead:
        """
        Convert cart lines into an Order.

        Steps:
          1. Reject empty carts and malformed lines.
          2. Re-validate each line vs. the live product (exists, not
             inactive, quantity <= max_order_quantity).
          3. Compute total_price per line and total_amount.
          4. Insert the Order header, then all OrderItems, then commit.
             Any store failure rolls the whole unit back.

        The caller clears the cart after success.
        """
        # 1) Shape checks
        if not lines:
            raise ValidationError("Cart is empty", key="empty_cart")

        for line in lines:
            if line.quantity < 1 or line.unit_price < 0:
                raise ValidationError(
                    "Invalid cart line",
                    product_id=str(line.product_id),
                )

        buyer = self.profile_repo.get_profile(session, buyer_id)
        if buyer is None:
            raise NotFoundError("Buyer profile not found")

        # 2) Re-validate against the catalog
        products = self.catalog_repo.get_products(session, (ln.product_id for ln in lines))
        errors: list[dict[str, str]] = []

        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                errors.append({"product_id": str(line.product_id), "reason": "Product not found"})
                continue
            if product.status == "inactive":
                errors.append({"product_id": str(line.product_id), "reason": "Product is inactive"})
                continue
            if line.quantity > product.max_order_quantity:
                errors.append(
                    {
                        "product_id": str(line.product_id),
                        "reason": f"Quantity {line.quantity} exceeds maximum {product.max_order_quantity}",
                    }
                )
                continue
            if abs(product.sale_price - line.unit_price) > PRICE_DRIFT_TOLERANCE:
                logger.warning(
                    "Price drift for product %s: cart %.2f, catalog %.2f (keeping cart price)",
                    product.id,
                    line.unit_price,
                    product.sale_price,
                )

        if errors:
            raise ValidationError("Cart validation failed", items=errors)

        # 3) Totals
        line_totals = [round(line.unit_price * line.quantity, 2) for line in lines]
        total_amount = round(sum(line_totals), 2)

        # 4) Persist header + items as one unit
        order = Order(
            order_number=self._generate_order_number(),
            customer_id=buyer_id,
            status=order_status.PENDING,
            total_amount=total_amount,
            notes=delivery.notes,
            delivery_address=delivery.delivery_address or buyer.address,
            delivery_phone=delivery.delivery_phone or buyer.phone,
            delivery_email=delivery.delivery_email or buyer.email,
        )

        try:
            order = self.order_repo.create_order(session, order)
            order_items = [
                OrderItem(
                    order_id=order.id,
                    product_id=line.product_id,
                    supplier_id=products[line.product_id].supplier_id,
                    product_name=line.product_name or products[line.product_id].name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=line_total,
                )
                for line, line_total in zip(lines, line_totals)
            ]
            self.order_repo.create_items(session, order_items)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Order commit failed for buyer %s: %s", buyer_id, exc)
            raise PersistenceError("Order could not be saved") from exc

        session.refresh(order)
        logger.info(
            "Order %s committed: buyer=%s items=%d total=%.2f",
            order.order_number,
            buyer_id,
            len(order_items),
            order.total_amount,
        )
        return self._build_order_with_items_dto(order, order_items)

    # -------- Reads --------

    def get_order(self, session: Session, order_id: uuid.UUID) -> OrderWithItemsRead:
        """
        Get any order with items (staff).
        """
        order = self._get_order_or_404(session, order_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    def get_customer_order(
        self,
        session: Session,
        customer_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        Get a single order for the buyer, including items.

        - NotFoundError if the order does not exist or is someone else's.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.customer_id != customer_id:
            raise NotFoundError("Order not found")
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    def list_for_customer(
        self,
        session: Session,
        customer_id: uuid.UUID,
        scope: order_status.OrderScope = "all",
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        statuses = order_status.statuses_for_scope(scope)
        return self.order_repo.list_for_customer(session, customer_id, statuses, skip, limit)

    def list_all(
        self,
        session: Session,
        scope: order_status.OrderScope = "all",
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        statuses = order_status.statuses_for_scope(scope)
        return self.order_repo.list_all(session, statuses, skip, limit)

    # -------- Supplier projections --------

    def project_for_supplier(
        self,
        session: Session,
        order_id: uuid.UUID,
        supplier_id: uuid.UUID,
    ) -> SupplierOrderView | None:
        order = self._get_order_or_404(session, order_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        return project_for_supplier(order, items, supplier_id)

    def list_for_supplier(
        self,
        session: Session,
        supplier_id: uuid.UUID,
        scope: order_status.OrderScope = "all",
        skip: int = 0,
        limit: int = 50,
    ) -> list[SupplierOrderView]:
        """
        Supplier's slices of every order that contains their items,
        newest first.
        """
        statuses = order_status.statuses_for_scope(scope)
        orders = self.order_repo.list_for_supplier(session, supplier_id, statuses, skip, limit)
        items_by_order = self.order_repo.list_items_for_orders(session, (o.id for o in orders))

        views: list[SupplierOrderView] = []
        for order in orders:
            view = project_for_supplier(order, items_by_order.get(order.id, []), supplier_id)
            if view is not None:
                views.append(view)
        return views

    # -------- Status machine --------

    def transition_order(
        self,
        session: Session,
        order_id: uuid.UUID,
        next_status: str,
        actor: Profile,
        expected_status: str | None = None,
    ) -> Order:
        """
        Move an order to `next_status`.

        The edge is checked against the status read here (or the caller's
        `expected_status`), then applied with a conditional update. If a
        concurrent transition won in between, no row matches and the loser
        gets InvalidTransitionError rather than overwriting.
        """
        order = self._get_order_or_404(session, order_id)
        current = order.status

        if expected_status is not None and expected_status != current:
            raise InvalidTransitionError(
                current,
                next_status,
                f"Order status is {current}, not {expected_status}",
            )

        order_status.validate_transition(current, next_status)

        has_items = False
        if actor.role == "supplier":
            items = self.order_repo.list_items_for_order(session, order.id)
            has_items = any(it.supplier_id == actor.id for it in items)

        order_status.authorize_transition(
            actor.role,
            current,
            next_status,
            is_owner=order.customer_id == actor.id,
            has_items=has_items,
        )

        try:
            swapped = self.order_repo.compare_and_set_status(session, order.id, current, next_status)
            if swapped:
                session.commit()
            else:
                session.rollback()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Status update failed for order %s: %s", order.id, exc)
            raise PersistenceError("Order status could not be saved") from exc

        session.refresh(order)

        if not swapped:
            raise InvalidTransitionError(
                order.status,
                next_status,
                f"Order status already changed from {current} to {order.status}",
            )

        logger.info(
            "Order %s: %s -> %s by %s (%s)",
            order.order_number,
            current,
            next_status,
            actor.id,
            actor.role,
        )
        return order

    # -------- Helpers --------

    def _get_order_or_404(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def _generate_order_number(self) -> str:
        """
        e.g. ORD-20260118-9F1C2A7B

        Uniqueness comes from the random suffix; the unique index on
        order_number turns a collision into a rejected write.
        """
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        return f"{self.order_number_prefix}-{today}-{uuid.uuid4().hex[:8].upper()}"

    def _build_order_with_items_dto(
        self,
        order: Order,
        items: list[OrderItem],
    ) -> OrderWithItemsRead:
        """
        Compose OrderWithItemsRead from ORM models.
        """
        item_dtos = [
            OrderItemRead(
                id=it.id,
                order_id=it.order_id,
                product_id=it.product_id,
                supplier_id=it.supplier_id,
                product_name=it.product_name,
                quantity=it.quantity,
                unit_price=it.unit_price,
                total_price=it.total_price,
            )
            for it in items
        ]

        return OrderWithItemsRead(
            id=order.id,
            order_number=order.order_number,
            customer_id=order.customer_id,
            status=order.status,
            total_amount=order.total_amount,
            notes=order.notes,
            delivery_address=order.delivery_address,
            delivery_phone=order.delivery_phone,
            delivery_email=order.delivery_email,
            created_at=order.created_at,
            items=item_dtos,
        )
