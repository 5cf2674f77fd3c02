import uuid
from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import update
from sqlmodel import Session, select

from portal.models.order import Order, OrderItem


class OrderRepository:
    """
    Data access layer for orders and order_items.

    NOTE:
      - No commits here; order creation is a multi-step transaction.
        The service is responsible for calling session.commit() or
        session.rollback().
    """

    # ---- Orders ----

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def list_for_customer(
        self,
        session: Session,
        customer_id: uuid.UUID,
        statuses: Iterable[str],
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.customer_id == customer_id, Order.status.in_(list(statuses)))
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def list_all(
        self,
        session: Session,
        statuses: Iterable[str],
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.status.in_(list(statuses)))
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def list_for_supplier(
        self,
        session: Session,
        supplier_id: uuid.UUID,
        statuses: Iterable[str],
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        """
        Orders containing at least one item supplied by `supplier_id`.
        """
        having_items = select(OrderItem.order_id).where(OrderItem.supplier_id == supplier_id)
        stmt = (
            select(Order)
            .where(Order.id.in_(having_items), Order.status.in_(list(statuses)))
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        return order

    def compare_and_set_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        expected: str,
        new: str,
    ) -> bool:
        """
        Single-row conditional update:

            UPDATE orders SET status = :new
            WHERE id = :id AND status = :expected

        Returns False when no row matched, i.e. the order is gone or its
        status already moved away from `expected`.
        """
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status == expected)
            .values(status=new, updated_at=datetime.now(timezone.utc))
        )
        result = session.execute(stmt)
        return result.rowcount == 1

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.created_at)
        return list(session.exec(stmt).all())

    def list_items_for_orders(
        self,
        session: Session,
        order_ids: Iterable[uuid.UUID],
    ) -> dict[uuid.UUID, list[OrderItem]]:
        ids = list(order_ids)
        grouped: dict[uuid.UUID, list[OrderItem]] = {oid: [] for oid in ids}
        if not ids:
            return grouped
        stmt = select(OrderItem).where(OrderItem.order_id.in_(ids)).order_by(OrderItem.created_at)
        for item in session.exec(stmt).all():
            grouped[item.order_id].append(item)
        return grouped

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        return items
