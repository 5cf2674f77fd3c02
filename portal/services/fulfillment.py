"""
Per-supplier read views of a (possibly multi-supplier) order.
"""

import uuid
from collections.abc import Iterable

from portal.models.order import Order, OrderItem
from portal.schemas.order import SupplierOrderItemView, SupplierOrderView


def project_for_supplier(
    order: Order,
    items: Iterable[OrderItem],
    supplier_id: uuid.UUID,
) -> SupplierOrderView | None:
    """
    Build `supplier_id`'s slice of an order.

    Returns None (not an empty view) when none of the order's items belong
    to the supplier. supplier_subtotal sums only the supplier's items.

    The view is built from copied values, so mutating it never touches the
    ORM rows it was derived from.
    """
    own_items = [it for it in items if it.supplier_id == supplier_id]
    if not own_items:
        return None

    item_views = [
        SupplierOrderItemView(
            product_id=it.product_id,
            product_name=it.product_name,
            quantity=it.quantity,
            unit_price=it.unit_price,
            total_price=it.total_price,
        )
        for it in own_items
    ]
    subtotal = round(sum(it.total_price for it in own_items), 2)

    return SupplierOrderView(
        order_id=order.id,
        order_number=order.order_number,
        supplier_id=supplier_id,
        customer_id=order.customer_id,
        status=order.status,
        delivery_address=order.delivery_address,
        delivery_phone=order.delivery_phone,
        delivery_email=order.delivery_email,
        created_at=order.created_at,
        items=item_views,
        supplier_subtotal=subtotal,
        order_total_amount=order.total_amount,
    )
