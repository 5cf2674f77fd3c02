import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel

OrderStatus = Literal["pending", "confirmed", "preparing", "completed", "cancelled"]


class DeliveryInfo(SQLModel):
    """
    Checkout payload: delivery contact snapshot for the order.

    Any field left out is filled from the buyer's profile
    (address / phone / email).

    Backend derives:
      - customer_id from token
      - status = 'pending'
      - total_amount from cart lines
      - items from the buyer's cart
    """

    model_config = ConfigDict(extra="forbid")

    delivery_address: str | None = None
    delivery_phone: str | None = None
    delivery_email: EmailStr | None = None
    notes: str | None = None

    @field_validator("delivery_address", "delivery_phone", "delivery_email", "notes", mode="before")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    order_number: str
    customer_id: uuid.UUID
    status: OrderStatus
    total_amount: float
    notes: str | None
    delivery_address: str | None
    delivery_phone: str | None
    delivery_email: str | None
    created_at: datetime


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID
    supplier_id: uuid.UUID | None
    product_name: str | None
    quantity: int
    unit_price: float
    total_price: float


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items.
    """

    items: list[OrderItemRead]


class OrderStatusUpdate(SQLModel):
    """
    Payload to move an order along its lifecycle.

    expected_status lets a client assert which status it saw; if the order
    has moved on since, the change is rejected instead of overwriting.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
    expected_status: OrderStatus | None = None


class SupplierOrderItemView(SQLModel):
    product_id: uuid.UUID
    product_name: str | None
    quantity: int
    unit_price: float
    total_price: float


class SupplierOrderView(SQLModel):
    """
    One supplier's slice of a (possibly multi-supplier) order.

    supplier_subtotal covers only this supplier's items and is NOT the
    order's total_amount, which is exposed separately as
    order_total_amount for reference.
    """

    order_id: uuid.UUID
    order_number: str
    supplier_id: uuid.UUID
    customer_id: uuid.UUID
    status: OrderStatus
    delivery_address: str | None
    delivery_phone: str | None
    delivery_email: str | None
    created_at: datetime
    items: list[SupplierOrderItemView]
    supplier_subtotal: float
    order_total_amount: float
