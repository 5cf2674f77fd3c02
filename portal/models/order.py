import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Order header.

    Immutable once created except for `status` (and `updated_at`),
    which only the status machine changes.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_number: str = Field(
        unique=True,
        index=True,
        max_length=40,
        description="Human-readable order number, e.g. ORD-20260118-1A2B3C4D",
    )

    customer_id: uuid.UUID = Field(
        foreign_key="profiles.id",
        index=True,
    )

    # pending | confirmed | preparing | completed | cancelled
    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    # Sum of order_items.total_price at commit time
    total_amount: float = Field(
        ge=0,
        description="Final amount for this order",
    )

    notes: str | None = None

    # Delivery contact snapshot
    delivery_address: str | None = None
    delivery_phone: str | None = None
    delivery_email: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order.

    unit_price and supplier_id are snapshots taken at commit time and are
    never recomputed from the live product.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    supplier_id: uuid.UUID | None = Field(
        default=None,
        index=True,
        description="Owner of the product when the order was placed",
    )

    product_name: str | None = None

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    unit_price: float = Field(
        ge=0,
        description="Unit price at time of order",
    )

    total_price: float = Field(
        ge=0,
        description="quantity * unit_price",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
