import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Category(SQLModel, table=True):
    """
    Catalog category (optionally nested through parent_id).
    """

    __tablename__ = "categories"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(max_length=100, index=True)
    icon: str = Field(default="📦")
    description: str | None = None

    parent_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="categories.id",
    )

    sort_order: int = Field(default=0, ge=0)
    is_active: bool = Field(default=True, index=True)


class Brand(SQLModel, table=True):
    __tablename__ = "brands"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(max_length=100, index=True)
    description: str | None = None
    website: str | None = None
    is_active: bool = Field(default=True, index=True)


class Product(SQLModel, table=True):
    """
    Catalog product owned by one supplier.

    Prices:
      - shelf_price: list price
      - sale_price: price buyers pay; snapshotted into the cart on add
      - shelf_price >= sale_price is expected but not enforced here

    Status:
      - "active" | "inactive" | "out_of_stock"
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=200,
        index=True,
        description="Display name of the product",
    )

    description: str | None = Field(
        default=None,
        description="Optional long description",
    )

    category_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="categories.id",
        index=True,
    )

    brand_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="brands.id",
        index=True,
    )

    supplier_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="profiles.id",
        index=True,
        description="Owning seller (profiles.id)",
    )

    shelf_price: float = Field(ge=0, description="List price")
    sale_price: float = Field(ge=0, description="Selling price")

    stock_quantity: int = Field(
        default=0,
        ge=0,
        description="Units currently in stock",
    )

    min_order_quantity: int = Field(default=1, ge=1)
    max_order_quantity: int = Field(default=100, ge=1)

    status: str = Field(
        default="active",
        index=True,
        description="active | inactive | out_of_stock",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
