import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

ProductStatus = Literal["active", "inactive", "out_of_stock"]


class ProductFilter(SQLModel):
    """
    Catalog query predicate. All fields are optional and combined with AND;
    `search` matches name or description, case-insensitive.
    """

    category_id: uuid.UUID | None = None
    supplier_id: uuid.UUID | None = None
    search: str | None = None
    status: ProductStatus | None = None


class ProductRead(SQLModel):
    id: uuid.UUID
    name: str
    description: str | None
    category_id: uuid.UUID | None
    brand_id: uuid.UUID | None
    supplier_id: uuid.UUID | None
    shelf_price: float
    sale_price: float
    stock_quantity: int
    min_order_quantity: int
    max_order_quantity: int
    status: ProductStatus
    created_at: datetime


class ProductSupplierUpdate(SQLModel):
    """
    Supplier-editable product fields (price / stock pass-through).
    Not re-validated against shelf_price by the core.
    """

    model_config = ConfigDict(extra="forbid")

    shelf_price: float | None = Field(default=None, ge=0)
    sale_price: float | None = Field(default=None, ge=0)
    stock_quantity: int | None = Field(default=None, ge=0)
    status: ProductStatus | None = None


class CategoryRead(SQLModel):
    id: uuid.UUID
    name: str
    icon: str
    description: str | None
    parent_id: uuid.UUID | None
    sort_order: int


class BrandRead(SQLModel):
    id: uuid.UUID
    name: str
    description: str | None
    website: str | None
