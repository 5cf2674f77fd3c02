import uuid

from sqlmodel import SQLModel, Field


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.
    """

    product_id: uuid.UUID
    quantity: int = Field(default=1, gt=0)


class CartItemUpdate(SQLModel):
    """
    Payload for setting the quantity of a cart line.
    0 removes the line.
    """

    quantity: int = Field(ge=0)


class CartLineRead(SQLModel):
    """
    Read model for a single cart line, including line_total.
    """

    product_id: uuid.UUID
    product_name: str
    supplier_id: uuid.UUID | None
    quantity: int
    max_quantity: int
    unit_price: float
    line_total: float


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    items: list[CartLineRead]
    total_quantity: int
    total_price: float
