import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(SQLModel, table=True):
    """
    Identity-linked account record.

    Identity:
      - id: MUST match Supabase auth.users.id (UUID from JWT "sub")

    Role:
      - "admin" | "manager" | "supplier" | "customer"
      - immutable after creation in normal flow

    The row may be created by the Supabase `on_auth_user_created` trigger
    or directly by the provisioning fallback; both paths derive id and role
    from the same auth identity.
    """

    __tablename__ = "profiles"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches Supabase auth.users.id",
    )

    email: str = Field(
        unique=True,
        index=True,
        description="Email from Supabase auth.users",
    )

    name: str = Field(
        max_length=200,
        description="Display name",
    )

    role: str = Field(
        default="customer",
        index=True,
        description="Application role: admin | manager | supplier | customer",
    )

    # Contact fields
    company: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None

    created_at: datetime = Field(
        default_factory=_utcnow,
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        description="Last update timestamp (UTC)",
    )


class Supplier(SQLModel, table=True):
    """
    Seller business record, 1:1 with a Profile whose role is "supplier".

    The primary key IS the profile id, so a profile can never own
    more than one supplier record.
    """

    __tablename__ = "suppliers"

    id: uuid.UUID = Field(
        foreign_key="profiles.id",
        primary_key=True,
        description="FK to profiles.id",
    )

    company_name: str = Field(max_length=200)
    tax_number: str | None = None
    bank_account: str | None = None

    commission_rate: float = Field(default=0.0, ge=0)
    min_order_amount: float = Field(default=0.0, ge=0)
    delivery_days: int = Field(default=3, ge=0)

    is_verified: bool = Field(default=False)
    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Customer(SQLModel, table=True):
    """
    Buyer business record, 1:1 with a Profile whose role is "customer".
    """

    __tablename__ = "customers"

    id: uuid.UUID = Field(
        foreign_key="profiles.id",
        primary_key=True,
        description="FK to profiles.id",
    )

    company_name: str = Field(max_length=200)
    tax_number: str | None = None

    credit_limit: float = Field(default=0.0, ge=0)
    # Payment terms in days
    payment_terms: int = Field(default=30, ge=0)
    discount_rate: float = Field(default=0.0, ge=0)

    delivery_address: str | None = None
    billing_address: str | None = None
    contact_person: str | None = None

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
