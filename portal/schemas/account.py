import uuid
from datetime import datetime
from typing import Literal

from pydantic import EmailStr, ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

# App-level roles. Guests are anonymous and have no profile row.
Role = Literal["admin", "manager", "supplier", "customer"]


def _strip_or_none(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    return v or None


class ProfileFields(SQLModel):
    """
    Mutable profile fields supplied at signup.

    `company` doubles as company_name for the supplier/customer record.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=200)
    company: str | None = Field(default=None, max_length=200)
    phone: str | None = None
    address: str | None = None
    city: str | None = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("company", "phone", "address", "city")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _strip_or_none(v)


class SupplierTerms(SQLModel):
    """
    Business terms for a supplier record. Omitted fields take the
    defaults a new supplier starts with.
    """

    model_config = ConfigDict(extra="forbid")

    tax_number: str | None = None
    commission_rate: float = Field(default=0.0, ge=0)
    min_order_amount: float = Field(default=0.0, ge=0)
    delivery_days: int = Field(default=3, ge=0)

    @field_validator("tax_number")
    @classmethod
    def normalize_tax_number(cls, v: str | None) -> str | None:
        return _strip_or_none(v)


class CustomerTerms(SQLModel):
    """
    Business terms for a customer record.

    Delivery and billing addresses fall back to the profile address.
    """

    model_config = ConfigDict(extra="forbid")

    tax_number: str | None = None
    credit_limit: float = Field(default=0.0, ge=0)
    payment_terms: int = Field(default=30, ge=0)
    discount_rate: float = Field(default=0.0, ge=0)
    delivery_address: str | None = None
    billing_address: str | None = None

    @field_validator("tax_number", "delivery_address", "billing_address")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _strip_or_none(v)


RoleTerms = SupplierTerms | CustomerTerms


class RoleTermsPayload(SQLModel):
    """
    Optional role terms on an account payload; at most one kind per request.
    """

    supplier_terms: SupplierTerms | None = None
    customer_terms: CustomerTerms | None = None

    @model_validator(mode="after")
    def single_terms_kind(self):
        if self.supplier_terms is not None and self.customer_terms is not None:
            raise ValueError("supplier_terms and customer_terms are mutually exclusive")
        return self

    @property
    def terms(self) -> RoleTerms | None:
        if self.supplier_terms is not None:
            return self.supplier_terms
        return self.customer_terms


class SignupRequest(RoleTermsPayload):
    """
    Payload for account creation (identity + profile + role record).
    """

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str
    role: Role = "customer"
    profile: ProfileFields


class ReconcileRequest(RoleTermsPayload):
    """
    Admin payload to re-run reconciliation for an existing identity.
    """

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    role: Role
    profile: ProfileFields


class ProfileRead(SQLModel):
    """Response schema returned to clients."""

    id: uuid.UUID
    email: str
    name: str
    role: Role
    company: str | None
    phone: str | None
    address: str | None
    city: str | None
    created_at: datetime


class IdentityRead(SQLModel):
    id: uuid.UUID
    email: str


class LoginRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str


class TokenRead(SQLModel):
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    token_type: str = "bearer"
    profile: ProfileRead | None = None
