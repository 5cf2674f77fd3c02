# portal/routers/catalog.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from portal.core.auth import require_roles
from portal.database import get_session
from portal.models.profile import Profile
from portal.repositories.catalog_repo import CatalogRepository
from portal.schemas.catalog import (
    BrandRead,
    CategoryRead,
    ProductFilter,
    ProductRead,
    ProductStatus,
    ProductSupplierUpdate,
)
from portal.services.catalog_service import CatalogService

router = APIRouter(prefix="/catalog", tags=["Catalog"])

repo = CatalogRepository()
service = CatalogService(repo)


# -------- Public endpoints --------


@router.get("/products", response_model=list[ProductRead])
def list_products(
    session: Session = Depends(get_session),
    category_id: uuid.UUID | None = None,
    supplier_id: uuid.UUID | None = None,
    search: str | None = None,
    status: ProductStatus | None = None,
    skip: int = 0,
    limit: int = 50,
):
    """
    Browse the catalog. Guests allowed.

    Filters combine with AND; `search` matches name or description.
    """
    filters = ProductFilter(
        category_id=category_id,
        supplier_id=supplier_id,
        search=search,
        status=status,
    )
    return service.list_products(session, filters, skip, limit)


@router.get("/products/{product_id}", response_model=ProductRead)
def get_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return service.get_product(session, product_id)


@router.get("/categories", response_model=list[CategoryRead])
def list_categories(session: Session = Depends(get_session)):
    return service.list_categories(session)


@router.get("/brands", response_model=list[BrandRead])
def list_brands(session: Session = Depends(get_session)):
    return service.list_brands(session)


# -------- Supplier endpoints --------


@router.patch("/products/{product_id}", response_model=ProductRead)
def update_product(
    product_id: uuid.UUID,
    payload: ProductSupplierUpdate,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(require_roles("supplier", "admin", "manager")),
):
    """
    Price / stock / status update for the supplier's own product.
    Staff may update any product.
    """
    return service.update_supplier_product(session, product_id, payload, current_user)
