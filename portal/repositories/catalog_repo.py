import uuid
from collections.abc import Iterable

from sqlalchemy import or_
from sqlmodel import Session, select

from portal.models.product import Brand, Category, Product
from portal.schemas.catalog import ProductFilter


class CatalogRepository:
    """
    Data access layer for products, categories and brands.

    - Read-only from the ordering core's point of view.
    - The only write is the supplier price/stock pass-through.
    """

    # ----- Products -----

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_products(
        self,
        session: Session,
        product_ids: Iterable[uuid.UUID],
    ) -> dict[uuid.UUID, Product]:
        ids = list(set(product_ids))
        if not ids:
            return {}
        stmt = select(Product).where(Product.id.in_(ids))
        return {p.id: p for p in session.exec(stmt).all()}

    def list_products(
        self,
        session: Session,
        filters: ProductFilter | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Product]:
        stmt = select(Product)
        if filters is not None:
            if filters.category_id:
                stmt = stmt.where(Product.category_id == filters.category_id)
            if filters.supplier_id:
                stmt = stmt.where(Product.supplier_id == filters.supplier_id)
            if filters.search:
                pattern = f"%{filters.search.strip()}%"
                stmt = stmt.where(
                    or_(
                        Product.name.ilike(pattern),
                        Product.description.ilike(pattern),
                    )
                )
            if filters.status:
                stmt = stmt.where(Product.status == filters.status)
        stmt = stmt.order_by(Product.created_at.desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def update_product(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    # ----- Categories & brands -----

    def list_categories(self, session: Session, only_active: bool = True) -> list[Category]:
        stmt = select(Category)
        if only_active:
            stmt = stmt.where(Category.is_active == True)  # noqa: E712
        stmt = stmt.order_by(Category.sort_order)
        return list(session.exec(stmt).all())

    def list_brands(self, session: Session, only_active: bool = True) -> list[Brand]:
        stmt = select(Brand)
        if only_active:
            stmt = stmt.where(Brand.is_active == True)  # noqa: E712
        stmt = stmt.order_by(Brand.name)
        return list(session.exec(stmt).all())
