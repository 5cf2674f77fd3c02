import logging
import uuid
from datetime import datetime, timezone

from sqlmodel import Session

from portal.core.errors import AuthorizationError, NotFoundError
from portal.models.product import Brand, Category, Product
from portal.models.profile import Profile
from portal.repositories.catalog_repo import CatalogRepository
from portal.schemas.catalog import ProductFilter, ProductSupplierUpdate

logger = logging.getLogger(__name__)


class CatalogService:
    """
    Read access to the catalog, plus the supplier's own price/stock edits.

    Product creation and category/brand management happen outside this
    service (admin tooling / Supabase dashboard).
    """

    def __init__(self, repo: CatalogRepository):
        self.repo = repo

    def list_products(
        self,
        session: Session,
        filters: ProductFilter,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Product]:
        return self.repo.list_products(session, filters, skip, limit)

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_product(session, product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def update_supplier_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: ProductSupplierUpdate,
        actor: Profile,
    ) -> Product:
        """
        Suppliers may only touch their own products; staff may touch any.
        Values pass through as given.
        """
        product = self.get_product(session, product_id)
        if actor.role == "supplier" and product.supplier_id != actor.id:
            raise AuthorizationError("Not your product", product_id=str(product_id))

        changes = payload.model_dump(exclude_unset=True)
        for key, value in changes.items():
            setattr(product, key, value)
        product.updated_at = datetime.now(timezone.utc)

        product = self.repo.update_product(session, product)
        logger.info("Product %s updated by %s: %s", product.id, actor.id, sorted(changes))
        return product

    def list_categories(self, session: Session) -> list[Category]:
        return self.repo.list_categories(session)

    def list_brands(self, session: Session) -> list[Brand]:
        return self.repo.list_brands(session)
