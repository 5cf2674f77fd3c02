# portal/routers/cart.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from portal.context import PortalContext, get_context
from portal.core.auth import require_customer
from portal.database import get_session
from portal.models.profile import Profile
from portal.repositories.catalog_repo import CatalogRepository
from portal.schemas.cart import CartItemCreate, CartItemUpdate, CartLineRead, CartSummary
from portal.services.cart import Cart
from portal.services.catalog_service import CatalogService

router = APIRouter(prefix="/cart", tags=["Cart"])

catalog = CatalogService(CatalogRepository())


def cart_summary(cart: Cart) -> CartSummary:
    """
    Build the cart response with line totals and cart total.
    """
    items = [
        CartLineRead(
            product_id=line.product_id,
            product_name=line.product_name,
            supplier_id=line.supplier_id,
            quantity=line.quantity,
            max_quantity=line.max_quantity,
            unit_price=line.unit_price,
            line_total=line.line_total,
        )
        for line in cart.lines()
    ]
    return CartSummary(
        items=items,
        total_quantity=cart.total_quantity(),
        total_price=cart.total(),
    )


@router.get("", response_model=CartSummary)
def get_my_cart(
    ctx: PortalContext = Depends(get_context),
    current_user: Profile = Depends(require_customer),
):
    """
    Current buyer's cart.

    Auth:
      - Only role='customer' has a cart.
    """
    return cart_summary(ctx.carts.for_buyer(current_user.id))


@router.post("", response_model=CartSummary)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    ctx: PortalContext = Depends(get_context),
    current_user: Profile = Depends(require_customer),
):
    """
    Add a product to the cart.

    Repeated adds merge into one line; the quantity never exceeds the
    product's max_order_quantity.
    """
    product = catalog.get_product(session, payload.product_id)
    cart = ctx.carts.for_buyer(current_user.id)
    cart.add(product, payload.quantity)
    return cart_summary(cart)


@router.patch("/{product_id}", response_model=CartSummary)
def update_cart_item(
    product_id: uuid.UUID,
    payload: CartItemUpdate,
    ctx: PortalContext = Depends(get_context),
    current_user: Profile = Depends(require_customer),
):
    """
    Set the quantity of a line. 0 removes it.
    """
    cart = ctx.carts.for_buyer(current_user.id)
    cart.set_quantity(product_id, payload.quantity)
    return cart_summary(cart)


@router.delete("/{product_id}", response_model=CartSummary)
def remove_cart_item(
    product_id: uuid.UUID,
    ctx: PortalContext = Depends(get_context),
    current_user: Profile = Depends(require_customer),
):
    cart = ctx.carts.for_buyer(current_user.id)
    cart.remove(product_id)
    return cart_summary(cart)


@router.delete("", response_model=CartSummary)
def clear_cart(
    ctx: PortalContext = Depends(get_context),
    current_user: Profile = Depends(require_customer),
):
    cart = ctx.carts.for_buyer(current_user.id)
    cart.clear()
    return cart_summary(cart)
