# portal/routers/orders.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from portal.context import PortalContext, get_context
from portal.core.auth import require_auth, require_customer, require_staff, require_supplier
from portal.core.errors import NotFoundError
from portal.database import get_session
from portal.models.profile import Profile
from portal.repositories.catalog_repo import CatalogRepository
from portal.repositories.order_repo import OrderRepository
from portal.repositories.profile_repo import ProfileRepository
from portal.schemas.order import (
    DeliveryInfo,
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
    SupplierOrderView,
)
from portal.services.order_service import OrderService
from portal.services.order_status import OrderScope

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
catalog_repo = CatalogRepository()
profile_repo = ProfileRepository()


def get_order_service(ctx: PortalContext = Depends(get_context)) -> OrderService:
    return OrderService(
        order_repo,
        catalog_repo,
        profile_repo,
        order_number_prefix=ctx.settings.ORDER_NUMBER_PREFIX,
    )


# -------- Customer endpoints --------


@router.post(
    "/checkout",
    response_model=OrderWithItemsRead,
    status_code=201,
)
def checkout(
    payload: DeliveryInfo,
    session: Session = Depends(get_session),
    ctx: PortalContext = Depends(get_context),
    service: OrderService = Depends(get_order_service),
    current_user: Profile = Depends(require_customer),
):
    """
    Create an order from the current buyer's cart.

    The cart is discarded only after the order is committed; on any
    failure it is left untouched so the buyer can retry.
    """
    cart = ctx.carts.for_buyer(current_user.id)
    order = service.commit_order(session, current_user.id, cart.lines(), payload)
    ctx.carts.discard(current_user.id)
    return order


@router.get(
    "/me",
    response_model=list[OrderRead],
)
def list_my_orders(
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
    current_user: Profile = Depends(require_customer),
    scope: OrderScope = "all",
    skip: int = 0,
    limit: int = 50,
):
    """
    Buyer's orders (without items).

    scope=current -> pending / confirmed / preparing
    scope=past    -> completed / cancelled
    """
    return service.list_for_customer(session, current_user.id, scope, skip, limit)


@router.get(
    "/me/{order_id}",
    response_model=OrderWithItemsRead,
)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
    current_user: Profile = Depends(require_customer),
):
    return service.get_customer_order(session, current_user.id, order_id)


# -------- Supplier endpoints --------


@router.get(
    "/supplier",
    response_model=list[SupplierOrderView],
)
def list_supplier_orders(
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
    current_user: Profile = Depends(require_supplier),
    scope: OrderScope = "all",
    skip: int = 0,
    limit: int = 50,
):
    """
    The supplier's slice of every order that contains their products.
    Other suppliers' items never appear.
    """
    return service.list_for_supplier(session, current_user.id, scope, skip, limit)


@router.get(
    "/supplier/{order_id}",
    response_model=SupplierOrderView,
)
def get_supplier_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
    current_user: Profile = Depends(require_supplier),
):
    view = service.project_for_supplier(session, order_id, current_user.id)
    if view is None:
        raise NotFoundError("Order has no items from this supplier")
    return view


# -------- Staff endpoints --------


@router.get(
    "",
    response_model=list[OrderRead],
    dependencies=[Depends(require_staff)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
    scope: OrderScope = "all",
    skip: int = 0,
    limit: int = 50,
):
    return service.list_all(session, scope, skip, limit)


@router.get(
    "/{order_id}",
    response_model=OrderWithItemsRead,
    dependencies=[Depends(require_staff)],
)
def get_order_admin(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    return service.get_order(session, order_id)


# -------- Status changes --------


@router.patch(
    "/{order_id}/status",
    response_model=OrderRead,
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
    current_user: Profile = Depends(require_auth),
):
    """
    Move an order along its lifecycle:

      pending   -> confirmed, cancelled
      confirmed -> preparing, cancelled
      preparing -> completed, cancelled
      completed, cancelled -> (terminal)

    Who may take which edge:
      - admin / manager: any edge above
      - supplier: forward edges, on orders containing their items
      - customer: pending -> cancelled, on their own orders
    """
    return service.transition_order(
        session,
        order_id,
        payload.status,
        current_user,
        expected_status=payload.expected_status,
    )
