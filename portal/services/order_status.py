"""
Order lifecycle rules.

    pending -> confirmed -> preparing -> completed
    pending | confirmed | preparing -> cancelled

completed and cancelled are terminal. Transitions are always triggered
by a person (staff, supplier or customer action); nothing here runs on
a timer.
"""

from typing import Literal

from portal.core.errors import AuthorizationError, InvalidTransitionError

PENDING = "pending"
CONFIRMED = "confirmed"
PREPARING = "preparing"
COMPLETED = "completed"
CANCELLED = "cancelled"

STATUSES = (PENDING, CONFIRMED, PREPARING, COMPLETED, CANCELLED)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({CONFIRMED, CANCELLED}),
    CONFIRMED: frozenset({PREPARING, CANCELLED}),
    PREPARING: frozenset({COMPLETED, CANCELLED}),
    COMPLETED: frozenset(),
    CANCELLED: frozenset(),
}

CURRENT_STATUSES = frozenset({PENDING, CONFIRMED, PREPARING})
PAST_STATUSES = frozenset({COMPLETED, CANCELLED})

# Edges each non-staff role may trigger. Staff (admin, manager) may
# trigger any legal edge.
STAFF_ROLES = frozenset({"admin", "manager"})
SUPPLIER_EDGES = frozenset(
    {
        (PENDING, CONFIRMED),
        (CONFIRMED, PREPARING),
        (PREPARING, COMPLETED),
    }
)
CUSTOMER_EDGES = frozenset({(PENDING, CANCELLED)})

OrderScope = Literal["current", "past", "all"]


def is_terminal(status: str) -> bool:
    return not ALLOWED_TRANSITIONS.get(status)


def is_current(status: str) -> bool:
    return status in CURRENT_STATUSES


def is_past(status: str) -> bool:
    return status in PAST_STATUSES


def scope_of(status: str) -> OrderScope:
    return "current" if is_current(status) else "past"


def statuses_for_scope(scope: OrderScope) -> frozenset[str]:
    if scope == "current":
        return CURRENT_STATUSES
    if scope == "past":
        return PAST_STATUSES
    return frozenset(STATUSES)


def validate_transition(current: str, requested: str) -> None:
    """
    Raise InvalidTransitionError unless `requested` is directly reachable
    from `current`.
    """
    if requested not in ALLOWED_TRANSITIONS:
        raise InvalidTransitionError(current, requested, f"Unknown status: {requested}")
    if requested not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(current, requested)


def authorize_transition(
    role: str,
    current: str,
    requested: str,
    *,
    is_owner: bool = False,
    has_items: bool = False,
) -> None:
    """
    Check that an actor may trigger a (legal) edge.

    Args:
        role: actor's profile role
        is_owner: actor is the order's customer
        has_items: actor supplies at least one item of the order
    """
    if role in STAFF_ROLES:
        return
    edge = (current, requested)
    if role == "supplier" and has_items and edge in SUPPLIER_EDGES:
        return
    if role == "customer" and is_owner and edge in CUSTOMER_EDGES:
        return
    raise AuthorizationError(f"Role {role!r} may not move an order from {current} to {requested}")
