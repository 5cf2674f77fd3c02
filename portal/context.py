from dataclasses import dataclass, field

from fastapi import Request
from sqlalchemy.engine import Engine

from portal.core.config import Settings
from portal.core.identity_store import IdentityStore
from portal.services.cart import CartSessions


@dataclass
class PortalContext:
    """
    Process-wide handle passed to every component.

    Created once in the application lifespan and stored on `app.state`;
    request handlers reach it through `get_context`. Nothing in the core
    holds a hidden client or engine singleton.
    """

    settings: Settings
    engine: Engine
    identity_store: IdentityStore
    carts: CartSessions = field(default_factory=CartSessions)


def get_context(request: Request) -> PortalContext:
    return request.app.state.context
