"""
Typed error kinds raised by the ordering and provisioning core.

Services raise these; only the exception handlers in `portal/main.py` turn
them into status codes and localized messages. Each error carries a stable
`code`; `key` optionally narrows the user-facing message (e.g. "empty_cart").
"""

from typing import Any


class PortalError(Exception):
    """Base class for all core errors."""

    code = "portal_error"

    def __init__(self, message: str = "", *, key: str | None = None, **details: Any):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.key = key or self.code
        self.details = details


class ValidationError(PortalError):
    """Caller-correctable input (empty cart, missing required field...)."""

    code = "validation_error"


class NotFoundError(PortalError):
    code = "not_found"


class AuthorizationError(PortalError):
    """The actor's role does not allow the requested operation."""

    code = "forbidden"


class InvalidTransitionError(PortalError):
    """Order status graph violation, or the state already moved on."""

    code = "invalid_transition"

    def __init__(self, current: str, requested: str, message: str = ""):
        super().__init__(
            message or f"Invalid status transition: {current} -> {requested}",
            current=current,
            requested=requested,
        )
        self.current = current
        self.requested = requested


class PersistenceError(PortalError):
    """Store unavailable or write rejected."""

    code = "persistence_error"


class IdentityError(PortalError):
    """Identity store refused the request (duplicate email, weak password...)."""

    code = "identity_error"


class ReconciliationTimeout(PortalError):
    """
    Internal signal: the profile row did not show up within the wait bound.

    Triggers the direct-insert fallback; never surfaced when the fallback
    succeeds.
    """

    code = "reconciliation_timeout"
