# portal/core/auth.py
import uuid
from collections.abc import Callable
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session

from portal.context import PortalContext, get_context
from portal.database import get_session
from portal.models.profile import Profile
from portal.repositories.profile_repo import ProfileRepository

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so guests can browse the catalog.
bearer_scheme = HTTPBearer(auto_error=False)

profile_repo = ProfileRepository()


def decode_access_token(token: str, secret: str, algorithm: str = "HS256") -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def get_current_profile(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    ctx: PortalContext = Depends(get_context),
    session: Session = Depends(get_session),
) -> Profile | None:
    """
    Resolve the current profile from a Supabase JWT.

    Flow:
      1. No Authorization header => guest => None.
      2. Decode JWT => 'sub' is the auth user id = profile id.
      3. Load the profile. There is no auto-provisioning here: a
         profile is only created through signup / reconcile, so an
         identity without one is rejected.
    """
    if credentials is None:
        return None  # guest mode

    payload = decode_access_token(
        credentials.credentials,
        ctx.settings.SUPABASE_JWT_SECRET,
        ctx.settings.SUPABASE_JWT_ALG,
    )
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub",
        )

    try:
        sub_uuid = uuid.UUID(sub)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid sub in token",
        )

    profile = profile_repo.get_profile(session, sub_uuid)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Profile not provisioned",
        )
    return profile


def require_auth(profile: Profile | None = Depends(get_current_profile)) -> Profile:
    """
    Enforce authentication; guests get 401.
    """
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return profile


def require_roles(*roles: str) -> Callable[[Profile], Profile]:
    """
    Build a dependency that admits only the given roles (403 otherwise).

        @router.get("/x", dependencies=[Depends(require_roles("admin"))])
    """

    def dependency(profile: Profile = Depends(require_auth)) -> Profile:
        if profile.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{' / '.join(roles).capitalize()} access required",
            )
        return profile

    return dependency


# Buyers: cart, checkout, own orders
require_customer = require_roles("customer")

# Sellers: own order slices, own products
require_supplier = require_roles("supplier")

# Back office
require_staff = require_roles("admin", "manager")
require_admin = require_roles("admin")
