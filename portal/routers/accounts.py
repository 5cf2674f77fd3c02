# portal/routers/accounts.py
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlmodel import Session

from portal.context import PortalContext, get_context
from portal.core.auth import bearer_scheme, get_current_profile, require_admin, require_auth
from portal.core.identity_store import Identity
from portal.database import get_session
from portal.models.profile import Profile
from portal.repositories.profile_repo import ProfileRepository
from portal.schemas.account import (
    IdentityRead,
    LoginRequest,
    ProfileRead,
    ReconcileRequest,
    SignupRequest,
    TokenRead,
)
from portal.services.order_status import STAFF_ROLES
from portal.services.provisioning_service import ProvisioningService

router = APIRouter(tags=["Accounts"])

profile_repo = ProfileRepository()


def get_provisioning_service(ctx: PortalContext = Depends(get_context)) -> ProvisioningService:
    return ProvisioningService(
        ctx.identity_store,
        profile_repo,
        wait_seconds=ctx.settings.PROFILE_WAIT_SECONDS,
        poll_interval=ctx.settings.PROFILE_POLL_INTERVAL_SECONDS,
    )


# -------- Signup / reconcile --------


@router.post(
    "/accounts/signup",
    response_model=IdentityRead,
    status_code=201,
)
def signup(
    payload: SignupRequest,
    session: Session = Depends(get_session),
    service: ProvisioningService = Depends(get_provisioning_service),
    current_user: Profile | None = Depends(get_current_profile),
):
    """
    Create identity + profile + role record.

    Auth:
      - Public for supplier / customer accounts.
      - admin / manager accounts can only be created by an admin.
    """
    if payload.role in STAFF_ROLES and (current_user is None or current_user.role != "admin"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    identity = service.provision(
        session,
        payload.email,
        payload.password,
        payload.role,
        payload.profile,
        payload.terms,
    )
    return IdentityRead(id=identity.id, email=identity.email)


@router.post(
    "/accounts/{identity_id}/reconcile",
    response_model=ProfileRead,
    dependencies=[Depends(require_admin)],
)
def reconcile(
    identity_id: uuid.UUID,
    payload: ReconcileRequest,
    session: Session = Depends(get_session),
    service: ProvisioningService = Depends(get_provisioning_service),
):
    """
    Re-run profile/role reconciliation for an identity that already
    exists, e.g. after a signup whose profile write failed.
    """
    identity = Identity(id=identity_id, email=payload.email)
    return service.reconcile(session, identity, payload.role, payload.profile, payload.terms)


@router.get("/accounts/me", response_model=ProfileRead)
def read_me(current_user: Profile = Depends(require_auth)):
    """
    Return the authenticated user's profile.
    """
    return current_user


# -------- Sessions --------


@router.post("/auth/login", response_model=TokenRead)
def login(
    payload: LoginRequest,
    session: Session = Depends(get_session),
    service: ProvisioningService = Depends(get_provisioning_service),
):
    auth_session = service.sign_in(payload.email, payload.password)
    profile = profile_repo.get_profile(session, auth_session.identity.id)
    return TokenRead(
        access_token=auth_session.access_token,
        refresh_token=auth_session.refresh_token,
        expires_in=auth_session.expires_in,
        profile=ProfileRead.model_validate(profile) if profile else None,
    )


@router.post("/auth/logout", status_code=204)
def logout(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    service: ProvisioningService = Depends(get_provisioning_service),
    _: Profile = Depends(require_auth),
):
    """
    Revoke the current session. Always succeeds for an authenticated caller.
    """
    service.sign_out(credentials.credentials)
