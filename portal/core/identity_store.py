from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from supabase import AuthError, Client, create_client

from portal.core.config import Settings
from portal.core.errors import IdentityError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    id: uuid.UUID
    email: str


@dataclass(frozen=True)
class AuthSession:
    identity: Identity
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None


class IdentityStore(Protocol):
    def create_identity(self, email: str, password: str, metadata: dict[str, Any]) -> Identity: ...

    def verify_credentials(self, email: str, password: str) -> AuthSession: ...

    def end_session(self, access_token: str) -> None: ...


def _identity_error(exc: AuthError) -> IdentityError:
    """Map a Supabase Auth error onto IdentityError with a message key."""
    text = str(exc).lower()
    code = (getattr(exc, "code", None) or "").lower()
    if "already registered" in text or code in {"user_already_exists", "email_exists"}:
        key = "duplicate_email"
    elif ("password" in text and "at least" in text) or code == "weak_password":
        key = "weak_password"
    elif "invalid login credentials" in text or code == "invalid_credentials":
        key = "invalid_credentials"
    else:
        key = "identity_error"
    return IdentityError(str(exc), key=key)


class SupabaseIdentityStore:
    """
    Identity store backed by Supabase Auth.

    Every call uses a fresh client: supabase-py keeps the signed-in session
    on the client object, which must not leak between buyers.
    """

    def __init__(
        self,
        client_factory: Callable[[], Client],
        admin_client_factory: Callable[[], Client] | None = None,
    ):
        self._client_factory = client_factory
        self._admin_client_factory = admin_client_factory

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseIdentityStore":
        def public() -> Client:
            return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)

        admin = None
        if settings.SUPABASE_SERVICE_ROLE_KEY:
            service_key = settings.SUPABASE_SERVICE_ROLE_KEY

            def admin() -> Client:
                return create_client(settings.SUPABASE_URL, service_key)

        return cls(public, admin)

    def create_identity(self, email: str, password: str, metadata: dict[str, Any]) -> Identity:
        """
        Register a new auth user. The metadata lands in
        auth.users.raw_user_meta_data, where the profile trigger reads it.
        """
        client = self._client_factory()
        try:
            response = client.auth.sign_up(
                {
                    "email": email,
                    "password": password,
                    "options": {"data": metadata},
                }
            )
        except AuthError as exc:
            raise _identity_error(exc) from exc

        user = response.user
        if user is None:
            raise IdentityError("Sign-up returned no user", key="identity_error")

        # With email confirmation on, Supabase answers a duplicate sign-up
        # with an obfuscated user that has no identities.
        if user.identities is not None and len(user.identities) == 0:
            raise IdentityError("User already registered", key="duplicate_email")

        return Identity(id=uuid.UUID(str(user.id)), email=user.email or email)

    def verify_credentials(self, email: str, password: str) -> AuthSession:
        client = self._client_factory()
        try:
            response = client.auth.sign_in_with_password({"email": email, "password": password})
        except AuthError as exc:
            raise _identity_error(exc) from exc

        if response.user is None or response.session is None:
            raise IdentityError("Invalid login credentials", key="invalid_credentials")

        return AuthSession(
            identity=Identity(
                id=uuid.UUID(str(response.user.id)),
                email=response.user.email or email,
            ),
            access_token=response.session.access_token,
            refresh_token=response.session.refresh_token,
            expires_in=response.session.expires_in,
        )

    def end_session(self, access_token: str) -> None:
        """
        Revoke the session behind an access token.

        Needs the service role key; without it the token simply expires.
        """
        if self._admin_client_factory is None:
            logger.info("No service role key configured; session left to expire")
            return
        client = self._admin_client_factory()
        try:
            client.auth.admin.sign_out(access_token)
        except AuthError as exc:
            raise _identity_error(exc) from exc
        except httpx.HTTPError as exc:
            raise IdentityError(f"Auth service unreachable: {exc}", key="identity_error") from exc
