import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from portal.core.errors import (
    IdentityError,
    PersistenceError,
    ReconciliationTimeout,
    ValidationError,
)
from portal.core.identity_store import AuthSession, Identity, IdentityStore
from portal.models.profile import Customer, Profile, Supplier
from portal.repositories.profile_repo import ProfileRepository
from portal.schemas.account import CustomerTerms, ProfileFields, RoleTerms, SupplierTerms

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

# Roles that own a role-specific business record
ROLE_RECORDS = {"supplier": Supplier, "customer": Customer}
ROLE_TERMS = {"supplier": SupplierTerms, "customer": CustomerTerms}


class ProvisioningService:
    """
    Creates accounts: auth identity + profile + role record.

    Supabase runs a trigger on auth.users that inserts a bare profile row
    some time after sign-up. This service waits a bounded time for that
    row, then either fills it in or creates it itself. Every step after
    the identity exists is idempotent per identity, so `reconcile` can be
    re-run safely after a partial failure.
    """

    def __init__(
        self,
        identity_store: IdentityStore,
        profile_repo: ProfileRepository,
        wait_seconds: float = 2.0,
        poll_interval: float = 0.25,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.identity_store = identity_store
        self.profile_repo = profile_repo
        self.wait_seconds = wait_seconds
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock

    # ----- Public operations -----

    def provision(
        self,
        session: Session,
        email: str,
        password: str,
        role: str,
        fields: ProfileFields,
        terms: RoleTerms | None = None,
    ) -> Identity:
        """
        Full signup.

        Raises:
            ValidationError: bad input, nothing written
            IdentityError: identity store refused; nothing else written
            PersistenceError: identity exists but reconciliation failed;
                the identity is kept and `reconcile` may be re-run
        """
        self._precheck(password, role, fields)
        self._check_terms(role, terms)

        metadata = {
            "email": email,
            "name": fields.name,
            "role": role,
            "company": fields.company,
            "phone": fields.phone,
            "address": fields.address,
            "city": fields.city,
        }
        identity = self.identity_store.create_identity(email, password, metadata)
        logger.info("Identity %s created for %s (role=%s)", identity.id, email, role)

        self.reconcile(session, identity, role, fields, terms)
        return identity

    def reconcile(
        self,
        session: Session,
        identity: Identity,
        role: str,
        fields: ProfileFields,
        terms: RoleTerms | None = None,
    ) -> Profile:
        """
        Make (profile, role record) consistent for an existing identity.

        Applying the same fields and terms twice yields the same end state:
        one profile, at most one role record.
        """
        self._check_terms(role, terms)

        try:
            profile = self._await_profile(session, identity.id)
            logger.info("Profile %s found (trigger path)", identity.id)
        except ReconciliationTimeout:
            logger.info(
                "Profile %s not created within %.2fs; inserting directly",
                identity.id,
                self.wait_seconds,
            )
            profile = None

        try:
            if profile is None:
                profile = self._insert_or_repair(session, identity, role, fields)
            else:
                self._check_role(profile, role)
                self._apply_fields(profile, fields)
                self.profile_repo.save_profile(session, profile)

            self._upsert_role_record(session, profile, fields, terms)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Reconciliation failed for identity %s: %s", identity.id, exc)
            raise PersistenceError("Profile could not be saved") from exc

        session.refresh(profile)
        return profile

    def sign_in(self, email: str, password: str) -> AuthSession:
        return self.identity_store.verify_credentials(email, password)

    def sign_out(self, access_token: str) -> None:
        """Best effort: a failed revoke only means the token lives until expiry."""
        try:
            self.identity_store.end_session(access_token)
        except IdentityError as exc:
            logger.warning("Sign-out failed: %s", exc)

    # ----- Steps -----

    def _precheck(self, password: str, role: str, fields: ProfileFields) -> None:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                key="weak_password",
            )
        if role in ROLE_RECORDS and not fields.company:
            raise ValidationError("Company is required", field="company")

    def _await_profile(self, session: Session, identity_id: uuid.UUID) -> Profile:
        """
        Poll for the trigger-created profile until the wait bound expires.

        Raises:
            ReconciliationTimeout: no row within wait_seconds
        """
        deadline = self._clock() + self.wait_seconds
        while True:
            profile = self.profile_repo.get_profile(session, identity_id)
            if profile is not None:
                return profile

            remaining = deadline - self._clock()
            if remaining <= 0:
                raise ReconciliationTimeout(f"No profile for {identity_id}")
            self._sleep(min(self.poll_interval, remaining))

    def _insert_or_repair(
        self,
        session: Session,
        identity: Identity,
        role: str,
        fields: ProfileFields,
    ) -> Profile:
        """
        Fallback path: insert the profile ourselves.

        If the delayed trigger inserted it in the meantime, the insert
        collides; roll back and update the trigger's row instead.
        """
        profile = Profile(
            id=identity.id,
            email=identity.email,
            name=fields.name,
            role=role,
            company=fields.company,
            phone=fields.phone,
            address=fields.address,
            city=fields.city,
        )
        try:
            return self.profile_repo.insert_profile(session, profile)
        except IntegrityError:
            session.rollback()
            existing = self.profile_repo.get_profile(session, identity.id)
            if existing is None:
                # Not a race with the trigger (e.g. email taken by another id)
                raise
            logger.info("Profile %s appeared during fallback insert; updating", identity.id)
            self._check_role(existing, role)
            self._apply_fields(existing, fields)
            return self.profile_repo.save_profile(session, existing)

    def _check_role(self, profile: Profile, role: str) -> None:
        if profile.role != role:
            raise ValidationError(
                f"Profile role {profile.role!r} does not match requested role {role!r}",
                field="role",
            )

    def _apply_fields(self, profile: Profile, fields: ProfileFields) -> None:
        """Mutable fields only; id, email and role are never touched."""
        profile.name = fields.name
        profile.company = fields.company
        profile.phone = fields.phone
        profile.address = fields.address
        profile.city = fields.city
        profile.updated_at = datetime.now(timezone.utc)

    def _check_terms(self, role: str, terms: RoleTerms | None) -> None:
        if terms is None:
            return
        expected = ROLE_TERMS.get(role)
        if expected is None or not isinstance(terms, expected):
            raise ValidationError(
                f"{type(terms).__name__} do not apply to role {role!r}",
                field="terms",
            )

    def _upsert_role_record(
        self,
        session: Session,
        profile: Profile,
        fields: ProfileFields,
        terms: RoleTerms | None = None,
    ) -> None:
        """
        Create or update the supplier/customer record.

        Without terms a new record gets the default terms and an existing
        one keeps its own; with terms every term field is overwritten.
        """
        model = ROLE_RECORDS.get(profile.role)
        if model is None:
            return  # admin / manager have no role record

        company_name = fields.company or fields.name
        if model is Supplier:
            record = self.profile_repo.get_supplier(session, profile.id)
        else:
            record = self.profile_repo.get_customer(session, profile.id)

        if record is None:
            record = model(id=profile.id, company_name=company_name)
            if terms is None:
                terms = ROLE_TERMS[profile.role]()
        else:
            record.company_name = company_name
            record.updated_at = datetime.now(timezone.utc)

        if terms is not None:
            values = terms.model_dump()
            if isinstance(terms, CustomerTerms):
                values["delivery_address"] = values["delivery_address"] or profile.address
                values["billing_address"] = values["billing_address"] or profile.address
            for key, value in values.items():
                setattr(record, key, value)

        self.profile_repo.save_role_record(session, record)
