import uuid

from sqlmodel import Session, select

from portal.models.profile import Customer, Profile, Supplier


class ProfileRepository:
    """
    Data access layer for profiles and their role records.

    Responsibilities:
      - Pure DB operations (get / insert / update)
      - No FastAPI, no HTTP, no business logic
      - No commits: the provisioning service owns the transaction
    """

    # ----- Profiles -----

    def get_profile(self, session: Session, profile_id: uuid.UUID) -> Profile | None:
        """
        Return the profile row as currently stored.

        populate_existing forces a fresh read even if the row is already
        in the session, so rows written by the auth trigger are seen.
        """
        stmt = (
            select(Profile)
            .where(Profile.id == profile_id)
            .execution_options(populate_existing=True)
        )
        return session.exec(stmt).first()

    def insert_profile(self, session: Session, profile: Profile) -> Profile:
        """Insert and flush; raises IntegrityError if the row already exists."""
        session.add(profile)
        session.flush()
        return profile

    def save_profile(self, session: Session, profile: Profile) -> Profile:
        session.add(profile)
        session.flush()
        return profile

    # ----- Role records -----

    def get_supplier(self, session: Session, profile_id: uuid.UUID) -> Supplier | None:
        return session.get(Supplier, profile_id)

    def get_customer(self, session: Session, profile_id: uuid.UUID) -> Customer | None:
        return session.get(Customer, profile_id)

    def save_role_record(
        self,
        session: Session,
        record: Supplier | Customer,
    ) -> Supplier | Customer:
        session.add(record)
        session.flush()
        return record
