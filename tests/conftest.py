import os
import uuid
from datetime import datetime, timedelta, timezone

# Settings are read once at import time; give them test values first.
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("PROFILE_WAIT_SECONDS", "0")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, create_engine  # noqa: E402

from portal.context import PortalContext  # noqa: E402
from portal.core.config import get_settings  # noqa: E402
from portal.core.errors import IdentityError  # noqa: E402
from portal.core.identity_store import AuthSession, Identity  # noqa: E402
from portal.database import create_db_and_tables  # noqa: E402
from portal.models.product import Product  # noqa: E402
from portal.models.profile import Customer, Profile, Supplier  # noqa: E402


class FakeIdentityStore:
    """In-memory stand-in for Supabase Auth."""

    def __init__(self):
        self.users: dict[str, tuple[Identity, str]] = {}
        self.metadata: dict[uuid.UUID, dict] = {}
        self.ended: list[str] = []
        self.fail_end_session = False

    def create_identity(self, email, password, metadata):
        if email in self.users:
            raise IdentityError("User already registered", key="duplicate_email")
        identity = Identity(id=uuid.uuid4(), email=email)
        self.users[email] = (identity, password)
        self.metadata[identity.id] = dict(metadata)
        return identity

    def verify_credentials(self, email, password):
        entry = self.users.get(email)
        if entry is None or entry[1] != password:
            raise IdentityError("Invalid login credentials", key="invalid_credentials")
        identity = entry[0]
        return AuthSession(
            identity=identity,
            access_token=make_token(identity.id, identity.email),
            refresh_token="refresh-" + identity.id.hex,
            expires_in=3600,
        )

    def end_session(self, access_token):
        if self.fail_end_session:
            raise IdentityError("auth service unavailable", key="identity_error")
        self.ended.append(access_token)


class FakeClock:
    """
    Deterministic clock + sleep pair for the provisioning wait.

    `on_sleep(n)` runs after the n-th sleep, e.g. to let a "trigger"
    insert the profile row mid-wait.
    """

    def __init__(self, on_sleep=None):
        self.now = 0.0
        self.sleeps: list[float] = []
        self.on_sleep = on_sleep

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        if self.on_sleep is not None:
            self.on_sleep(len(self.sleeps))


def make_token(profile_id: uuid.UUID, email: str = "user@example.com") -> str:
    settings = get_settings()
    claims = {
        "sub": str(profile_id),
        "email": email,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(claims, settings.SUPABASE_JWT_SECRET, algorithm=settings.SUPABASE_JWT_ALG)


def auth_headers(profile: Profile, locale: str | None = None) -> dict[str, str]:
    headers = {"Authorization": f"Bearer {make_token(profile.id, profile.email)}"}
    if locale:
        headers["Accept-Language"] = locale
    return headers


# ----- Database -----


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_profile(session):
    def _make(role: str = "customer", name: str | None = None, **fields) -> Profile:
        profile_id = uuid.uuid4()
        profile = Profile(
            id=profile_id,
            email=fields.pop("email", f"{role}-{profile_id.hex[:8]}@example.com"),
            name=name or f"{role.title()} {profile_id.hex[:4]}",
            role=role,
            **fields,
        )
        session.add(profile)
        if role == "supplier":
            session.add(Supplier(id=profile_id, company_name=f"{profile.name} Ltd"))
        elif role == "customer":
            session.add(Customer(id=profile_id, company_name=f"{profile.name} A.Ş."))
        session.commit()
        session.refresh(profile)
        return profile

    return _make


@pytest.fixture
def make_product(session):
    def _make(supplier: Profile | None, sale_price: float = 10.0, **fields) -> Product:
        product = Product(
            name=fields.pop("name", f"Product {uuid.uuid4().hex[:6]}"),
            supplier_id=supplier.id if supplier else None,
            shelf_price=fields.pop("shelf_price", sale_price),
            sale_price=sale_price,
            stock_quantity=fields.pop("stock_quantity", 500),
            **fields,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def customer(make_profile):
    return make_profile(
        "customer",
        name="Ayşe Yılmaz",
        company="Yılmaz Market",
        phone="+90 555 000 0000",
        address="Atatürk Cad. 1",
        city="İstanbul",
    )


@pytest.fixture
def supplier_1(make_profile):
    return make_profile("supplier", name="Supplier One", company="S1 Gıda")


@pytest.fixture
def supplier_2(make_profile):
    return make_profile("supplier", name="Supplier Two", company="S2 İçecek")


@pytest.fixture
def supplier_3(make_profile):
    return make_profile("supplier", name="Supplier Three", company="S3 Temizlik")


@pytest.fixture
def admin(make_profile):
    return make_profile("admin", name="Admin")


@pytest.fixture
def product_a(make_product, supplier_1):
    return make_product(supplier_1, sale_price=10.0, name="Product A")


@pytest.fixture
def product_b(make_product, supplier_2):
    return make_product(supplier_2, sale_price=5.0, name="Product B")


# ----- Application -----


@pytest.fixture
def identity_store():
    return FakeIdentityStore()


@pytest.fixture
def context(engine, identity_store):
    return PortalContext(
        settings=get_settings(),
        engine=engine,
        identity_store=identity_store,
    )


@pytest.fixture
def client(context):
    from portal.main import create_app

    with TestClient(create_app(context)) as client:
        yield client
