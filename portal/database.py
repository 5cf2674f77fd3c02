from collections.abc import Iterator

from fastapi import Depends
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from portal.context import PortalContext, get_context

# ---------------------------------------------------------
# Supabase Postgres connection (via pooler)
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=1       : keep only 1 connection to the Supabase pooler
# - max_overflow=0    : do not open extra connections beyond the pool
# - pool_pre_ping=True: validate connections before using them
#
# Supabase Session mode limits the number of clients; SQLAlchemy's
# default pool_size 5+ easily hits:
#   "MaxClientsInSessionMode: max clients reached"
#
# SQLite URLs (local dev / tests) get a plain engine.
# ---------------------------------------------------------


def _with_sslmode(db_url: str) -> str:
    """Append sslmode=require if it is not already present."""
    if "sslmode=" in db_url:
        return db_url
    if "?" in db_url:
        return db_url + "&sslmode=require"
    return db_url + "?sslmode=require"


def build_engine(db_url: str, echo: bool = False) -> Engine:
    """
    Create the SQLAlchemy engine for the given URL.

    Called once at process start (see `portal.main.lifespan`); the engine
    lives on the PortalContext, never as a module global.
    """
    if db_url.startswith("sqlite"):
        return create_engine(
            db_url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        _with_sslmode(db_url),
        echo=echo,  # set to True if you want to debug SQL queries
        pool_pre_ping=True,
        pool_size=1,
        max_overflow=0,
    )


def create_db_and_tables(engine: Engine) -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    # Import models so SQLModel metadata is populated before create_all()
    from portal.models import order as _order_models  # noqa: F401
    from portal.models import product as _product_models  # noqa: F401
    from portal.models import profile as _profile_models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session(ctx: PortalContext = Depends(get_context)) -> Iterator[Session]:
    """
    FastAPI dependency that yields a SQLModel Session bound to the
    context engine.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(ctx.engine) as session:
        yield session
