# portal/main.py
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portal.context import PortalContext
from portal.core.config import get_settings
from portal.core.errors import (
    AuthorizationError,
    IdentityError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    PortalError,
    ValidationError,
)
from portal.core.identity_store import SupabaseIdentityStore
from portal.core.messages import pick_locale, translate
from portal.database import build_engine, create_db_and_tables

# Routers
from portal.routers.accounts import router as accounts_router
from portal.routers.cart import router as cart_router
from portal.routers.catalog import router as catalog_router
from portal.routers.orders import router as orders_router

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("uvicorn")

# Error kind -> HTTP status. Order matters: first isinstance match wins.
ERROR_STATUS: list[tuple[type[PortalError], int]] = [
    (ValidationError, 422),
    (InvalidTransitionError, 409),
    (PersistenceError, 503),
    (IdentityError, 400),
    (NotFoundError, 404),
    (AuthorizationError, 403),
]


def build_context() -> PortalContext:
    """
    Wire the process-wide handles from settings.
    """
    engine = build_engine(settings.DATABASE_URL)
    return PortalContext(
        settings=settings,
        engine=engine,
        identity_store=SupabaseIdentityStore.from_settings(settings),
    )


def create_app(context: PortalContext | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    `context` lets callers (tests, scripts) supply their own engine and
    identity store; otherwise one is built from settings at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup:
          - Build the PortalContext (engine, identity store, carts).
          - Verify DB connectivity and create tables.

        Shutdown:
          - Dispose the engine's pool (when built here). In-memory carts
            are dropped.
        """
        ctx = context or build_context()
        logger.info("🔄 Startup: connecting to database...")
        try:
            create_db_and_tables(ctx.engine)
            logger.info("✅ Startup: DB connection OK, tables verified.")
        except Exception as e:
            logger.error(f"❌ Startup: DB connection FAILED: {e}")
            raise
        app.state.context = ctx
        yield
        # A context passed in by the caller is the caller's to close
        if context is None:
            ctx.engine.dispose()

    app = FastAPI(
        title=settings.PROJECT_NAME or "B2B Ordering Portal API",
        version="0.1.0",
        lifespan=lifespan,
    )

    # --- CORS configuration ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError):
        """
        Translate core errors into HTTP responses.

        Internal error text goes to the log only; clients get the stable
        code, a localized message and any structured details.
        """
        status_code = next(
            (code for kind, code in ERROR_STATUS if isinstance(exc, kind)),
            500,
        )
        locale = pick_locale(request.headers.get("accept-language"), settings.DEFAULT_LOCALE)
        log = logger.warning if status_code < 500 else logger.error
        log("%s %s -> %s %s: %s", request.method, request.url.path, status_code, exc.code, exc.message)

        return JSONResponse(
            status_code=status_code,
            content={
                "code": exc.code,
                "detail": translate(exc.key, locale),
                "details": exc.details,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """
        Malformed request bodies get the same error shape as core errors.

        Only the location and kind of each problem are returned; raw
        validator messages stay in the log.
        """
        locale = pick_locale(request.headers.get("accept-language"), settings.DEFAULT_LOCALE)
        errors = [{"loc": [str(part) for part in err["loc"]], "type": err["type"]} for err in exc.errors()]
        logger.warning("%s %s -> 422 validation_error: %s", request.method, request.url.path, exc.errors())

        return JSONResponse(
            status_code=422,
            content={
                "code": ValidationError.code,
                "detail": translate(ValidationError.code, locale),
                "details": {"errors": errors},
            },
        )

    # Versioned API prefix, e.g. /api/v1
    app.include_router(accounts_router, prefix=settings.API_V1_STR)
    app.include_router(catalog_router, prefix=settings.API_V1_STR)
    app.include_router(cart_router, prefix=settings.API_V1_STR)
    app.include_router(orders_router, prefix=settings.API_V1_STR)

    @app.get("/")
    def root():
        """Health check endpoint."""
        return {"status": "ok", "service": "b2b-portal"}

    return app


app = create_app()
