"""FastAPI application entry point."""
import asyncio
import contextlib
import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from resolvenow.core.config import settings
from resolvenow.core.deps import get_db, get_registry
from resolvenow.core.errors import register_exception_handlers
from resolvenow.core.structured_logging import configure_logging
from resolvenow.core.websocket import ConnectionRegistry, run_heartbeat
from resolvenow.services.broadcast import BroadcastRouter

logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,
    )
    logging.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from resolvenow.core.rate_limit import limiter


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the dashboard heartbeat for the life of the process."""
    task = asyncio.create_task(
        run_heartbeat(app.state.registry, settings.WS_HEARTBEAT_SECONDS)
    )
    try:
        yield
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


def create_app(registry: ConnectionRegistry | None = None) -> FastAPI:
    """
    Build the application.

    The connection registry and broadcast router are created here and stored
    on app.state; tests pass their own registry.
    """
    configure_logging()

    app = FastAPI(
        title="ResolveNOW API",
        description="Dispute resolution case management API",
        version=settings.VERSION,
        docs_url="/docs" if settings.ENV == "dev" else None,
        redoc_url="/redoc" if settings.ENV == "dev" else None,
        lifespan=lifespan,
    )

    app.state.registry = registry if registry is not None else ConnectionRegistry()
    app.state.broadcaster = BroadcastRouter(app.state.registry)

    # Add rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(app)

    # CORS middleware - must be added before routers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,  # Required for cookies
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["Content-Disposition"],
    )

    # ========================================================================
    # Routers
    # ========================================================================

    from resolvenow.routers import admin, auth, cases, uploads, users
    from resolvenow.routers import websocket as ws_router

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(cases.router, prefix="/api/cases", tags=["cases"])
    app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
    app.include_router(uploads.router, prefix="/api/upload", tags=["uploads"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])

    # WebSocket for real-time dashboard events
    app.include_router(ws_router.router)

    # ========================================================================
    # Health Check
    # ========================================================================

    @app.get("/api/health")
    def health(
        db: Session = Depends(get_db),
        registry: ConnectionRegistry = Depends(get_registry),
    ):
        """
        Health check endpoint.

        Verifies database connectivity and returns environment info.
        """
        db.execute(text("SELECT 1"))
        return {
            "status": "ok",
            "env": settings.ENV,
            "version": settings.VERSION,
            "websocket": registry.stats(),
        }

    return app


app = create_app()
