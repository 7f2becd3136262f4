"""Main FastAPI application entry point."""

import asyncio
import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api.v1.routes import account, api_keys, auth, catalog, context, instances
from app.aws.clients import AWSClientFactory
from app.core import credentials
from app.core.config import settings
from app.core.exceptions import ConsoleError
from app.core.logging_config import configure_logging
from app.core.rate_limit import limiter
from app.core.sessions import SessionStore
from app.db import database
from app.models.request import HealthResponse

logger = logging.getLogger(__name__)


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Admin console for AWS Lightsail instances and static IPs",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.state.limiter = limiter
app.state.session_store = SessionStore(
    ttl=settings.session_ttl_seconds,
    cleanup_interval=settings.session_cleanup_interval_seconds,
)
app.state.client_factory = AWSClientFactory()
app.state.session_cleanup_task = None

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(auth.router)
app.include_router(api_keys.router)
app.include_router(context.router)
app.include_router(instances.router)
app.include_router(catalog.router)
app.include_router(account.router)


@app.exception_handler(ConsoleError)
async def console_error_handler(request: Request, exc: ConsoleError) -> JSONResponse:
    """Render every ConsoleError as ``{"error": {...}}`` with its HTTP status."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.get("/", tags=["root"])
async def root():
    """
    Root endpoint.

    Returns:
        Welcome message
    """
    return {
        "message": "Lightsail Console API",
        "version": settings.app_version,
        "docs": "/docs"
    }


@app.get("/api/v1/health", response_model=HealthResponse, tags=["health"])
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Returns:
        HealthResponse with status information
    """
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        timestamp=datetime.now(timezone.utc).isoformat()
    )


def bootstrap_admin() -> bool:
    """Create the ADMIN_USERNAME account on first start. Returns True if created."""
    if not settings.admin_username or not settings.admin_password:
        logger.warning("ADMIN_USERNAME/ADMIN_PASSWORD not set; no bootstrap user created")
        return False

    db = database.SessionLocal()
    try:
        created = credentials.ensure_user(db, settings.admin_username, settings.admin_password)
    finally:
        db.close()
    if created:
        logger.info("Bootstrap user '%s' created", settings.admin_username.strip())
    return created


@app.on_event("startup")
async def startup_event():
    """
    Startup event handler.

    Configure logging, create tables, create the bootstrap user and start
    the session sweeper.
    """
    configure_logging(settings.log_level, debug=settings.debug)
    database.init_db()
    bootstrap_admin()

    store: SessionStore = app.state.session_store
    app.state.session_cleanup_task = asyncio.create_task(store.run_cleanup_loop())
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the session sweeper."""
    task = app.state.session_cleanup_task
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        app.state.session_cleanup_task = None


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
