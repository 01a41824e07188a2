import logging
import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from functools import partial
from uuid import uuid4

from fastapi import FastAPI, Request, Response

from src.adapters.sqlite.migrator import DEFAULT_MIGRATIONS_DIR, SQLiteMigrator
from src.adapters.sqlite_db import ping
from src.api.deps import build_email_adapter, get_settings
from src.config.loader import configure_logging
from src.config.models import Settings
from src.shell.http import health

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"
REQUEST_ID_HEADER = "X-Request-ID"


def _resolve_settings(app: FastAPI) -> Settings:
    # Honour test overrides so the lifespan sees the same settings as the routes
    provider = app.dependency_overrides.get(get_settings, get_settings)
    return provider()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    try:
        settings = _resolve_settings(app)
    except (FileNotFoundError, ValueError):
        logger.critical("Configuration load failed", exc_info=True)
        raise

    configure_logging(settings.logging)

    database = settings.database
    if database.run_migrations_on_startup:
        SQLiteMigrator(database.path, database.migrations_dir or DEFAULT_MIGRATIONS_DIR).run_migrations()

    app.state.database_ping = partial(ping, database.path, database.busy_timeout_seconds)
    app.state.email_adapter = build_email_adapter(settings)
    logger.info(
        "Newsletter service started (base_url=%s, database=%s, email_enabled=%s)",
        settings.application.base_url,
        database.path,
        settings.email_client.enabled,
    )

    try:
        yield
    finally:
        app.state.email_adapter.close()
        logger.info("Newsletter service stopped")


app = FastAPI(
    title="Newsletter API",
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.middleware("http")
async def request_context(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Attach a request id to every response and log the request."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
    start = time.perf_counter()

    response = await call_next(request)

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info(
        "%s %s -> %d (%.1f ms) request_id=%s",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
        request_id,
    )
    return response


# --- Routers ---
from src.api.routes import newsletters, subscriptions  # noqa: E402

app.include_router(subscriptions.router, tags=["Subscriptions"])
app.include_router(newsletters.router, tags=["Newsletters"])
app.include_router(health.router)
