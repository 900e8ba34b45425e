"""Taskboard API: FastAPI entry point.

Registers middleware, exception handlers, routers, static uploads and
lifecycle hooks. Each vertical adds its own router under /api/{vertical}/;
the real-time channel is mounted at /ws.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from api.middleware import RequestContextMiddleware, RequestIdFilter
from core.config import get_settings
from core.database import close_db, init_db
from core.errors import register_exception_handlers
from core.logging_setup import setup_logging
from core.realtime import InMemoryChannel
from core.storage import FileStorage

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

settings = get_settings()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown hooks."""
    setup_logging(level=settings.log_level, log_dir=settings.log_dir, filters=[RequestIdFilter()])

    FileStorage(settings.uploads.upload_dir).ensure_root()
    if settings.auto_create_tables:
        await init_db()

    logger.info("Taskboard API started")
    yield
    await close_db()
    logger.info("Taskboard API shutting down")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Taskboard",
    description="Task management backend with attachments and real-time updates",
    version=VERSION,
    debug=settings.debug,
    lifespan=lifespan,
)

# Publish/subscribe channel shared by HTTP handlers and WebSocket clients
app.state.channel = InMemoryChannel()

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request id + access log
app.add_middleware(RequestContextMiddleware)

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers (one per vertical)
# ---------------------------------------------------------------------------

from verticals.accounts.router import auth_router, users_router  # noqa: E402
from verticals.tasks.realtime import router as realtime_router  # noqa: E402
from verticals.tasks.router import router as tasks_router  # noqa: E402

app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])
app.include_router(users_router, prefix="/api/users", tags=["Users"])
app.include_router(tasks_router, prefix="/api/tasks", tags=["Tasks"])
app.include_router(realtime_router, tags=["Realtime"])

# Uploaded files are public by URL
app.mount(
    settings.uploads.public_prefix,
    StaticFiles(directory=settings.uploads.upload_dir, check_dir=False),
    name="uploads",
)


# ---------------------------------------------------------------------------
# Health & root
# ---------------------------------------------------------------------------

@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}


@app.get("/")
async def root():
    return {
        "name": "Taskboard",
        "version": VERSION,
        "docs": "/docs",
        "verticals": ["accounts", "tasks"],
        "realtime": "/ws",
    }
