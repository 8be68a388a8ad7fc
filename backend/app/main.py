"""
Mecone Back-Office API

FastAPI application entry point.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.api import auth, entities, health, users, work_groups
from backend.app.core.config import get_settings
from backend.app.core.database import create_tables, get_db_context
from backend.app.core.errors import register_exception_handlers
from backend.app.core.logging import setup_logging, get_logger
from backend.app.core.security import get_token_service
from backend.app.middleware.trace import TracingMiddleware
from backend.app.services.user_service import seed_admin_user

settings = get_settings()

# Initialize logging
setup_logging(level=settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    # Fail fast on missing or identical signing secrets
    get_token_service()

    if settings.auto_create_tables:
        await create_tables()

    try:
        async with get_db_context() as db:
            await seed_admin_user(db, settings)
    except Exception as e:
        logger.error(f"Error seeding admin user: {e}", exc_info=True)

    yield
    logger.info(f"Shutting down {settings.app_name}")


app = FastAPI(
    title=settings.app_name,
    description="Administrative back-office: accounts, profiles, work groups and entities",
    version=settings.app_version,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Add Middleware
app.add_middleware(TracingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Correlation-ID"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(
    auth.router,
    prefix=f"{settings.api_prefix}/auth",
    tags=["Authentication"]
)
app.include_router(
    users.router,
    prefix=f"{settings.api_prefix}/users",
    tags=["Users"]
)
app.include_router(
    work_groups.router,
    prefix=f"{settings.api_prefix}/work-groups",
    tags=["Work Groups"]
)
app.include_router(
    entities.router,
    prefix=f"{settings.api_prefix}/entities",
    tags=["Entities"]
)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
