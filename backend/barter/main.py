"""
Barter Marketplace API - Main Application Entry Point

Peer-to-peer item bartering:
- Users list items (costs points), admins approve them
- Approved, unbooked items appear in a Redis-cached public listing
- One active booking per item, enforced by a partial unique index
- Structured logging with request correlation, Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from barter.core.config import get_settings
from barter.core.exceptions import StorageError
from barter.core.logging import setup_logging, get_logger
from barter.core.metrics import metrics_endpoint
from barter.api.router import api_router
from barter.api.middleware import RequestLoggingMiddleware
from barter.db.session import SessionLocal
from barter.services.cache_service import get_redis, close_redis, get_cache_stats
from barter.services.category_service import seed_categories
from barter.services.user_service import ensure_admin
from barter.services.storage import upload_root, URL_PREFIX

settings = get_settings()
logger = get_logger(__name__)


async def seed_reference_data() -> None:
    async with SessionLocal() as db:
        await seed_categories(db)
        await ensure_admin(db, settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD, settings.ADMIN_EMAIL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    try:
        await seed_reference_data()
    except SQLAlchemyError as e:
        # Schema may not be migrated yet; requests will surface storage errors
        logger.error("seed_failed", error=str(e))

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without listing cache")

    yield

    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Peer-to-peer bartering marketplace with moderated listings and exclusive bookings",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("storage_error", error_type=type(exc).__name__, error=str(exc))
    error = StorageError()
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": error.detail})


app.include_router(api_router)
app.mount(URL_PREFIX, StaticFiles(directory=upload_root(), check_dir=False), name="uploads")


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
