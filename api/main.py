"""
MotoresRD - FastAPI API Service Entry Point
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import (
    auth,
    bookings,
    catalog,
    catalog_io,
    dashboard,
    make_images,
    motorcycles,
    public_images,
    users,
)
from api.services.user_service import get_user_service
from database.connection import close_db
from database.seeds.run_all_seeds import run_all_seeds
from shared.config import get_settings
from shared.fastapi_errors import register_error_handlers
from shared.logging_config import configure_logging
from shared.redis_client import close_redis_client

# Configure structured JSON logging on startup
configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="MotoresRD API",
    description="Motorcycle rental marketplace: catalog back-office, storefront and bookings",
    version="1.0.0",
)

# Load settings for CORS configuration
settings = get_settings()
origins = settings.CORS_ORIGINS.split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)

register_error_handlers(app)

# Authentication and user administration
app.include_router(auth.router, tags=["auth"])
app.include_router(users.router, tags=["users"])

# Catalog back-office; gallery routes go first so /makes/images is not
# captured by /makes/{make_id}
app.include_router(make_images.router, tags=["make-images"])
app.include_router(catalog.router, tags=["catalog"])
app.include_router(catalog_io.router, tags=["catalog-io"])

# Storefront, bookings and dashboards
app.include_router(motorcycles.router, tags=["motorcycles"])
app.include_router(bookings.router, tags=["bookings"])
app.include_router(dashboard.admin_router, tags=["dashboard"])
app.include_router(dashboard.dealer_router, tags=["dealer"])

# Public image serving (no auth)
app.include_router(
    public_images.get_catalog_images_router(),
    prefix="/catalog-images",
    tags=["public-images"],
)
app.include_router(
    public_images.get_listing_images_router(),
    prefix="/listing-images",
    tags=["public-images"],
)


@app.on_event("startup")
async def startup_event():
    """Log startup information and seed initial data."""
    logger.info(f"Starting {settings.PROJECT_NAME} API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    if not settings.JWT_SECRET:
        logger.warning("JWT_SECRET is not set; authentication will reject every token")

    try:
        await get_user_service().seed_admin(settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
    except Exception as e:
        logger.error(f"Failed to seed admin user: {e}")

    if settings.SEED_CATALOG_ON_STARTUP:
        try:
            await run_all_seeds()
        except Exception as e:
            logger.error(f"Failed to seed data: {e}")


@app.on_event("shutdown")
async def shutdown_event():
    await close_redis_client()
    await close_db()
    logger.info(f"{settings.PROJECT_NAME} API stopped")


@app.get("/health")
async def health_check() -> JSONResponse:
    """
    Health check endpoint for Docker health checks and monitoring.

    Checks:
    - Redis connectivity (PING command)
    - PostgreSQL connectivity (SELECT 1 query)

    Returns:
        200 OK if all systems healthy
        503 Service Unavailable if degraded
    """
    from sqlalchemy import text

    from database.connection import get_async_session
    from shared.redis_client import get_redis_client

    health_status = {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "redis": "unknown",
        "postgres": "unknown",
    }
    status_code = 200

    try:
        redis_client = get_redis_client()
        await redis_client.ping()
        health_status["redis"] = "connected"
    except Exception:
        health_status["redis"] = "disconnected"
        health_status["status"] = "degraded"
        status_code = 503

    try:
        async with get_async_session() as session:
            await session.execute(text("SELECT 1"))
            health_status["postgres"] = "connected"
    except Exception:
        health_status["postgres"] = "disconnected"
        health_status["status"] = "degraded"
        status_code = 503

    return JSONResponse(status_code=status_code, content=health_status)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint"""
    return {
        "message": f"{settings.PROJECT_NAME} API",
        "version": "1.0.0",
        "health": "/health",
    }
