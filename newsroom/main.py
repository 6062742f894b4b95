import asyncio
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog

from newsroom.core.config import settings
from newsroom.api.v1.api import api_router
from newsroom.core.exceptions import setup_exception_handlers
from newsroom.db.session import engine, Base
from newsroom.services.realtime import (
    LocalBroker,
    RedisBroker,
    configure_pusher,
    connection_registry,
)
from newsroom.utils.background import background_tasks
from newsroom.utils.logger import setup_logging

# Setup structured logging
setup_logging()
logger = structlog.get_logger()

SHUTDOWN_DRAIN_SECONDS = 10.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info("Starting up application", app_name=settings.APP_NAME, version=settings.APP_VERSION)

    # Create database tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    redis_broker = None
    listener = None
    if settings.REDIS_URL:
        redis_broker = RedisBroker(settings.REDIS_URL, settings.REALTIME_CHANNEL, connection_registry)
        await redis_broker.connect()
        configure_pusher(redis_broker)
        listener = asyncio.create_task(redis_broker.listen())
    else:
        configure_pusher(LocalBroker(connection_registry))

    yield

    # Shutdown
    logger.info("Shutting down application", pending_deliveries=background_tasks.pending)
    await background_tasks.drain(timeout=SHUTDOWN_DRAIN_SECONDS)
    connection_registry.close_all()

    if listener is not None:
        listener.cancel()
        try:
            await listener
        except asyncio.CancelledError:
            pass
    if redis_broker is not None:
        await redis_broker.disconnect()

    await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.APP_VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    lifespan=lifespan,
)

# Set up CORS
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Set up exception handlers
setup_exception_handlers(app)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


# Root endpoint
@app.get("/", tags=["root"])
async def root():
    """Root endpoint"""
    return {
        "message": "Newsroom Editorial API",
        "version": settings.APP_VERSION,
        "docs": f"{settings.API_V1_STR}/docs",
    }


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "realtime_connections": connection_registry.active_count,
    }
