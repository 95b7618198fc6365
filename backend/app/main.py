from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from slowapi.middleware import SlowAPIMiddleware

from app.core.config import settings
from app.core.database import init_db, close_db
from app.core.error_handlers import register_exception_handlers
from app.core.logging_config import logger
from app.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    RequestSizeLimitMiddleware,
)
from app.core.rate_limiter import limiter
from app.api.router import api_router
from app.api.endpoints import health


async def validate_critical_config():
    """Validate critical configuration at startup - fail fast if missing"""
    errors = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")

    if not settings.JWT_ACCESS_SECRET or not settings.JWT_REFRESH_SECRET:
        errors.append("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must both be set")
    elif settings.JWT_ACCESS_SECRET == settings.JWT_REFRESH_SECRET:
        errors.append("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")

    if errors:
        for err in errors:
            logger.critical(f"[Startup] CRITICAL: {err}")
        raise RuntimeError(f"Invalid critical configuration: {', '.join(errors)}")

    if settings.is_production and "sqlite" in settings.DATABASE_URL:
        logger.warning("[Startup] WARNING: SQLite in production, use PostgreSQL")

    logger.info("[Startup] ✓ Critical configuration validated")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info("=" * 60)

    await validate_critical_config()
    await init_db()
    logger.info("[Startup] Database tables ready")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Campus Q&A community: questions, answers and reputation",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    redirect_slashes=False  # Prevent 307 redirects that break CORS
)

# Rate limiter state and error translation
app.state.limiter = limiter
register_exception_handlers(app)

# Add middleware (order matters - last added runs first)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_BYTES)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)

app.include_router(health.router)
app.include_router(api_router, prefix=settings.API_PREFIX)


def run():
    """Serve the API with uvicorn using SERVER_HOST / SERVER_PORT"""
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG
    )


if __name__ == "__main__":
    run()
