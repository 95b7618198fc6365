"""
Rate Limiting for the CampusQA API
==================================
slowapi limiter keyed by client address.

- All routes: RATE_LIMIT_PER_MINUTE per client
- /auth/signup and /auth/login: AUTH_RATE_LIMIT (brute force protection)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.logging_config import logger


def get_client_identifier(request: Request) -> str:
    """
    Rate limit key: the client address.

    Limits are evaluated before route dependencies run, so the caller's
    identity is never known at this point.
    """
    return f"ip:{get_remote_address(request)}"


# Create limiter instance
limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Translate slowapi's exception into the standard error body with a Retry-After header"""
    logger.warning(
        f"[RateLimit] Exceeded for {get_client_identifier(request)}: {exc.detail}",
        extra={"event_type": "rate_limited", "http_path": request.url.path}
    )

    return JSONResponse(
        status_code=429,
        content={
            "message": "Too many requests. Please slow down.",
            "code": "RATE_LIMITED",
            "details": {"limit": str(exc.detail)},
        },
        headers={"Retry-After": "60"}
    )


def auth_rate_limit():
    """Rate limit for credential endpoints"""
    return limiter.limit(settings.AUTH_RATE_LIMIT, key_func=get_client_identifier)
