"""
Health checks

- /health       - liveness, no dependencies touched
- /health/ready - readiness, verifies the database answers
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import time

from app.core.database import get_session_local
from app.core.logging_config import logger


router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """Liveness check"""
    return {"ok": True}


@router.get("/ready")
async def readiness_check():
    """Readiness check - 503 until the database responds"""
    start = time.time()
    try:
        session_factory = get_session_local()
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"ok": False, "database": "unavailable"},
        )

    latency = (time.time() - start) * 1000
    return {"ok": True, "database": "ok", "latency_ms": round(latency, 2)}
