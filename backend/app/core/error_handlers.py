"""
Central error translator.

Maps every exception that escapes a route onto the {message, code, details?}
body. Domain errors carry their own status and code; request validation is
reported as VALIDATION_ERROR with one issue per field; anything unexpected is
logged with its traceback and surfaced as a generic 500.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.exceptions import CampusQAError
from app.core.logging_config import logger
from app.core.rate_limiter import rate_limit_exceeded_handler

# Location prefixes FastAPI puts in front of the field path
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def _issue_path(loc) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(parts)


def _issue_message(error: dict) -> str:
    message = error.get("msg", "Invalid value")
    # pydantic prefixes messages raised from validators
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return message


async def campusqa_error_handler(request: Request, exc: CampusQAError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    issues = [
        {"path": _issue_path(err.get("loc", ())), "message": _issue_message(err)}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={
            "message": "Validation failed",
            "code": "VALIDATION_ERROR",
            "details": {"issues": issues},
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        message = f"Not found - {request.url.path}"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": message, "code": "HTTP_ERROR"},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "message": str(exc) if settings.DEBUG else "Internal server error",
            "code": "INTERNAL_SERVER_ERROR",
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CampusQAError, campusqa_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
