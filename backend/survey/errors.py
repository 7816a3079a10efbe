"""
IRVE Survey - Error Responses

Every failure leaves the API as {"success": false, "error": ..., "message": ...}.
Internal details (tracebacks, SQL) are logged, never returned.
"""
import logging
from typing import Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .services.rate_limiter import RateLimitDecision
from .time_utils import utcnow

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """An expected failure with a client-facing message."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "bad_request"

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.headers = headers


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"


class DuplicateError(ApiError):
    status_code = status.HTTP_409_CONFLICT
    error = "duplicate"


class AuthenticationError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "unauthorized"

    def __init__(self, message: str):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class RateLimitExceeded(ApiError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error = "rate_limited"

    def __init__(self, decision: RateLimitDecision):
        super().__init__(decision.message, headers=rate_limit_headers(decision))
        self.decision = decision


def rate_limit_headers(decision: RateLimitDecision) -> Dict[str, str]:
    reset = decision.retry_after_seconds(utcnow())
    headers = {
        "RateLimit-Limit": str(decision.limit),
        "RateLimit-Remaining": str(decision.remaining),
        "RateLimit-Reset": str(reset),
    }
    if not decision.allowed:
        headers["Retry-After"] = str(reset)
    return headers


def _body(error: str, message: str, **extra) -> dict:
    return {"success": False, "error": error, "message": message, **extra}


async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(
        status_code=exc.status_code,
        content=_body(exc.error, exc.message),
        headers=exc.headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        msg = err.get("msg", "Valeur invalide")
        # pydantic prefixes ValueError messages raised in validators
        messages.append(msg.removeprefix("Value error, "))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_body("validation", "Données invalides", errors=messages),
    )


SERVER_ERROR_MESSAGE = "Une erreur est survenue. Veuillez réessayer."


def _server_error() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_body("server_error", SERVER_ERROR_MESSAGE),
    )


async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return _server_error()


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return _server_error()


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
