"""
Error kinds raised by the services and their HTTP mapping.

Services raise these; FastAPI handlers registered in ``register_exception_handlers``
turn them into ``{"success": false, "message": ...}`` responses.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SocietyError(Exception):
    """Base class for all domain errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SocietyError):
    """Malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(SocietyError):
    """Missing or invalid credential."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(SocietyError):
    """Role or ownership mismatch."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(SocietyError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(SocietyError):
    """Invariant violation: duplicate keys, terminal-state re-transition."""

    status_code = status.HTTP_409_CONFLICT


class GatewayError(SocietyError):
    """The payment provider failed or timed out. Retryable by the caller."""

    status_code = status.HTTP_502_BAD_GATEWAY


class GatewayConfigurationError(SocietyError):
    """Gateway credentials are not configured on this server."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ServiceUnavailableError(SocietyError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class SideEffectError(SocietyError):
    """Receipt rendering/upload or notification delivery failed."""

    status_code = status.HTTP_502_BAD_GATEWAY


def _error_body(message: str, **extra) -> dict:
    body = {"success": False, "message": message}
    body.update(extra)
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """Attach handlers for domain, validation and unexpected errors."""

    @app.exception_handler(SocietyError)
    async def society_error_handler(request: Request, exc: SocietyError):
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(p) for p in err["loc"][1:]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body("Validation failed", errors=errors),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logging.error(f"Global exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("Internal Server Error"),
        )
