"""Error taxonomy and the FastAPI handlers that render it as `{"error": ...}`."""

import logging
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class StoreItError(Exception):
    """
    Base exception class for all StoreIt errors.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message, **self.extra}


class BadRequestError(StoreItError):
    """
    Raised for missing fields, malformed payloads and invalid state requests.
    """
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(StoreItError):
    """
    Raised when the bearer token is missing, invalid or expired.
    """
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(StoreItError):
    """
    Raised when the caller is authenticated but not entitled.
    """
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(StoreItError):
    """
    Raised when a file, upload session or account does not exist.
    """
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(StoreItError):
    """
    Raised when a conditional write loses, e.g. a second finalize of one session.
    """
    status_code = status.HTTP_409_CONFLICT


def error_response(status_code: int, message: str, extra: Optional[Dict[str, Any]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **(extra or {})})


async def handle_storeit_errors(request: Request, exc: StoreItError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def handle_http_errors(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing failures such as unknown paths and unsupported methods."""
    message = {
        status.HTTP_404_NOT_FOUND: "Route not found",
        status.HTTP_405_METHOD_NOT_ALLOWED: "Method not allowed",
    }.get(exc.status_code, str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


async def handle_request_validation_errors(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render body/query validation failures as a 400 with a readable message."""
    errors = exc.errors()
    if any(error.get("type") == "json_invalid" for error in errors):
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid JSON in request body")

    missing = [
        str(error["loc"][-1]) for error in errors
        if error.get("type") == "missing" and error.get("loc")
    ]
    if missing:
        message = f"Missing required fields: {', '.join(missing)}"
    else:
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid value for {location}: {first.get('msg', 'invalid input')}"
    return error_response(status.HTTP_400_BAD_REQUEST, message)


async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that propagates during the request flow without leaking internals."""
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
