"""
Application errors and the JSON error envelope.

Every failure leaves the service as:
    {"error": {"code", "message", "request_id"}, "detail": message}
with the same request id echoed in the x-request-id header.
"""

import logging
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from career_momentum.core.logging import LOGGER_NAME, get_request_id

logger = logging.getLogger(LOGGER_NAME)


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.code
        self.status_code = status_code or self.status_code
        self.request_id = request_id


class ValidationError(AppError, ValueError):
    """Malformed action or missing required field. Raised before any effect."""
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, LookupError):
    code = "not_found"
    status_code = 404


class UnauthorizedError(AppError):
    code = "unauthorized"
    status_code = 401


class DependencyError(AppError):
    """Storage read/write failed; the whole request is aborted."""
    code = "progress_unavailable"
    status_code = 500


_HTTP_STATUS_CODES = {401: "unauthorized", 404: "not_found"}


def _request_id_for(request: Request) -> str:
    return getattr(request.state, "request_id", None) or get_request_id() or str(uuid4())


def error_response(request: Request, status: int, code: str, message: str, request_id: Optional[str] = None) -> JSONResponse:
    rid = request_id or _request_id_for(request)
    logger.log(
        logging.ERROR if status >= 500 else logging.WARNING,
        "request.failed",
        extra={"request_id": rid, "error_code": code, "status": status, "path": request.url.path},
    )
    return JSONResponse(
        status_code=status,
        content={"error": {"code": code, "message": message, "request_id": rid}, "detail": message},
        headers={"x-request-id": rid},
    )


async def app_error_handler(request: Request, exc: AppError):
    return error_response(request, exc.status_code, exc.code, exc.message, exc.request_id)


async def http_error_handler(request: Request, exc: HTTPException):
    code = _HTTP_STATUS_CODES.get(exc.status_code, "http_error")
    return error_response(request, exc.status_code, code, str(exc.detail or "HTTP error"))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = sorted({".".join(str(part) for part in err.get("loc", ())[1:]) or "body" for err in exc.errors()})
    return error_response(request, 400, "validation_error", f"Invalid request: {', '.join(fields)}")


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled.exception", exc_info=exc, extra={"request_id": _request_id_for(request)})
    return error_response(request, 500, "internal_error", "Failed to process request")
