"""JSON envelope and error handling for the Newsdesk REST API.

Every response body has the shape ``{"data": ..., "error": ...}`` with
exactly one of the two set.  Errors carry ``code``, ``message`` and
``details``:

    400 VALIDATION_ERROR   request schema parsing or a business rule
    401 UNAUTHORIZED       missing or invalid access token
    403 FORBIDDEN          role lacks the permission
    404 NOT_FOUND
    409 CONFLICT           unique name / slug already taken
    500 INTERNAL_ERROR     logged, generic message returned
    501 NOT_IMPLEMENTED    feature disabled by configuration

The news translation endpoint reports failures with its own code set
(``TranslationErrorCode``) and adds ``timestamp`` and ``request_id``.
"""

from __future__ import annotations

import datetime
import enum
import logging
import uuid
from typing import Any, Generic, TypeVar

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CODE_BY_STATUS = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    500: "INTERNAL_ERROR",
    501: "NOT_IMPLEMENTED",
}


# ---------------------------------------------------------------------------
# Envelope schemas
# ---------------------------------------------------------------------------


class ErrorBody(BaseModel):
    code: str
    message: str
    details: Any = None


class Envelope(BaseModel, Generic[T]):
    """Response wrapper used by every endpoint."""

    data: T | None = None
    error: ErrorBody | None = None


def ok(data: Any) -> dict:
    return {"data": data, "error": None}


def error_response(
    status_code: int, code: str, message: str, details: Any = None, **extra: Any
) -> JSONResponse:
    error = {"code": code, "message": message, "details": details, **extra}
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"data": None, "error": error}),
    )


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ApiError(Exception):
    """Raise from route code to return an enveloped error with a custom code."""

    def __init__(self, status_code: int, message: str, code: str | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code or _CODE_BY_STATUS.get(status_code, "ERROR")
        self.details = details

    def extra(self) -> dict:
        return {}


class TranslationErrorCode(str, enum.Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NEWS_NOT_FOUND = "NEWS_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    TRANSLATION_FAILED = "TRANSLATION_FAILED"
    DATABASE_ERROR = "DATABASE_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"


_TRANSLATION_STATUS = {
    TranslationErrorCode.UNAUTHORIZED: 401,
    TranslationErrorCode.FORBIDDEN: 403,
    TranslationErrorCode.NEWS_NOT_FOUND: 404,
    TranslationErrorCode.VALIDATION_ERROR: 400,
    TranslationErrorCode.TRANSLATION_FAILED: 500,
    TranslationErrorCode.DATABASE_ERROR: 500,
    TranslationErrorCode.RATE_LIMIT_EXCEEDED: 429,
}


class TranslationError(ApiError):
    def __init__(self, code: TranslationErrorCode, message: str, details: Any = None):
        super().__init__(_TRANSLATION_STATUS[code], message, code=code.value, details=details)
        self.timestamp = datetime.datetime.now(datetime.timezone.utc)
        self.request_id = str(uuid.uuid4())

    def extra(self) -> dict:
        return {"timestamp": self.timestamp.isoformat(), "request_id": self.request_id}


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc.status_code, exc.code, exc.message, exc.details, **exc.extra())


async def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if isinstance(exc.detail, str):
        message, details = exc.detail, None
    else:
        message, details = "Request failed", exc.detail
    code = _CODE_BY_STATUS.get(exc.status_code, "ERROR")
    return error_response(exc.status_code, code, message, details)


async def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return error_response(400, "VALIDATION_ERROR", "Invalid request", exc.errors())


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "INTERNAL_ERROR", "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
