"""Error taxonomy of the consistency engine and its HTTP mapping."""

from __future__ import annotations

import logging
from contextvars import Token
from http import HTTPStatus
from typing import Any, Mapping

from fastapi import FastAPI, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from .core.context import REQUEST_ID_HEADER, bind_request_id, reset_request_id
from .schemas.system import ErrorResponse

logger = logging.getLogger(__name__)


class ApplicationError(Exception):
    """Base class for errors the engine reports to its callers."""

    default_message = "Application error."
    default_code = "application_error"
    default_status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: Any | None = None,
    ) -> None:
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        self.detail = message
        self.code = code or self.default_code
        self.status_code = status_code or self.default_status_code
        self.details = details


class ValidationError(ApplicationError):
    """Malformed, missing or contradictory input."""

    default_message = "Validation failed."
    default_code = "validation_error"
    default_status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(ApplicationError):
    """The entity addressed by the operation does not exist."""

    default_message = "Resource not found."
    default_code = "not_found"
    default_status_code = status.HTTP_404_NOT_FOUND


class InvalidReferenceError(ApplicationError):
    """A foreign id carried by the payload does not resolve."""

    default_message = "Referenced entity not found."
    default_code = "invalid_reference"
    default_status_code = status.HTTP_400_BAD_REQUEST


class ImmutableError(ApplicationError):
    """A mutation was attempted on a completed task."""

    default_message = "Completed tasks cannot be modified."
    default_code = "immutable"
    default_status_code = status.HTTP_409_CONFLICT


class ConflictError(ApplicationError):
    """A uniqueness constraint would be violated."""

    default_message = "Resource already exists."
    default_code = "conflict"
    default_status_code = status.HTTP_409_CONFLICT


class StorageError(ApplicationError):
    """Opaque failure of the underlying document store."""

    default_message = "Storage operation failed."
    default_code = "storage_error"
    default_status_code = status.HTTP_503_SERVICE_UNAVAILABLE


_HTTP_STATUS_CODE_MAP: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "bad_request",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_409_CONFLICT: "conflict",
}


def _bind_request_context(request: Request) -> Token[str] | None:
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        return None
    return bind_request_id(request_id)


def _reset_request_context(token: Token[str] | None) -> None:
    if token is not None:
        reset_request_id(token)


def _merge_details_with_request(request: Request, details: Any | None) -> Any | None:
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        return details
    if details is None:
        return {"request_id": request_id}
    if isinstance(details, dict):
        return {"request_id": request_id, **details}
    return {"request_id": request_id, "detail": details}


def _error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: Any | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    payload = ErrorResponse(
        code=code,
        message=message,
        details=_merge_details_with_request(request, details),
    )
    response = JSONResponse(status_code=status_code, content=payload.model_dump(mode="json"))
    if headers:
        response.headers.update(headers)
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
    return response


def _http_exception_details(status_code: int, detail: Any) -> tuple[str, Any | None]:
    if isinstance(detail, str):
        return detail, None
    try:
        status_phrase = HTTPStatus(status_code).phrase
    except ValueError:
        status_phrase = "Error"
    if detail is None:
        return status_phrase, None
    if isinstance(detail, list):
        return status_phrase, {"errors": detail}
    return status_phrase, detail


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with the provided FastAPI app."""

    @app.exception_handler(ApplicationError)
    async def _handle_application_error(
        request: Request,
        exc: ApplicationError,
    ) -> JSONResponse:
        token = _bind_request_context(request)
        try:
            if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
                logger.error(
                    "Application error encountered",
                    extra={"code": exc.code, "status_code": exc.status_code},
                    exc_info=exc.__cause__,
                )
            else:
                logger.warning(
                    "Application error encountered",
                    extra={"code": exc.code, "status_code": exc.status_code},
                )
            return _error_response(
                request,
                status_code=exc.status_code,
                code=exc.code,
                message=exc.message,
                details=exc.details,
            )
        finally:
            _reset_request_context(token)

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation_error(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        token = _bind_request_context(request)
        try:
            errors = jsonable_encoder(exc.errors())
            logger.warning("Request validation failed", extra={"errors": errors})
            return _error_response(
                request,
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                code="validation_error",
                message="Request validation failed.",
                details={"errors": errors},
            )
        finally:
            _reset_request_context(token)

    @app.exception_handler(IntegrityError)
    async def _handle_integrity_error(
        request: Request,
        exc: IntegrityError,
    ) -> JSONResponse:
        token = _bind_request_context(request)
        try:
            logger.error("Database integrity error encountered.", exc_info=exc)
            return _error_response(
                request,
                status_code=status.HTTP_409_CONFLICT,
                code="conflict",
                message="Database integrity violation.",
            )
        finally:
            _reset_request_context(token)

    @app.exception_handler(StarletteHTTPException)
    async def _handle_http_exception(
        request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
        token = _bind_request_context(request)
        try:
            code = _HTTP_STATUS_CODE_MAP.get(exc.status_code, "http_error")
            message, extra_details = _http_exception_details(exc.status_code, exc.detail)
            logger.warning(
                "HTTP exception raised",
                extra={"code": code, "status_code": exc.status_code, "path": str(request.url.path)},
            )
            return _error_response(
                request,
                status_code=exc.status_code,
                code=code,
                message=message,
                details=extra_details,
                headers=exc.headers or None,
            )
        finally:
            _reset_request_context(token)

    @app.exception_handler(Exception)
    async def _handle_unhandled_exception(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        token = _bind_request_context(request)
        try:
            logger.exception("Unhandled application error.")
            return _error_response(
                request,
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                code="server_error",
                message="Internal server error.",
            )
        finally:
            _reset_request_context(token)


__all__ = [
    "ApplicationError",
    "ConflictError",
    "ImmutableError",
    "InvalidReferenceError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
    "register_exception_handlers",
]
