"""Error envelope and the single exception-to-response translator."""

from __future__ import annotations

from datetime import UTC, datetime
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

import structlog
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from assetman.exceptions import AssetmanError, ValidationFailedError

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = structlog.get_logger(__name__)

_LOCATION_PREFIXES = frozenset({"body", "query", "path", "header", "cookie"})
_VALUE_ERROR_PREFIX = "Value error, "


class ApiValidationError(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field: str
    message: str
    rejected_value: Any = Field(default=None, alias="rejectedValue")


class ApiErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    status: int
    error: str
    message: str | None
    path: str | None
    validation_errors: list[ApiValidationError] | None = Field(
        default=None, alias="validationErrors"
    )


def error_response(
    status: int,
    message: str | None,
    path: str | None,
    validation_errors: list[ApiValidationError] | None = None,
) -> JSONResponse:
    body = ApiErrorResponse(
        status=status,
        error=HTTPStatus(status).phrase,
        message=message,
        path=path,
        validation_errors=validation_errors,
    )
    return JSONResponse(
        status_code=status,
        content=jsonable_encoder(body.model_dump(by_alias=True, exclude_none=True)),
    )


def _field_name(loc: tuple[Any, ...] | list[Any]) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(parts) or "body"


def _field_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    errors: list[dict[str, Any]] = []
    for err in exc.errors():
        message = str(err.get("msg", "Invalid value"))
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX) :]
        rejected = None if err.get("type") == "missing" else err.get("input")
        errors.append(
            {
                "field": _field_name(err.get("loc", ())),
                "message": message,
                "rejectedValue": jsonable_encoder(rejected),
            }
        )
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    """Map every failure kind onto the JSON error envelope."""

    @app.exception_handler(AssetmanError)
    async def assetman_error_handler(request: Request, exc: AssetmanError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=exc.message)
            return error_response(500, "Internal server error", request.url.path)
        if isinstance(exc, ValidationFailedError):
            return error_response(
                exc.status_code,
                exc.message,
                request.url.path,
                [ApiValidationError.model_validate(e) for e in exc.errors] or None,
            )
        return error_response(exc.status_code, exc.message, request.url.path)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        if any(err.get("type") == "json_invalid" for err in exc.errors()):
            failure = ValidationFailedError([], "Malformed JSON request")
        else:
            failure = ValidationFailedError(_field_errors(exc))
        return await assetman_error_handler(request, failure)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else None
        return error_response(exc.status_code, message, request.url.path)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_error", path=request.url.path)
        return error_response(500, "Internal server error", request.url.path)
