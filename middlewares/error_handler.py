import logging
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from schemas.common import ErrorDetail, ErrorResponse
from utils.errors import AppError, RateLimitError

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {401: "UNAUTHORIZED", 403: "FORBIDDEN", 404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED"}


def _latency_ms(request: Request) -> Optional[int]:
    started_at = getattr(request.state, "started_at", None)
    if started_at is None:
        return None
    return int((time.perf_counter() - started_at) * 1000)


def _error_response(request: Request, status_code: int, detail: ErrorDetail, headers=None) -> JSONResponse:
    body = ErrorResponse(error=detail, latency_ms=_latency_ms(request))
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body, exclude_none=True),
        headers=headers,
    )


def add_error_handlers(app: FastAPI):
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
        detail = ErrorDetail(
            code=exc.code,
            message=exc.message,
            details=exc.details,
            reset_time=exc.reset_time if isinstance(exc, RateLimitError) else None,
        )
        return _error_response(request, exc.status_code, detail, headers=getattr(exc, "headers", None))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        detail = ErrorDetail(code=HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"), message=str(exc.detail))
        return _error_response(request, exc.status_code, detail, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {"loc": list(err.get("loc", ())), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        return _error_response(
            request, 400, ErrorDetail(code="VALIDATION_ERROR", message="Invalid request", details=details)
        )

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception(f"store error on {request.method} {request.url.path}", exc_info=exc)
        return _error_response(
            request, 500, ErrorDetail(code="INTERNAL_ERROR", message="Failed to process the request. Please try again later.")
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"unhandled error on {request.method} {request.url.path}", exc_info=exc)
        return _error_response(
            request, 500, ErrorDetail(code="INTERNAL_ERROR", message="Internal server error")
        )
