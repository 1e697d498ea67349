"""
Error Handling for the HTTP Layer

This module maps the domain exception hierarchy onto HTTP responses:
1. Each ``ErrorCode`` has a fixed status code
2. Domain errors render as ``{"error": {"code", "message", "details"}}``
3. Unexpected exceptions are logged with full context and returned opaque
"""

from typing import Dict

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lms_backend.common.exceptions import ErrorCode, ErrorInfo, LMSError
from lms_backend.common.logger import app_logger

logger = app_logger.getChild("error_handling")

STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ALREADY_SUBMITTED: status.HTTP_409_CONFLICT,
    ErrorCode.INELIGIBLE: status.HTTP_409_CONFLICT,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.DATABASE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.CONFIGURATION_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

OPAQUE_CODES = {
    ErrorCode.DATABASE_ERROR,
    ErrorCode.CONFIGURATION_ERROR,
    ErrorCode.INTERNAL_ERROR,
}


def status_for(error: LMSError) -> int:
    """Return the HTTP status code for a domain error."""
    return STATUS_BY_CODE.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def _internal_error_body() -> dict:
    info = ErrorInfo(code=ErrorCode.INTERNAL_ERROR, message="An internal server error occurred.")
    return {"error": info.model_dump(mode="json", exclude={"timestamp"})}


async def lms_error_handler(request: Request, exc: LMSError) -> JSONResponse:
    """Render a domain error, hiding internals for server-side failures."""
    status_code = status_for(exc)
    context = {"path": request.url.path, "method": request.method, "code": exc.code.value}

    if exc.code in OPAQUE_CODES:
        logger.error(f"Request failed: {exc}", extra={"data": context}, exc_info=exc)
        return JSONResponse(status_code=status_code, content=_internal_error_body())

    logger.info(f"Request rejected: {exc.message}", extra={"data": context})
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log an unexpected exception and return an opaque 500."""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {exc}",
        extra={"data": {"path": request.url.path, "method": request.method}},
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_internal_error_body()
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed request bodies and parameters as validation errors."""
    info = ErrorInfo(
        code=ErrorCode.VALIDATION_ERROR,
        message="Invalid request",
        details={"errors": [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
            for error in exc.errors()
        ]},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": info.model_dump(mode="json", exclude={"timestamp"})}
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the domain and fallback exception handlers to ``app``."""
    app.add_exception_handler(LMSError, lms_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
