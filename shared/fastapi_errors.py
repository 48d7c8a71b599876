"""
FastAPI Error Handlers for Unified Error Handling System.

This module provides exception handlers for FastAPI applications to convert
exceptions into standardized APIErrorResponse format with proper HTTP status
codes and Spanish user messages.

Usage:
    from fastapi import FastAPI
    from shared.fastapi_errors import register_error_handlers

    app = FastAPI()
    register_error_handlers(app)
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.config import get_settings
from shared.errors import (
    APIErrorResponse,
    ErrorCategory,
    get_error_logger,
    map_status_to_category,
    translate_to_spanish,
)


logger = logging.getLogger(__name__)


def _with_cors_headers(request: Request, response: JSONResponse) -> JSONResponse:
    """Copy CORS headers onto error responses built outside the middleware."""
    origins = get_settings().CORS_ORIGINS.split(",")
    origin = request.headers.get("origin", "")
    if origin and (origin in origins or "*" in origins):
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
    return response


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Convert HTTPException to standardized APIErrorResponse.

    Args:
        request: FastAPI request object
        exc: HTTPException that was raised

    Returns:
        JSONResponse with APIErrorResponse body
    """
    error_logger = get_error_logger()
    category = map_status_to_category(exc.status_code)

    context: dict[str, Any] = {
        "path": str(request.url.path),
        "method": request.method,
        "status_code": exc.status_code,
    }
    if request.url.query:
        context["query_params"] = str(request.url.query)

    log_ref = error_logger.log_error(
        error=exc,
        category=category,
        endpoint=str(request.url.path),
        method=request.method,
        context=context,
        exc_info=False,  # HTTPException is expected, no stack trace needed
    )

    response = APIErrorResponse(
        success=False,
        error_category=category,
        error_code=f"HTTP_{exc.status_code}",
        message=translate_to_spanish(str(exc.detail)),
        guidance=error_logger.build_guidance(category),
        log_ref=log_ref,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=response.model_dump(),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: ValidationError | RequestValidationError
) -> JSONResponse:
    """Convert request/pydantic validation errors to a 400 APIErrorResponse.

    Args:
        request: FastAPI request object
        exc: Validation error raised while parsing the request or a model

    Returns:
        JSONResponse with APIErrorResponse body and 400 status
    """
    error_logger = get_error_logger()
    errors = jsonable_encoder(exc.errors())

    log_ref = error_logger.log_error(
        error=exc,
        category=ErrorCategory.VALIDATION_ERROR,
        endpoint=str(request.url.path),
        method=request.method,
        context={"validation_errors": errors},
        exc_info=False,
    )

    if len(errors) == 1:
        error_detail = errors[0]
        field = ".".join(str(loc) for loc in error_detail["loc"])
        message = f"Error de validación en '{field}': {error_detail['msg']}"
    else:
        message = f"Errores de validación en {len(errors)} campos. Verifique los datos proporcionados."

    response = APIErrorResponse(
        success=False,
        error_category=ErrorCategory.VALIDATION_ERROR,
        error_code="VALIDATION_ERROR",
        message=message,
        guidance="Verifique los datos proporcionados y corrija los errores de validación.",
        log_ref=log_ref,
        context={"validation_errors": errors},
    )

    return JSONResponse(status_code=400, content=response.model_dump())


async def integrity_exception_handler(
    request: Request, exc: IntegrityError
) -> JSONResponse:
    """Unique/foreign-key violations that slipped past service checks become 409."""
    error_logger = get_error_logger()
    log_ref = error_logger.log_error(
        error=exc,
        category=ErrorCategory.CONFLICT_ERROR,
        endpoint=str(request.url.path),
        method=request.method,
        exc_info=False,
    )

    response = APIErrorResponse(
        success=False,
        error_category=ErrorCategory.CONFLICT_ERROR,
        error_code="INTEGRITY_ERROR",
        message="El registro entra en conflicto con datos existentes.",
        guidance=error_logger.build_guidance(ErrorCategory.CONFLICT_ERROR),
        log_ref=log_ref,
    )

    return _with_cors_headers(
        request, JSONResponse(status_code=409, content=response.model_dump())
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Convert unhandled exceptions to a generic 500 APIErrorResponse.

    The response never leaks internal details; the log_ref ties it to the
    stack trace in the logs.
    """
    error_logger = get_error_logger()

    log_ref = error_logger.log_error(
        error=exc,
        category=ErrorCategory.UNEXPECTED_ERROR,
        endpoint=str(request.url.path),
        method=request.method,
        context={"exception_type": type(exc).__name__},
        exc_info=True,
    )

    response = APIErrorResponse(
        success=False,
        error_category=ErrorCategory.UNEXPECTED_ERROR,
        error_code="INTERNAL_SERVER_ERROR",
        message="Error interno del servidor. Por favor, intente nuevamente.",
        guidance="Si el problema persiste, contacte al soporte técnico.",
        log_ref=log_ref,
    )

    return _with_cors_headers(
        request, JSONResponse(status_code=500, content=response.model_dump())
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register custom error handlers with FastAPI app.

    Registers handlers for:
    - HTTPException (400, 401, 403, 404, 409, 429...)
    - RequestValidationError / ValidationError (returned as 400)
    - IntegrityError (returned as 409)
    - Exception (all unhandled exceptions)
    """
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Registered unified error handlers for FastAPI")
