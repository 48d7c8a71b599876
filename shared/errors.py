"""
Unified Error Handling System for API and Shared Components.

This module provides standardized error handling infrastructure for FastAPI
including error categories, Pydantic response models, HTTP status code mapping,
and centralized error logging with structured context.

Usage:
    from shared.errors import ErrorCategory, APIErrorResponse, ErrorLogger

    logger = ErrorLogger()
    log_ref = logger.log_error(
        error=exc,
        category=ErrorCategory.DATABASE_ERROR,
        context={"endpoint": "/api/bookings"}
    )
"""

import logging
import uuid
from datetime import datetime, UTC
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Categories of errors for proper handling and logging.

    USER-FACING ERRORS (explained to user):
    - VALIDATION_ERROR: Invalid input (form fields, CSV rows, dates)
    - NOT_FOUND_ERROR: Requested brand/make/motorcycle/booking not found
    - PERMISSION_ERROR: Operation not allowed for current role or owner
    - CONFLICT_ERROR: Duplicate slug, overlapping booking, highlight limit
    - RATE_LIMIT_ERROR: Too many uploads or login attempts

    SYSTEM ERRORS (logged internally, generic message to user):
    - DATABASE_ERROR: PostgreSQL/SQLAlchemy errors
    - STORAGE_ERROR: Image gallery filesystem failures
    - BACKUP_ERROR: pg_dump failures
    - UNEXPECTED_ERROR: Unknown/unhandled exceptions
    """
    # User-facing errors
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND_ERROR = "not_found_error"
    PERMISSION_ERROR = "permission_error"
    CONFLICT_ERROR = "conflict_error"
    RATE_LIMIT_ERROR = "rate_limit_error"

    # System errors
    DATABASE_ERROR = "database_error"
    STORAGE_ERROR = "storage_error"
    BACKUP_ERROR = "backup_error"
    UNEXPECTED_ERROR = "unexpected_error"


SYSTEM_CATEGORIES = frozenset({
    ErrorCategory.DATABASE_ERROR,
    ErrorCategory.STORAGE_ERROR,
    ErrorCategory.BACKUP_ERROR,
    ErrorCategory.UNEXPECTED_ERROR,
})


class APIErrorResponse(BaseModel):
    """Standardized error response format for API endpoints."""
    success: bool = Field(default=False, description="Always False for errors")
    error_category: ErrorCategory = Field(description="Error category for classification")
    error_code: str = Field(description="Machine-readable error code")
    message: str = Field(description="User-facing message (Spanish)")
    guidance: str | None = Field(default=None, description="Optional guidance for resolution")
    log_ref: str | None = Field(default=None, description="Reference ID for log correlation")
    context: dict[str, Any] | None = Field(default=None, description="Additional context for debugging")


class ErrorLogger:
    """Centralized error logging with structured context.

    System categories are logged at ERROR with stack traces,
    user-facing categories at WARNING.
    """

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.ErrorLogger")

    def _generate_log_ref(self) -> str:
        """Generate unique reference ID for error correlation."""
        return f"err_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"

    def log_error(
        self,
        error: Exception,
        category: ErrorCategory,
        *,
        endpoint: str | None = None,
        method: str | None = None,
        user_id: str | None = None,
        context: dict[str, Any] | None = None,
        exc_info: bool = True,
    ) -> str:
        """Log error with full structured context.

        Args:
            error: The exception that occurred
            category: Error category for classification
            endpoint: Optional endpoint path where error occurred
            method: Optional HTTP method (GET, POST, etc.)
            user_id: Optional user identifier
            context: Additional context data
            exc_info: Whether to include stack trace

        Returns:
            log_ref: Unique reference ID for this error instance
        """
        log_ref = self._generate_log_ref()

        log_data = {
            "log_ref": log_ref,
            "error_category": category.value,
            "error_type": type(error).__name__,
            "error_message": str(error),
            "endpoint": endpoint,
            "method": method,
            "context": context or {},
        }
        if user_id:
            log_data["user_id"] = user_id

        if category in SYSTEM_CATEGORIES:
            self.logger.error(
                f"[{log_ref}] {category.value}: {error}",
                extra=log_data,
                exc_info=exc_info,
            )
        else:
            self.logger.warning(
                f"[{log_ref}] {category.value}: {error}",
                extra=log_data,
                exc_info=exc_info,
            )

        return log_ref

    def build_guidance(self, category: ErrorCategory) -> str | None:
        """Build user guidance based on error category."""
        return GUIDANCE.get(category)


GUIDANCE: dict[ErrorCategory, str] = {
    ErrorCategory.VALIDATION_ERROR: "Verifique los datos proporcionados y corrija los errores.",
    ErrorCategory.NOT_FOUND_ERROR: "Verifique que el recurso solicitado existe.",
    ErrorCategory.PERMISSION_ERROR: "No tiene permisos para realizar esta operación. Contacte al administrador si necesita acceso.",
    ErrorCategory.CONFLICT_ERROR: "La operación entra en conflicto con datos existentes. Revise y vuelva a intentarlo.",
    ErrorCategory.RATE_LIMIT_ERROR: "Espere un momento antes de volver a intentarlo.",
    ErrorCategory.DATABASE_ERROR: "Hubo un problema técnico con la base de datos. Por favor, intente nuevamente en unos momentos.",
    ErrorCategory.STORAGE_ERROR: "No se pudo acceder al almacenamiento de imágenes. Intente nuevamente.",
    ErrorCategory.BACKUP_ERROR: "No se pudo generar el respaldo. Contacte al equipo técnico.",
    ErrorCategory.UNEXPECTED_ERROR: "Hubo un error inesperado. Por favor, intente nuevamente o contacte al soporte técnico.",
}


# Global error logger instance
_error_logger = ErrorLogger()


def get_error_logger() -> ErrorLogger:
    """Get the global error logger instance."""
    return _error_logger


# HTTP status code to ErrorCategory mapping
STATUS_TO_CATEGORY: dict[int, ErrorCategory] = {
    400: ErrorCategory.VALIDATION_ERROR,
    401: ErrorCategory.PERMISSION_ERROR,
    403: ErrorCategory.PERMISSION_ERROR,
    404: ErrorCategory.NOT_FOUND_ERROR,
    409: ErrorCategory.CONFLICT_ERROR,
    413: ErrorCategory.VALIDATION_ERROR,
    422: ErrorCategory.VALIDATION_ERROR,
    429: ErrorCategory.RATE_LIMIT_ERROR,
    500: ErrorCategory.UNEXPECTED_ERROR,
    502: ErrorCategory.BACKUP_ERROR,
    503: ErrorCategory.DATABASE_ERROR,
}


def map_status_to_category(status_code: int) -> ErrorCategory:
    """Map HTTP status code to ErrorCategory."""
    return STATUS_TO_CATEGORY.get(status_code, ErrorCategory.UNEXPECTED_ERROR)


# Spanish translations for English messages raised by FastAPI/Starlette
# and by the authentication helpers
TRANSLATIONS: dict[str, str] = {
    # Authentication & Authorization
    "Not authenticated": "No autorizado. Por favor, inicie sesión.",
    "Missing authentication token": "No autorizado. Por favor, inicie sesión.",
    "Unauthorized": "No autorizado. Por favor, inicie sesión.",
    "Forbidden": "Acceso prohibido. No tiene permisos para esta operación.",
    "Insufficient permissions": "Acceso prohibido. No tiene permisos para esta operación.",
    "Invalid credentials": "Credenciales inválidas. Verifique su correo y contraseña.",
    "Token has been revoked": "Su sesión ha sido cerrada. Por favor, inicie sesión nuevamente.",
    "Invalid or expired token": "Su sesión ha expirado. Por favor, inicie sesión nuevamente.",
    "User account is disabled": "Su cuenta está desactivada. Contacte al administrador.",

    # Validation
    "Validation error": "Error de validación. Verifique los datos proporcionados.",
    "Method Not Allowed": "Método no permitido.",

    # Not Found
    "Not Found": "Recurso no encontrado.",
    "Not found": "Recurso no encontrado.",

    # Generic
    "Internal server error": "Error interno del servidor. Intente nuevamente.",
}


def translate_to_spanish(message: str) -> str:
    """Translate common English error messages to Spanish.

    Args:
        message: Error message, usually already Spanish

    Returns:
        Translated message in Spanish (or original if no translation found)
    """
    if message in TRANSLATIONS:
        return TRANSLATIONS[message]

    message_lower = message.lower()
    for eng, spa in TRANSLATIONS.items():
        if message_lower.startswith(eng.lower()):
            return spa

    return message
