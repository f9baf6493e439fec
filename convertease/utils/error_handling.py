"""
Centralized error handling for ConvertEase.

This module defines the error taxonomy shared by the proxy and the
orchestrator, the mapping from error codes to HTTP statuses, and the
helpers that turn errors into JSON responses.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import Messages

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for consistent error handling."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Provider errors
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    SERVICE_ERROR = "SERVICE_ERROR"
    TIMEOUT = "TIMEOUT"

    # Conversion-specific errors
    CONVERSION_NOT_SUPPORTED = "CONVERSION_NOT_SUPPORTED"
    SAME_FORMAT = "SAME_FORMAT"
    INVALID_FORMAT = "INVALID_FORMAT"
    INVALID_FILE = "INVALID_FILE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    MISSING_PARAMETER = "MISSING_PARAMETER"


class ErrorSeverity(str, Enum):
    """Error severity levels for logging."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


ERROR_STATUS_MAP: Dict[ErrorCode, int] = {
    # 4xx Client Errors
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.CONVERSION_NOT_SUPPORTED: 400,
    ErrorCode.SAME_FORMAT: 400,
    ErrorCode.INVALID_FORMAT: 400,
    ErrorCode.INVALID_FILE: 400,
    ErrorCode.MISSING_PARAMETER: 400,
    ErrorCode.METHOD_NOT_ALLOWED: 405,
    ErrorCode.FILE_TOO_LARGE: 400,

    # 5xx Server Errors. Every internal or upstream failure is reported as 500.
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.CONFIGURATION_ERROR: 500,
    ErrorCode.SERVICE_ERROR: 500,
    ErrorCode.SERVICE_UNAVAILABLE: 500,
    ErrorCode.TIMEOUT: 500,
}

ERROR_SEVERITY_MAP: Dict[ErrorCode, ErrorSeverity] = {
    ErrorCode.INTERNAL_ERROR: ErrorSeverity.CRITICAL,
    ErrorCode.CONFIGURATION_ERROR: ErrorSeverity.CRITICAL,
    ErrorCode.SERVICE_ERROR: ErrorSeverity.HIGH,
    ErrorCode.SERVICE_UNAVAILABLE: ErrorSeverity.HIGH,
    ErrorCode.TIMEOUT: ErrorSeverity.MEDIUM,
    ErrorCode.INVALID_REQUEST: ErrorSeverity.MEDIUM,
    ErrorCode.METHOD_NOT_ALLOWED: ErrorSeverity.LOW,
    ErrorCode.CONVERSION_NOT_SUPPORTED: ErrorSeverity.LOW,
    ErrorCode.SAME_FORMAT: ErrorSeverity.LOW,
    ErrorCode.INVALID_FORMAT: ErrorSeverity.LOW,
    ErrorCode.INVALID_FILE: ErrorSeverity.LOW,
    ErrorCode.MISSING_PARAMETER: ErrorSeverity.LOW,
    ErrorCode.FILE_TOO_LARGE: ErrorSeverity.LOW,
}


# ===== ERROR TAXONOMY =====

class ConversionError(Exception):
    """Base class for every failure surfaced to the user."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, error_code: Optional[ErrorCode] = None, **details: Any):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        self.details = details

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_MAP.get(self.error_code, 500)


class ValidationError(ConversionError):
    """Bad or missing fields, unsupported pair, identical formats, oversized file."""
    error_code = ErrorCode.INVALID_REQUEST


class NetworkError(ConversionError):
    """Transport failure reaching the proxy or the provider."""
    error_code = ErrorCode.SERVICE_UNAVAILABLE


class RemoteError(ConversionError):
    """The provider or the proxy answered with a non-success status."""
    error_code = ErrorCode.SERVICE_ERROR

    def __init__(self, message: str, upstream_status: Optional[int] = None, **details: Any):
        super().__init__(message, **details)
        self.upstream_status = upstream_status


class ConversionTimeoutError(ConversionError, TimeoutError):
    """Polling exhausted its attempt budget."""
    error_code = ErrorCode.TIMEOUT


class ConfigurationError(ConversionError):
    """Provider credential missing or rejected."""
    error_code = ErrorCode.CONFIGURATION_ERROR


# ===== RESPONSES =====

def create_error_response(
    error_code: ErrorCode,
    message: str,
    status_code: Optional[int] = None,
    **kwargs: Any
) -> JSONResponse:
    """
    Create a consistent JSON error response.

    Args:
        error_code: Error code from the ErrorCode enum
        message: Human-readable message shown to the user (truncated to 1000 chars)
        status_code: Override the default HTTP status code
        **kwargs: Additional fields to include in the error response

    Returns:
        JSONResponse with standardized error format
    """
    if status_code is None:
        status_code = ERROR_STATUS_MAP.get(error_code, 500)
    severity = ERROR_SEVERITY_MAP.get(error_code, ErrorSeverity.MEDIUM)

    error_data: Dict[str, Any] = {
        "success": False,
        "error": str(message)[:1000],
        "code": error_code.value,
        "status_code": status_code,
        "severity": severity.value,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
    error_data.update(kwargs)

    log_message = f"Error response: {error_data}"
    if severity == ErrorSeverity.CRITICAL:
        logger.critical(log_message)
    elif severity == ErrorSeverity.HIGH:
        logger.error(log_message)
    elif severity == ErrorSeverity.MEDIUM:
        logger.warning(log_message)
    else:
        logger.info(log_message)

    return JSONResponse(status_code=status_code, content=error_data)


def handle_conversion_error(error: ConversionError) -> JSONResponse:
    """Turn a ConversionError into its JSON response."""
    extra = dict(error.details)
    if isinstance(error, RemoteError) and error.upstream_status is not None:
        extra["upstream_status"] = error.upstream_status
    return create_error_response(error.error_code, error.message, **extra)


async def conversion_error_handler(request: Request, exc: ConversionError) -> JSONResponse:
    """FastAPI exception handler for ConversionError."""
    return handle_conversion_error(exc)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Give routing 405s the standard error body; other HTTP errors keep FastAPI's default."""
    if exc.status_code != 405:
        return await http_exception_handler(request, exc)
    response = create_error_response(ErrorCode.METHOD_NOT_ALLOWED, Messages.METHOD_NOT_ALLOWED)
    response.headers["Allow"] = (exc.headers or {}).get("Allow", "POST, OPTIONS")
    return response
