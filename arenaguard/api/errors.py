"""
ArenaGuard - API Error System
=============================

Centralized error codes and exception handling for consistent API responses.

DESIGN:
    Service errors carry a stable string code (ArenaGuardError.code). Each
    of those codes has a twin in ErrorCode, so the exception handler maps a
    domain error to its HTTP status by value alone. Codes only the HTTP
    layer can produce (missing token, server error) live here too.
"""

from enum import Enum
from typing import Any, Dict, Optional

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_410_GONE,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_504_GATEWAY_TIMEOUT,
)

from arenaguard.core.errors import ArenaGuardError


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCode(str, Enum):
    """
    Centralized error codes for the API.

    Categories:
    - AUTH: Missing or invalid bearer token
    - UNAUTHORIZED / VALIDATION / NOT_FOUND: Service-layer rejections
    - INVITATION: Redemption failures
    - TICKET: Ticket state errors
    - CONFLICT: Optimistic concurrency exhausted
    - SERVER: Server-side errors
    """

    # Authentication (401)
    AUTH_MISSING_TOKEN = "AUTH_MISSING_TOKEN"
    AUTH_INVALID_TOKEN = "AUTH_INVALID_TOKEN"

    # Service layer
    UNAUTHORIZED = "UNAUTHORIZED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"

    # Invitations
    INVITATION_ERROR = "INVITATION_ERROR"
    INVITATION_INVALID = "INVITATION_INVALID"
    INVITATION_EXPIRED = "INVITATION_EXPIRED"
    INVITATION_EXHAUSTED = "INVITATION_EXHAUSTED"
    INVITATION_INACTIVE = "INVITATION_INACTIVE"

    # Tickets
    TICKET_CLOSED = "TICKET_CLOSED"

    # Concurrency
    CONFLICT = "CONFLICT"
    VERSION_CONFLICT = "VERSION_CONFLICT"
    REDEEM_CONFLICT = "REDEEM_CONFLICT"
    TIMEOUT = "TIMEOUT"

    # Server
    SERVER_ERROR = "SERVER_ERROR"


# =============================================================================
# Error Messages
# =============================================================================

ERROR_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.AUTH_MISSING_TOKEN: "Authentication required",
    ErrorCode.AUTH_INVALID_TOKEN: "Invalid or expired token",
    ErrorCode.UNAUTHORIZED: "You do not have permission to perform this action",
    ErrorCode.VALIDATION_ERROR: "Request validation failed",
    ErrorCode.NOT_FOUND: "Resource not found",
    ErrorCode.INVITATION_ERROR: "Invitation cannot be used",
    ErrorCode.INVITATION_INVALID: "Invitation code is invalid",
    ErrorCode.INVITATION_EXPIRED: "Invitation has expired",
    ErrorCode.INVITATION_EXHAUSTED: "Invitation has no uses left",
    ErrorCode.INVITATION_INACTIVE: "Invitation has been deactivated",
    ErrorCode.TICKET_CLOSED: "This ticket is closed",
    ErrorCode.CONFLICT: "The resource was modified concurrently, please retry",
    ErrorCode.VERSION_CONFLICT: "The resource was modified concurrently, please retry",
    ErrorCode.REDEEM_CONFLICT: "Too many concurrent redemptions, please retry",
    ErrorCode.TIMEOUT: "The operation did not complete in time",
    ErrorCode.SERVER_ERROR: "An internal server error occurred",
}


# =============================================================================
# Default Status Codes
# =============================================================================

ERROR_STATUS_CODES: Dict[ErrorCode, int] = {
    ErrorCode.AUTH_MISSING_TOKEN: HTTP_401_UNAUTHORIZED,
    ErrorCode.AUTH_INVALID_TOKEN: HTTP_401_UNAUTHORIZED,
    ErrorCode.UNAUTHORIZED: HTTP_403_FORBIDDEN,
    ErrorCode.VALIDATION_ERROR: HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.INVITATION_ERROR: HTTP_400_BAD_REQUEST,
    ErrorCode.INVITATION_INVALID: HTTP_400_BAD_REQUEST,
    ErrorCode.INVITATION_EXPIRED: HTTP_410_GONE,
    ErrorCode.INVITATION_EXHAUSTED: HTTP_410_GONE,
    ErrorCode.INVITATION_INACTIVE: HTTP_410_GONE,
    ErrorCode.TICKET_CLOSED: HTTP_409_CONFLICT,
    ErrorCode.CONFLICT: HTTP_409_CONFLICT,
    ErrorCode.VERSION_CONFLICT: HTTP_409_CONFLICT,
    ErrorCode.REDEEM_CONFLICT: HTTP_409_CONFLICT,
    ErrorCode.TIMEOUT: HTTP_504_GATEWAY_TIMEOUT,
    ErrorCode.SERVER_ERROR: HTTP_500_INTERNAL_SERVER_ERROR,
}


# =============================================================================
# API Exception
# =============================================================================

class APIError(HTTPException):
    """
    Custom API exception with error codes.

    Usage:
        raise APIError(ErrorCode.AUTH_MISSING_TOKEN, headers={"WWW-Authenticate": "Bearer"})
        raise APIError(ErrorCode.VALIDATION_ERROR, details={"field": "code"})
    """

    def __init__(
        self,
        code: ErrorCode,
        status_code: Optional[int] = None,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.error_code = code
        self.error_message = message or ERROR_MESSAGES.get(code, "An error occurred")
        self.error_details = details

        if status_code is None:
            status_code = ERROR_STATUS_CODES.get(code, HTTP_400_BAD_REQUEST)

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error_code": code.value,
                "message": self.error_message,
                "details": details,
            },
            headers=headers,
        )


# =============================================================================
# Helper Functions
# =============================================================================

def error_response(
    code: ErrorCode,
    status_code: Optional[int] = None,
    message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """
    Create a JSON error response without raising an exception.

    Useful for returning errors in exception handlers.
    """
    if status_code is None:
        status_code = ERROR_STATUS_CODES.get(code, HTTP_400_BAD_REQUEST)

    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error_code": code.value,
            "message": message or ERROR_MESSAGES.get(code, "An error occurred"),
            "details": details,
        },
        headers=headers,
    )


def code_for(exc: ArenaGuardError) -> ErrorCode:
    """ErrorCode twin of a service error; SERVER_ERROR for unknown codes."""
    try:
        return ErrorCode(exc.code)
    except ValueError:
        return ErrorCode.SERVER_ERROR


def domain_error_response(exc: ArenaGuardError) -> JSONResponse:
    code = code_for(exc)
    return error_response(code, message=exc.message, details=exc.details or None)


__all__ = [
    "ErrorCode",
    "ERROR_MESSAGES",
    "ERROR_STATUS_CODES",
    "APIError",
    "error_response",
    "code_for",
    "domain_error_response",
]
