"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict, Iterable, Optional
from backend.app.core.observability import correlation_id_for

logger = logging.getLogger("forwarding.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class UnauthorizedActorError(AppException):
    """Raised when the actor's role is unknown or the order is outside the actor's scope."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None, error_code: str = "ERR_NOT_FOUND_001"):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class OrderNotFoundError(ResourceNotFoundError):
    """Raised when an order id does not resolve to an active order."""

    def __init__(self, order_id: Any = None):
        super().__init__("Order", order_id)


class ScanOrderNotFoundError(ResourceNotFoundError):
    """Raised after an unresolved scan has been logged to the audit trail."""

    def __init__(self, barcode_value: str, history_entry_id: Optional[int] = None):
        super().__init__("Order", barcode_value, error_code="ERR_SCAN_001")
        self.message = f"Package {barcode_value} scanned but no matching order was found"
        self.details.update({
            "barcode_value": barcode_value,
            "history_entry_id": history_entry_id,
        })


class InvalidStatusError(AppException):
    """Raised when a requested status is not part of the order lifecycle."""

    def __init__(self, requested_status: Any):
        super().__init__(
            message=f"'{requested_status}' is not a valid order status",
            error_code="ERR_STATUS_001",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"requested_status": requested_status}
        )


class IllegalTransitionError(AppException):
    """Raised when a transition is not allowed for this actor from the current status."""

    def __init__(
        self,
        current_status: str,
        attempted_status: str,
        role: Optional[str],
        allowed: Iterable[str] = (),
    ):
        allowed = sorted(allowed)
        message = f"Cannot change status from {current_status} to {attempted_status}"
        if role:
            message = f"{message} as {role}"
        super().__init__(
            message=message,
            error_code="ERR_TRANSITION_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={
                "current_status": current_status,
                "attempted_status": attempted_status,
                "role": role,
                "allowed_statuses": allowed,
            }
        )


class TransitionConflictError(AppException):
    """Raised when the order changed between read and write."""

    def __init__(self, order_id: str, expected_status: str, attempted_status: str):
        super().__init__(
            message="Order was updated by another request, reload and try again",
            error_code="ERR_TRANSITION_002",
            status_code=status.HTTP_409_CONFLICT,
            details={
                "order_id": order_id,
                "expected_status": expected_status,
                "attempted_status": attempted_status,
            }
        )


class InvalidOrderReferenceError(AppException):
    """Raised when an order reference cannot be stored in the audit trail."""

    def __init__(self, order_ref: Any):
        super().__init__(
            message="Order reference must be a non-empty string of at most 255 characters",
            error_code="ERR_ORDER_REF_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"order_ref": repr(order_ref)[:300]}
        )


class DuplicateTrackingNumberError(AppException):
    """Raised when intake reuses an existing tracking number."""

    def __init__(self, tracking_number: str):
        super().__init__(
            message=f"Order with tracking number '{tracking_number}' already exists",
            error_code="ERR_ORDER_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"tracking_number": tracking_number}
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_errors(exc)
            }
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception instances which are not JSON serializable
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={
            "correlation_id": correlation_id_for(request),
            "path": request.url.path,
            "method": request.method,
        }
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
