"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers. The proxy
routing failures are raised by the pure domain functions and converted to
HTTP responses (or silently dropped) at the boundary.
"""

import logging

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Any, Dict, List, Optional

logger = logging.getLogger("rideproxy.errors")


class AppException(Exception):
    """Base application exception."""
    
    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""
    
    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class DuplicateResourceError(AppException):
    """Raised when a unique phone number is registered twice."""
    
    def __init__(self, resource: str, number: str):
        super().__init__(
            message=f"{resource} with number {number} already exists",
            error_code="ERR_CONFLICT_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource": resource, "number": number}
        )


class InvalidPairingError(AppException):
    """Raised when a ride request names an unusable customer/driver combination."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="ERR_BAD_REQUEST_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


# Proxy allocation failures

class NoAvailableProxyError(AppException):
    """
    Raised when every proxy number in the pool conflicts with the request.
    
    Recoverable: the pool must be expanded or the request retried later.
    No ride is created.
    """
    
    def __init__(self, customer_id: Optional[int] = None, driver_id: Optional[int] = None, pool_size: int = 0):
        super().__init__(
            message="No available proxy numbers",
            error_code="ERR_PROXY_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"customer_id": customer_id, "driver_id": driver_id, "pool_size": pool_size}
        )


class AllocationConflictError(AppException):
    """Raised when a concurrent ride claimed the same binding before commit."""
    
    def __init__(self, proxy_number_id: int):
        super().__init__(
            message="Proxy number was claimed by a concurrent ride, please retry",
            error_code="ERR_PROXY_002",
            status_code=status.HTTP_409_CONFLICT,
            details={"proxy_number_id": proxy_number_id}
        )


class AllocationBusyError(AppException):
    """Raised when the allocation lock could not be acquired in time."""
    
    def __init__(self, waited_seconds: float):
        super().__init__(
            message="Proxy allocation is busy, please retry",
            error_code="ERR_PROXY_003",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"waited_seconds": waited_seconds}
        )


# Inbound routing failures

class UnknownProxyError(AppException):
    """Raised when an inbound event references a proxy bound to no ride."""
    
    def __init__(self, proxy_number: str):
        self.proxy_number = proxy_number
        super().__init__(
            message=f"Unknown proxy number: {proxy_number}",
            error_code="ERR_ROUTE_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"proxy_number": proxy_number}
        )


class UnrecognizedSenderError(AppException):
    """Raised when the sender is neither party of any ride using the proxy."""
    
    def __init__(self, proxy_number: str, sender_number: str, candidate_ride_ids: Optional[List[int]] = None):
        self.proxy_number = proxy_number
        self.sender_number = sender_number
        super().__init__(
            message=f"Could not find ride for customer/driver {sender_number} that uses proxy {proxy_number}",
            error_code="ERR_ROUTE_002",
            status_code=status.HTTP_403_FORBIDDEN,
            details={
                "proxy_number": proxy_number,
                "sender_number": sender_number,
                "candidate_ride_ids": candidate_ride_ids or [],
            }
        )


# Messaging failures

class SendFailedError(AppException):
    """Raised when the messaging transport rejects or cannot deliver an SMS."""
    
    def __init__(self, recipient: str, reason: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(
            message=f"Could not send sms to {recipient}: {reason}",
            error_code="ERR_SEND_001",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"recipient": recipient, "reason": reason, "errors": errors or []}
        )


# Global Exception Handlers

_STATUS_ERROR_CODES = {
    400: "ERR_BAD_REQUEST",
    403: "ERR_FORBIDDEN",
    404: "ERR_NOT_FOUND",
    405: "ERR_METHOD_NOT_ALLOWED",
    409: "ERR_CONFLICT",
    503: "ERR_UNAVAILABLE",
}


def error_response(status_code: int, error_code: str, message: str, details: Optional[Dict[str, Any]] = None) -> JSONResponse:
    """Build the `{"error_code", "message", "details"}` body shared by every error."""
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"error_code": error_code, "message": message, "details": details or {}})
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed with %s: %s", request.method, request.url.path, exc.error_code, exc.message)
    return error_response(exc.status_code, exc.error_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing and framework errors (unknown path, wrong method) in the standard format."""
    error_code = _STATUS_ERROR_CODES.get(exc.status_code, "ERR_UNKNOWN")
    return error_response(exc.status_code, error_code, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ERR_VALIDATION",
        "Validation error",
        {"errors": exc.errors()}
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s: %s", type(exc).__name__, exc)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "ERR_INTERNAL_SERVER",
        "An internal server error occurred"
    )
