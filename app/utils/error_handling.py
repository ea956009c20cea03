"""
Error Handling Module for PeopleDesk HRM

Every domain failure is an AppException carrying an ErrorCode and an HTTP
status. The handlers registered by setup_exception_handlers turn them, and
framework or database errors that escape a service, into

    {"detail": {"code": ..., "message": ..., "timestamp": ..., "field"?: ..., "details"?: ...}}
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union
from uuid import UUID
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import (
    SQLAlchemyError,
    IntegrityError,
    OperationalError,
    DataError,
)
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("peopledesk.errors")


class ErrorCode(str, Enum):
    """Machine-readable error codes returned to clients"""

    # 400
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
    INVALID_PERIOD = "INVALID_PERIOD"
    INSUFFICIENT_LEAVE_BALANCE = "INSUFFICIENT_LEAVE_BALANCE"

    # 401 / 403
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"

    # 404 / 409
    NOT_FOUND = "NOT_FOUND"
    EMPLOYEE_NOT_FOUND = "EMPLOYEE_NOT_FOUND"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    ALREADY_CHECKED_OUT = "ALREADY_CHECKED_OUT"
    ALREADY_PROCESSED = "ALREADY_PROCESSED"

    # 5xx
    DATABASE_ERROR = "DATABASE_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DATA_INTEGRITY_ERROR = "DATA_INTEGRITY_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppException(Exception):
    """Base exception for all application exceptions"""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.field = field
        self.original_error = original_error
        super().__init__(self.message)


def _iso_timestamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


# ============================================================================
# 400
# ============================================================================

class ValidationException(AppException):
    """Malformed or missing input, or a request the rules refuse."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
            field=field,
        )


class InvalidDateRangeException(ValidationException):
    """End of a range is not after its start"""

    def __init__(self, start: str, end: str, message: Optional[str] = None, field: Optional[str] = None):
        super().__init__(
            message=message or f"Invalid date range: {end} is not after {start}",
            field=field,
            code=ErrorCode.INVALID_DATE_RANGE,
            details={"start": start, "end": end},
        )


class InsufficientLeaveBalanceException(ValidationException):
    """Not enough paid days left on the balance"""

    def __init__(self, days_remaining: int, days_requested: int):
        super().__init__(
            message="Insufficient leave balance.",
            code=ErrorCode.INSUFFICIENT_LEAVE_BALANCE,
            details={"days_remaining": days_remaining, "days_requested": days_requested},
        )


# ============================================================================
# 401 / 403
# ============================================================================

class AuthenticationException(AppException):
    """Caller could not be identified"""

    def __init__(
        self,
        message: str = "Authentication required",
        code: ErrorCode = ErrorCode.UNAUTHORIZED,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class InvalidCredentialsException(AuthenticationException):
    """Wrong email or password, or an inactive account"""

    def __init__(self):
        super().__init__(
            message="Invalid credentials",
            code=ErrorCode.INVALID_CREDENTIALS,
        )


class AuthorizationException(AppException):
    """Caller is known but may not act on this resource"""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(
            code=ErrorCode.FORBIDDEN,
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
        )


# ============================================================================
# 404 / 409
# ============================================================================

class NotFoundException(AppException):
    """Resource not found exception"""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[Union[str, UUID]] = None,
        message: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOT_FOUND,
    ):
        if message is None:
            if resource_id:
                message = f"{resource_type} with ID '{resource_id}' not found"
            else:
                message = f"{resource_type} not found"
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": str(resource_id) if resource_id else None},
        )


class EmployeeNotFoundException(NotFoundException):
    """No employee profile with this code in the tenant"""

    def __init__(self, employee_id: str):
        super().__init__(
            resource_type="Employee",
            resource_id=employee_id,
            code=ErrorCode.EMPLOYEE_NOT_FOUND,
        )


class ConflictException(AppException):
    """The request clashes with the current state of a resource"""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        code: ErrorCode = ErrorCode.RESOURCE_CONFLICT,
        details: Optional[Dict[str, Any]] = None,
    ):
        _details = details or {}
        if resource_type:
            _details["resource_type"] = resource_type
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=_details,
        )


class DuplicateEntryException(ConflictException):
    """A unique business key is already taken"""

    def __init__(
        self,
        resource_type: str,
        field: str,
        value: str,
    ):
        super().__init__(
            message=f"{resource_type} with {field} '{value}' already exists",
            resource_type=resource_type,
            code=ErrorCode.DUPLICATE_ENTRY,
            details={"field": field, "value": value},
        )


# ============================================================================
# Exception Handlers
# ============================================================================

# Unique constraints a racing request can still trip after the service checks
CONSTRAINT_CONFLICTS = {
    "uq_attendance_tenant_user_date": (
        ErrorCode.RESOURCE_CONFLICT, "Attendance for this day was recorded concurrently."
    ),
    "uq_leave_balance_tenant_user_policy_year": (
        ErrorCode.RESOURCE_CONFLICT, "Leave balance was created concurrently."
    ),
    "uq_leave_policy_tenant_name": (
        ErrorCode.DUPLICATE_ENTRY, "A leave policy with this name already exists."
    ),
    "uq_payroll_run_tenant_period": (
        ErrorCode.ALREADY_PROCESSED, "Payroll for this month has already been processed."
    ),
    "uq_employee_profile_tenant_code": (
        ErrorCode.DUPLICATE_ENTRY, "An employee with this employee ID already exists."
    ),
}

HTTP_STATUS_CODES = {
    400: ErrorCode.INVALID_INPUT,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.RESOURCE_CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
}

GENERIC_SERVER_MESSAGE = "An unexpected error occurred. Please try again later."


def create_error_response(
    code: ErrorCode,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    field: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Wrap an error as {"detail": {code, message, timestamp, ...}}."""
    body: Dict[str, Any] = {
        "code": code.value,
        "message": message,
        "timestamp": _iso_timestamp(datetime.now(timezone.utc)),
    }
    if field:
        body["field"] = field
    if details:
        body["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content={"detail": body}, headers=headers)


def _request_context(request: Request) -> Dict[str, Any]:
    return {"path": request.url.path, "method": request.method}


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Domain errors carry their own status; 5xx text is never shown to clients."""
    if exc.status_code >= 500:
        logger.error(
            f"{exc.code.value}: {exc.message}",
            extra=_request_context(request),
            exc_info=exc.original_error,
        )
        return create_error_response(exc.code, GENERIC_SERVER_MESSAGE, exc.status_code)

    logger.warning(f"{exc.code.value}: {exc.message}", extra=_request_context(request))
    return create_error_response(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        field=exc.field,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Auth dependencies and routing raise plain HTTPExceptions."""
    code = HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    logger.warning(f"HTTP {exc.status_code}: {message}", extra=_request_context(request))
    return create_error_response(
        code=code,
        message=message,
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


def _field_name(location: Any) -> str:
    # ("body", "checkInTime") -> "checkInTime"
    parts = [str(part) for part in location if part not in ("body", "query", "path")]
    return ".".join(parts) or ".".join(str(part) for part in location)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query strings are 400 with one entry per field."""
    errors = [
        {"field": _field_name(error["loc"]), "message": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    logger.warning(f"Rejected request with {len(errors)} invalid field(s)", extra=_request_context(request))

    first_field = errors[0]["field"] if errors else None
    return create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message="Request validation failed",
        status_code=status.HTTP_400_BAD_REQUEST,
        details={"errors": errors},
        field=first_field,
    )


def _integrity_error_response(exc: IntegrityError) -> JSONResponse:
    text = str(exc.orig) if exc.orig is not None else str(exc)
    for constraint, (code, message) in CONSTRAINT_CONFLICTS.items():
        if constraint in text:
            return create_error_response(code, message, status.HTTP_409_CONFLICT)

    lowered = text.lower()
    if "unique" in lowered or "duplicate" in lowered:
        return create_error_response(
            ErrorCode.DUPLICATE_ENTRY, "A record with this value already exists", status.HTTP_409_CONFLICT
        )
    if "foreign key" in lowered:
        return create_error_response(
            ErrorCode.DATA_INTEGRITY_ERROR, "Referenced record does not exist", status.HTTP_400_BAD_REQUEST
        )
    return create_error_response(
        ErrorCode.DATA_INTEGRITY_ERROR, "Data integrity constraint violated", status.HTTP_400_BAD_REQUEST
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Database failures that escaped a service."""
    if isinstance(exc, IntegrityError):
        logger.warning(f"Integrity error: {exc.orig}", extra=_request_context(request))
        return _integrity_error_response(exc)

    logger.error(f"{type(exc).__name__}: {exc}", extra=_request_context(request), exc_info=True)
    if isinstance(exc, OperationalError):
        return create_error_response(
            ErrorCode.CONNECTION_ERROR, "Database operation failed", status.HTTP_503_SERVICE_UNAVAILABLE
        )
    if isinstance(exc, DataError):
        return create_error_response(
            ErrorCode.INVALID_INPUT, "Invalid data format for database", status.HTTP_400_BAD_REQUEST
        )
    return create_error_response(
        ErrorCode.DATABASE_ERROR, GENERIC_SERVER_MESSAGE, status.HTTP_500_INTERNAL_SERVER_ERROR
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.critical(
        f"Unhandled {type(exc).__name__}: {exc}",
        extra=_request_context(request),
        exc_info=True,
    )
    return create_error_response(
        ErrorCode.INTERNAL_ERROR, GENERIC_SERVER_MESSAGE, status.HTTP_500_INTERNAL_SERVER_ERROR
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application"""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
