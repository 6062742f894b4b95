from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
import structlog

logger = structlog.get_logger()


class BaseAPIException(Exception):
    """Base exception for API errors"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str = None,
        headers: dict = None,
    ):
        self.status_code = status_code
        self.detail = detail
        self.error_code = error_code or "UNKNOWN_ERROR"
        self.headers = headers
        super().__init__(detail)


class AuthenticationError(BaseAPIException):
    """Authentication failed"""

    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="AUTHENTICATION_ERROR",
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(BaseAPIException):
    """Authorization failed"""

    def __init__(
        self,
        detail: str = "Not authorized to perform this action",
        error_code: str = "AUTHORIZATION_ERROR",
    ):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code=error_code,
        )


class PermissionDeniedError(AuthorizationError):
    """The caller's role lacks the permission for this action"""

    def __init__(self, detail: str = "Your role does not allow this action"):
        super().__init__(detail=detail, error_code="PERMISSION_DENIED")


class OwnershipError(AuthorizationError):
    """The caller does not own the resource"""

    def __init__(self, detail: str = "You can only act on your own content"):
        super().__init__(detail=detail, error_code="NOT_RESOURCE_OWNER")


class NotFoundError(BaseAPIException):
    """Resource not found"""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND",
        )


class ValidationError(BaseAPIException):
    """Validation error"""

    def __init__(self, detail: str = "Validation error"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code="VALIDATION_ERROR",
        )


class InvalidTransitionError(BaseAPIException):
    """Requested status change is not an edge of the workflow"""

    def __init__(self, detail: str = "Invalid status transition"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="INVALID_TRANSITION",
        )


class NotificationDispatchError(Exception):
    """In-app notification records could not be written"""


class ChannelDeliveryError(Exception):
    """A best-effort channel (email, realtime) failed for one recipient"""

    def __init__(self, channel: str, recipient_id, reason: str):
        self.channel = channel
        self.recipient_id = recipient_id
        self.reason = reason
        super().__init__(f"{channel} delivery to {recipient_id} failed: {reason}")


async def base_api_exception_handler(request: Request, exc: BaseAPIException):
    """Handle BaseAPIException"""
    logger.error(
        "API exception",
        error_code=exc.error_code,
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.error_code,
                "message": exc.detail,
            }
        },
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors"""
    logger.error(
        "Validation error",
        errors=exc.errors(),
        path=request.url.path,
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Validation error",
                "details": [str(error.get("msg")) for error in exc.errors()],
            }
        },
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    """Handle database integrity errors"""
    logger.error(
        "Database integrity error",
        error=str(exc),
        path=request.url.path,
    )

    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "error": {
                "code": "DATABASE_ERROR",
                "message": "Database constraint violation",
            }
        },
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.exception(
        "Unhandled exception",
        exc_info=exc,
        path=request.url.path,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An internal error occurred",
            }
        },
    )


def setup_exception_handlers(app: FastAPI):
    """Set up exception handlers for the FastAPI app"""
    app.add_exception_handler(BaseAPIException, base_api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
