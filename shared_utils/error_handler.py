"""
Structured error handling and response formatting.
Provides consistent error responses with error codes and context.
"""

from typing import Optional, Dict, Any

from shared_utils.constants import ErrorCode, LogScope
from shared_utils.logging_utils import get_scoped_logger


class AppException(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        error_code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        http_status: int = 500
    ):
        self.error_code = error_code
        self.message = message
        self.context = context or {}
        self.http_status = http_status
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to response dictionary."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "context": self.context
            }
        }


class ValidationError(AppException):
    """Validation/input error."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.INVALID_INPUT.value,
            message=message,
            context=context,
            http_status=400
        )


class AccessDeniedError(AppException):
    """Caller is not allowed to touch the resource."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.ACCESS_DENIED.value,
            message=message,
            context=context,
            http_status=403
        )


class NotFoundError(AppException):
    """Requested record does not exist (or is not visible to the caller)."""

    def __init__(self, resource: str, identifier: Optional[str] = None):
        context = {"resource": resource}
        if identifier:
            context["id"] = identifier
        super().__init__(
            error_code=ErrorCode.NOT_FOUND.value,
            message=f"{resource} not found",
            context=context,
            http_status=404
        )


class ConfigurationError(AppException):
    """Configuration error."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.INVALID_CONFIG.value,
            message=message,
            context=context,
            http_status=500
        )


class StorageError(AppException):
    """Relational store failure."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.STORAGE_ERROR.value,
            message=message,
            context=context,
            http_status=500
        )


class ExternalServiceError(AppException):
    """External service unavailable error."""

    def __init__(self, service: str, message: str, context: Optional[Dict[str, Any]] = None):
        full_message = f"{service} unavailable: {message}"
        super().__init__(
            error_code=ErrorCode.EXTERNAL_SERVICE_ERROR.value,
            message=full_message,
            context={**(context or {}), "service": service},
            http_status=503
        )


class PlanGenerationError(AppException):
    """Project plan could not be generated because an upstream call failed."""

    def __init__(
        self,
        meeting_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = {**(context or {})}
        if meeting_id:
            ctx["meeting_id"] = meeting_id
        super().__init__(
            error_code=ErrorCode.PLAN_GENERATION_FAILED.value,
            message="Failed to generate AI project plan",
            context=ctx,
            http_status=500,
        )


class SpeechSynthesisError(AppException):
    """Hosted text-to-speech failure.

    ``quota_exceeded`` marks the resource-exhaustion case that the speech
    pipeline turns into a user notice; ``not_configured`` maps to 501.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        quota_exceeded: bool = False,
        not_configured: bool = False,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        self.quota_exceeded = quota_exceeded
        self.not_configured = not_configured
        ctx = {**(context or {})}
        if status_code is not None:
            ctx["upstream_status"] = status_code
        if quota_exceeded:
            ctx["quota_exceeded"] = True
        super().__init__(
            error_code=(
                ErrorCode.TTS_NOT_CONFIGURED.value if not_configured
                else ErrorCode.TTS_FAILED.value
            ),
            message=message,
            context=ctx,
            http_status=501 if not_configured else 502,
        )


def log_exception(
    exc: Exception,
    scope: str = LogScope.ERROR_HANDLER,
    logger: Optional[Any] = None
) -> None:
    """Log exception with structured context.

    Args:
        exc: Exception to log
        scope: Log scope identifier
        logger: Optional custom logger (uses structlog if not provided)
    """
    if logger is None:
        logger = get_scoped_logger(scope)

    if isinstance(exc, AppException):
        logger.error(
            "app_exception",
            error_code=exc.error_code,
            message=exc.message,
            http_status=exc.http_status,
            context=exc.context
        )
    else:
        logger.error(
            "unexpected_exception",
            error_type=type(exc).__name__,
            message=str(exc),
            exc_info=True
        )


def handle_error(
    exc: Exception,
    scope: str = LogScope.ERROR_HANDLER,
    default_error_code: str = ErrorCode.INTERNAL_ERROR.value
) -> Dict[str, Any]:
    """Handle exception and return structured error response.

    Args:
        exc: Exception to handle
        scope: Log scope
        default_error_code: Default error code for non-AppException errors

    Returns:
        Structured error response dictionary
    """
    log_exception(exc, scope)

    if isinstance(exc, AppException):
        return exc.to_dict()
    return {
        "error": {
            "code": default_error_code,
            "message": f"An unexpected error occurred: {str(exc)}",
            "context": {"error_type": type(exc).__name__}
        }
    }
