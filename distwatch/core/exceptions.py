"""
Exception Hierarchy

Features:
- Structured exception hierarchy
- Error codes and categories
- Context preservation
- Logging integration
"""

from typing import Any, Dict, Optional, List
from enum import Enum
import traceback
from datetime import datetime, timezone

class ErrorCategory(str, Enum):
    """High-level error categories for monitoring."""
    VALIDATION = "validation"
    PRECONDITION = "precondition"
    TOOLING = "tooling"
    COMPARISON = "comparison"
    STATE = "state"
    EXTERNAL_SERVICE = "external_service"
    BUSINESS_LOGIC = "business_logic"
    SYSTEM = "system"

class ErrorSeverity(str, Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

# ======================== BASE EXCEPTION ========================

class DistWatchError(Exception):
    """
    Base exception for all DistWatch errors.

    Provides structured error handling with:
    - Error codes and categories
    - Context preservation
    - User-friendly messages
    """

    def __init__(
        self,
        message: str,
        error_code: str = "GENERIC_ERROR",
        category: ErrorCategory = ErrorCategory.SYSTEM,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        suggestions: Optional[List[str]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.category = category
        self.severity = severity
        self.context = context or {}
        self.user_message = user_message or message
        self.suggestions = suggestions or []
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)
        self.traceback_str = traceback.format_exc() if cause else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "user_message": self.user_message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.timestamp.isoformat(),
                "context": self.context,
                "suggestions": self.suggestions,
                "cause": str(self.cause) if self.cause else None
            }
        }

    def __str__(self) -> str:
        """String representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}', "
            f"category='{self.category.value}', "
            f"severity='{self.severity.value}'"
            f")"
        )

# ======================== DETECTION EXCEPTIONS ========================

class PreconditionError(DistWatchError):
    """Snapshot preconditions not met (e.g. both snapshots missing or empty)."""

    def __init__(self, reason: str, **kwargs):
        super().__init__(
            message=f"Precondition failed: {reason}",
            error_code=kwargs.pop('error_code', 'PRECONDITION_FAILED'),
            category=ErrorCategory.PRECONDITION,
            severity=ErrorSeverity.HIGH,
            context={**kwargs.pop('context', {}), "reason": reason},
            user_message=kwargs.pop('user_message', reason),
            suggestions=["Check that the current snapshot was populated before comparing"],
            **kwargs
        )

class HashUnavailableError(DistWatchError):
    """No digest algorithm in the provider chain is available."""

    def __init__(self, attempted: List[str], **kwargs):
        super().__init__(
            message=f"No digest algorithm available (tried: {', '.join(attempted) or 'none'})",
            error_code="HASH_UNAVAILABLE",
            category=ErrorCategory.TOOLING,
            severity=ErrorSeverity.LOW,
            context={**kwargs.pop('context', {}), "attempted": attempted},
            user_message="Hash verification skipped; structural comparison is authoritative.",
            **kwargs
        )

class DiffMechanismError(DistWatchError):
    """The tree diff itself failed (distinct from differences being found)."""

    def __init__(self, path: str, reason: str, **kwargs):
        super().__init__(
            message=f"Tree diff failed at {path}: {reason}",
            error_code="DIFF_MECHANISM_ERROR",
            category=ErrorCategory.COMPARISON,
            severity=ErrorSeverity.HIGH,
            context={**kwargs.pop('context', {}), "path": path, "reason": reason},
            user_message="The structural comparison could not be completed.",
            **kwargs
        )

class BusinessLogicError(DistWatchError):
    """Business rule violations."""

    def __init__(self, rule: str, **kwargs):
        super().__init__(
            message=kwargs.pop('message', f"Business rule violation: {rule}"),
            error_code=kwargs.pop('error_code', 'BUSINESS_LOGIC_ERROR'),
            category=ErrorCategory.BUSINESS_LOGIC,
            severity=kwargs.pop('severity', ErrorSeverity.MEDIUM),
            context={**kwargs.pop('context', {}), "rule": rule},
            user_message=kwargs.pop('user_message', f"Operation failed: {rule}"),
            **kwargs
        )

class ChangeDetectionError(BusinessLogicError):
    """Change detection specific errors."""

    def __init__(self, stage: str, **kwargs):
        super().__init__(
            rule=f"Change detection failed during {stage}",
            message=f"Change detection failed during {stage}",
            error_code=kwargs.pop('error_code', 'CHANGE_DETECTION_ERROR'),
            severity=ErrorSeverity.HIGH,
            context={**kwargs.pop('context', {}), "stage": stage},
            user_message="Failed to compare snapshots.",
            **kwargs
        )

# ======================== STATE EXCEPTIONS ========================

class LockStateError(DistWatchError):
    """Lock record could not be created or removed."""

    def __init__(self, operation: str, lock_path: str, **kwargs):
        super().__init__(
            message=f"Lock {operation} failed for {lock_path}",
            error_code="LOCK_STATE_ERROR",
            category=ErrorCategory.STATE,
            severity=ErrorSeverity.HIGH,
            context={**kwargs.pop('context', {}), "operation": operation, "lock_path": lock_path},
            user_message="Notification cooldown state could not be updated.",
            suggestions=["Check permissions on the lock directory"],
            **kwargs
        )

class BaselineUpdateError(DistWatchError):
    """Previous-snapshot baseline could not be advanced."""

    def __init__(self, baseline_dir: str, **kwargs):
        super().__init__(
            message=f"Failed to advance baseline at {baseline_dir}",
            error_code="BASELINE_UPDATE_ERROR",
            category=ErrorCategory.STATE,
            severity=ErrorSeverity.HIGH,
            context={**kwargs.pop('context', {}), "baseline_dir": baseline_dir},
            **kwargs
        )

# ======================== EXTERNAL SERVICE EXCEPTIONS ========================

class ExternalServiceError(DistWatchError):
    """External service integration errors."""

    def __init__(
        self,
        service_name: str,
        operation: str,
        status_code: Optional[int] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        context.update({
            "service": service_name,
            "operation": operation,
            "status_code": status_code
        })

        super().__init__(
            message=kwargs.pop('message', f"{service_name} service error during {operation}"),
            error_code=kwargs.pop('error_code', 'EXTERNAL_SERVICE_ERROR'),
            category=ErrorCategory.EXTERNAL_SERVICE,
            severity=kwargs.pop('severity', ErrorSeverity.HIGH),
            context=context,
            user_message=kwargs.pop('user_message', "External service is temporarily unavailable."),
            **kwargs
        )

class DownloadError(ExternalServiceError):
    """Artifact download failed after all attempts."""

    def __init__(self, url: str, reason: str, **kwargs):
        super().__init__(
            service_name="Downloader",
            operation=f"download {url}",
            message=f"Download failed for {url}: {reason}",
            error_code=kwargs.pop('error_code', 'DOWNLOAD_ERROR'),
            context={**kwargs.pop('context', {}), "url": url, "reason": reason},
            user_message=f"Failed to retrieve artifact from {url}.",
            **kwargs
        )

class ArchiveValidationError(DownloadError):
    """Downloaded file is too small or not a usable archive."""

    def __init__(self, path: str, reason: str, **kwargs):
        super().__init__(
            url=path,
            reason=reason,
            error_code="ARCHIVE_VALIDATION_ERROR",
            **kwargs
        )

class DeliveryError(ExternalServiceError):
    """A notification channel failed to deliver."""

    def __init__(self, channel: str, reason: str, **kwargs):
        super().__init__(
            service_name=f"{channel} channel",
            operation="deliver notification",
            message=f"Delivery via {channel} failed: {reason}",
            error_code="DELIVERY_ERROR",
            severity=ErrorSeverity.MEDIUM,
            context={**kwargs.pop('context', {}), "channel": channel},
            user_message="Notification could not be delivered.",
            **kwargs
        )

# ======================== SYSTEM EXCEPTIONS ========================

class ConfigurationError(DistWatchError):
    """Configuration errors."""

    def __init__(self, setting: str, **kwargs):
        super().__init__(
            message=f"Configuration error: {setting}",
            error_code="CONFIGURATION_ERROR",
            category=ErrorCategory.SYSTEM,
            severity=ErrorSeverity.CRITICAL,
            context={"setting": setting},
            user_message="System configuration error.",
            suggestions=["Check environment variables and configuration files"],
            **kwargs
        )

# ======================== UTILITY FUNCTIONS ========================

def handle_exception(
    exc: Exception,
    logger,
    default_error_code: str = "UNEXPECTED_ERROR",
    context: Optional[Dict[str, Any]] = None
) -> DistWatchError:
    """
    Convert any exception to a DistWatchError with proper logging.

    Args:
        exc: The original exception
        logger: Logger instance
        default_error_code: Error code if not a DistWatchError
        context: Additional context

    Returns:
        DistWatchError instance
    """

    if isinstance(exc, DistWatchError):
        logger.error(
            exc.message,
            extra={
                "error_code": exc.error_code,
                "category": exc.category.value,
                "severity": exc.severity.value,
                "context": exc.context
            },
            exc_info=True
        )
        return exc

    distwatch_error = DistWatchError(
        message=f"Unexpected error: {str(exc)}",
        error_code=default_error_code,
        category=ErrorCategory.SYSTEM,
        severity=ErrorSeverity.HIGH,
        context=context or {},
        cause=exc
    )

    logger.error(
        distwatch_error.message,
        extra={
            "error_code": distwatch_error.error_code,
            "original_exception": type(exc).__name__,
            "context": distwatch_error.context
        },
        exc_info=True
    )

    return distwatch_error

__all__ = [
    'DistWatchError',
    'ErrorCategory',
    'ErrorSeverity',
    'PreconditionError',
    'HashUnavailableError',
    'DiffMechanismError',
    'BusinessLogicError',
    'ChangeDetectionError',
    'LockStateError',
    'BaselineUpdateError',
    'ExternalServiceError',
    'DownloadError',
    'ArchiveValidationError',
    'DeliveryError',
    'ConfigurationError',
    'handle_exception'
]
