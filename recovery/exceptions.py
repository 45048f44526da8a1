"""
Errors raised by the recovery tracker

Every error carries the user, the operation and a request id, and is
logged once when it is created.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

import psycopg

logger = logging.getLogger(__name__)


class RecoveryTrackerError(Exception):
    """Base error; `user_message` is safe to show in the app"""

    default_user_message = "An error occurred. Please try again."

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or self.default_user_message
        self.timestamp = datetime.now(timezone.utc)

        self._log_error()

    def _log_error(self) -> None:
        extra = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # 'message' is reserved by logging
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
        }
        logger.error(
            f"{self.__class__.__name__}: {self.message}",
            extra=extra,
            exc_info=self.cause
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


class ValidationError(RecoveryTrackerError):
    """Bad drink count, mood score, trigger intensity, points amount or date"""

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None, **kwargs):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context={"field": field, "value": value},
            **kwargs
        )


class DatabaseError(RecoveryTrackerError):
    default_user_message = "Your progress could not be saved. Please try again."


class ConnectionError(DatabaseError):
    default_user_message = "The tracker is unavailable right now. Please try again in a moment."

    def __init__(self, message: str = "Database connection failed", **kwargs):
        super().__init__(message=message, **kwargs)


class QueryError(DatabaseError):
    pass


class RecordNotFoundError(DatabaseError):
    """Missing profile, level, task, log or healthy alternative"""

    def __init__(self, message: str, record_type: Optional[str] = None, record_id: Optional[str] = None, **kwargs):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} not found.",
            context={"record_type": record_type, "record_id": record_id},
            **kwargs
        )


class DataIntegrityError(DatabaseError):
    """Stored logs break an invariant, e.g. two drink logs for one date"""

    default_user_message = "Your stored data is inconsistent. Please contact support."


class DuplicateCompletionError(DatabaseError):
    """Task was already completed for the given date"""

    def __init__(
        self,
        message: str = "Task already completed for this date",
        task_id: Optional[int] = None,
        completion_date: Optional[str] = None,
        **kwargs
    ):
        self.task_id = task_id
        self.completion_date = completion_date
        super().__init__(
            message=message,
            user_message="You already completed this task today.",
            context={"task_id": task_id, "completion_date": completion_date},
            **kwargs
        )


class ConfigurationError(RecoveryTrackerError):
    default_user_message = "The tracker is not configured correctly. Please contact support."

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        self.config_key = config_key
        super().__init__(message=message, context={"config_key": config_key}, **kwargs)


def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> RecoveryTrackerError:
    """
    Map a driver or unexpected error onto RecoveryTrackerError

    psycopg.OperationalError becomes ConnectionError, any other psycopg.Error
    becomes QueryError. Our own errors pass through unchanged.
    """
    if isinstance(error, RecoveryTrackerError):
        return error

    if isinstance(error, psycopg.OperationalError):
        error_class, message = ConnectionError, f"Database connection failed: {error}"
    elif isinstance(error, psycopg.Error):
        error_class, message = QueryError, f"Database query failed: {error}"
    else:
        error_class, message = RecoveryTrackerError, f"{operation} failed: {error}"

    return error_class(
        message=message,
        user_id=user_id,
        operation=operation,
        context=context,
        cause=error
    )
