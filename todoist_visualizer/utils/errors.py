"""Error classification, selection validation and error logging."""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

import requests
from google.auth.exceptions import TransportError

from todoist_visualizer.models import (
    ClassifiedError,
    ErrorCode,
    MissingCredentialError,
    SelectionError,
)

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "An unexpected error occurred"
NO_RESPONSE_MESSAGE = "No response received from Todoist API. Please check your connection."

STATUS_ERRORS = {
    401: (ErrorCode.AUTH_FAILED, "Authentication failed. Please check your API token."),
    403: (ErrorCode.ACCESS_FORBIDDEN, "Access forbidden. Please check your permissions."),
    429: (ErrorCode.RATE_LIMIT, "Rate limit exceeded. Please try again later."),
}


def _response_status(failure: Any) -> Optional[int]:
    """Get the HTTP status carried by a failure, if any."""
    status = getattr(failure, "status", None)
    if status is None:
        response = getattr(failure, "response", None)
        if response is None:
            return None
        status = getattr(response, "status_code", None)
        if status is None:
            status = getattr(response, "status", None)
    if isinstance(status, bool):
        return None
    try:
        return int(status)
    except (TypeError, ValueError):
        return None


def _is_transport_failure(failure: Any) -> bool:
    if isinstance(failure, (requests.ConnectionError, requests.Timeout, TransportError)):
        return True
    return getattr(failure, "response", None) is None and getattr(failure, "request", None) is not None


def _failure_message(failure: Any) -> str:
    if isinstance(failure, str):
        return failure.strip() or FALLBACK_MESSAGE
    message = getattr(failure, "message", None)
    if not isinstance(message, str) or not message.strip():
        message = str(failure) if isinstance(failure, BaseException) else ""
    return message.strip() or FALLBACK_MESSAGE


def _classify(failure: Any) -> ClassifiedError:
    cause = failure if isinstance(failure, BaseException) else None

    if isinstance(failure, (SelectionError, MissingCredentialError)):
        return ClassifiedError(_failure_message(failure), code=failure.code, cause=cause)

    status = _response_status(failure)
    if status is not None and not 200 <= status < 300:
        code, message = STATUS_ERRORS.get(
            status, (ErrorCode.API_ERROR, f"API request failed with status {status}.")
        )
        return ClassifiedError(message, code=code, status=status, cause=cause)

    if _is_transport_failure(failure):
        return ClassifiedError(NO_RESPONSE_MESSAGE, code=ErrorCode.NO_RESPONSE, cause=cause)

    return ClassifiedError(_failure_message(failure), code=ErrorCode.UNKNOWN_ERROR, cause=cause)


def classify_error(failure: Any) -> ClassifiedError:
    """Turn whatever an API call or a validation raised into a ClassifiedError.

    Classification order:
        1. ClassifiedError values pass through unchanged
        2. Selection and credential errors keep their own code and message
        3. Failures carrying a non-2xx HTTP status are mapped by status
        4. Transport failures without a response become NO_RESPONSE
        5. Anything else is UNKNOWN_ERROR with its own message

    Args:
        failure: An exception or any other raised value

    Returns:
        Exactly one ClassifiedError; this function never raises
    """
    if isinstance(failure, ClassifiedError):
        return failure
    try:
        return _classify(failure)
    except Exception as e:  # attribute access on arbitrary objects may raise
        return ClassifiedError(FALLBACK_MESSAGE, code=ErrorCode.UNKNOWN_ERROR, cause=e)


def validate_selection(value: Any, kind: str = "item") -> None:
    """Check that a selection value is a non-empty identifier string.

    Raises:
        SelectionError: If the value is empty or not a string
    """
    if value is None or value == "" or (isinstance(value, (list, tuple, set, dict)) and not value):
        raise SelectionError(f"No {kind} selected")
    if not isinstance(value, str) or not value.strip():
        raise SelectionError(f"Invalid {kind} selection")


def _format_stack(exc: Optional[BaseException]) -> Optional[str]:
    if exc is None or exc.__traceback__ is None:
        return None
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def error_details(error: Union[ClassifiedError, BaseException], context: Optional[str] = None) -> Dict[str, Any]:
    """Collect the fields recorded for an error."""
    if isinstance(error, ClassifiedError):
        exc = error.cause
        code: Optional[str] = error.code.value
        status = error.status
    else:
        exc = error
        code_attr = getattr(error, "code", None)
        code = getattr(code_attr, "value", code_attr)
        status = getattr(error, "status", None)
    return {
        "context": context or "ERROR",
        "name": type(exc).__name__ if exc is not None else type(error).__name__,
        "code": code,
        "status": status,
        "message": str(error),
        "stack": _format_stack(exc),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def log_error(error: Union[ClassifiedError, BaseException], context: Optional[str] = None) -> None:
    """Log an error with its name, message, stack, context and timestamp.

    Never raises; a failure while collecting the details is itself logged.
    """
    try:
        details = error_details(error, context)
    except Exception:
        logger.exception("[%s] Failed to collect error details", context or "ERROR")
        return
    logger.error(
        "[%s] %s: %s",
        details["context"],
        details["name"],
        details["message"],
        extra={"error_details": details},
    )
    if details["stack"]:
        logger.debug("[%s] %s", details["context"], details["stack"].rstrip())
