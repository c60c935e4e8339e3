"""Models for Todoist Visualizer."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar, Union

T = TypeVar("T")


class ItemKind(str, Enum):
    """Collection a remote item was fetched from."""
    FAVORITE = "favorite"
    FILTER = "filter"
    TASK = "task"


class ErrorCode(str, Enum):
    """Categories of user-facing errors."""
    AUTH_FAILED = "AUTH_FAILED"
    ACCESS_FORBIDDEN = "ACCESS_FORBIDDEN"
    RATE_LIMIT = "RATE_LIMIT"
    API_ERROR = "API_ERROR"
    NO_RESPONSE = "NO_RESPONSE"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_CREDENTIAL = "MISSING_CREDENTIAL"
    OPERATION_IN_PROGRESS = "OPERATION_IN_PROGRESS"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class RemoteItem:
    """Represents a favorite, filter or task fetched from Todoist."""
    id: str
    name: str
    kind: ItemKind
    data: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_json(cls, payload: Dict[str, Any], kind: ItemKind) -> "RemoteItem":
        """Build an item from one object of an API response.

        Raises:
            ValueError: If the object has no ``id``
        """
        if not isinstance(payload, dict) or payload.get("id") in (None, ""):
            raise ValueError(f"Malformed {kind.value} in API response: missing id")
        name = payload.get("name") or payload.get("content") or ""
        return cls(id=str(payload["id"]), name=str(name), kind=kind, data=dict(payload))


@dataclass(frozen=True)
class ClassifiedError:
    """Normalized, user-facing error value."""
    message: str
    code: ErrorCode = ErrorCode.UNKNOWN_ERROR
    status: Optional[int] = None
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome of a session operation."""
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed outcome of a session operation."""
    error: ClassifiedError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


class TodoistError(Exception):
    """Base exception for Todoist operations."""

    code = ErrorCode.UNKNOWN_ERROR


class ApiError(TodoistError):
    """Raised when the API answers with a non-2xx status."""

    code = ErrorCode.API_ERROR

    def __init__(self, status: int, message: Optional[str] = None):
        super().__init__(message or f"HTTP error! status: {status}")
        self.status = status


class SelectionError(TodoistError):
    """Raised when a selection value is empty or malformed."""

    code = ErrorCode.VALIDATION_ERROR


class MissingCredentialError(TodoistError):
    """Raised when no API token was supplied."""

    code = ErrorCode.MISSING_CREDENTIAL
