"""
Common Exception Classes

This module defines the exception hierarchy used throughout the assessment
service. Every error carries a stable ``ErrorCode``, a human readable message
and a ``details`` dictionary with enough structure for a caller to act on it.
"""

import enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorCode(str, enum.Enum):
    """Stable error codes surfaced to API clients."""
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    UNAUTHORIZED = "UNAUTHORIZED"
    ALREADY_SUBMITTED = "ALREADY_SUBMITTED"
    INELIGIBLE = "INELIGIBLE"
    CONFLICT = "CONFLICT"
    DATABASE_ERROR = "DATABASE_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class ErrorInfo(BaseModel):
    """Structured, serialisable description of an error."""
    model_config = ConfigDict(use_enum_values=True)

    code: ErrorCode
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class LMSError(Exception):
    """Base class for all custom exceptions."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """
        Initialize the exception.

        Args:
            message: Error message
            details: Structured data describing the failure
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_error_info(self) -> ErrorInfo:
        """Convert the exception to an ``ErrorInfo``."""
        return ErrorInfo(code=self.code, message=self.message, details=self.details)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the exception to the ``{"error": ...}`` response shape."""
        info = self.to_error_info()
        return {"error": info.model_dump(mode="json", exclude={"timestamp"})}

    def __str__(self) -> str:
        base_str = f"{self.code.value}: {self.message}"
        if self.cause is not None:
            base_str += f" caused by {type(self.cause).__name__}: {self.cause}"
        return base_str


class ValidationError(LMSError):
    """Exception raised when caller input or authored data is invalid."""
    code = ErrorCode.VALIDATION_ERROR


class MissingRequiredAnswerError(ValidationError):
    """Exception raised when a required question has no usable answer."""

    def __init__(self, question_id: str):
        """
        Initialize the error.

        Args:
            question_id: The first required question without a valid answer
        """
        super().__init__(
            f"Required question {question_id} is not answered",
            details={"question_id": question_id}
        )
        self.question_id = question_id


class NotFoundError(LMSError):
    """Exception raised when a resource is not found."""
    code = ErrorCode.NOT_FOUND

    def __init__(self, resource_type: str, resource_id: Any):
        """
        Initialize the not found error.

        Args:
            resource_type: Type of resource that wasn't found
            resource_id: ID of the resource that wasn't found
        """
        super().__init__(
            f"{resource_type} with ID {resource_id} not found",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class AuthorizationError(LMSError):
    """Exception raised when the caller may not act on a resource."""
    code = ErrorCode.FORBIDDEN

    def __init__(self, message: str, resource: Optional[str] = None, action: Optional[str] = None):
        super().__init__(message, details={"resource": resource, "action": action})
        self.resource = resource
        self.action = action


class AuthenticationError(LMSError):
    """Exception raised when the caller cannot be identified."""
    code = ErrorCode.UNAUTHORIZED


class AlreadySubmittedError(LMSError):
    """Exception raised when a graded attempt is submitted again."""
    code = ErrorCode.ALREADY_SUBMITTED

    def __init__(self, attempt_id: str):
        super().__init__(
            f"Attempt {attempt_id} has already been submitted",
            details={"attempt_id": attempt_id}
        )
        self.attempt_id = attempt_id


class IneligibleError(LMSError):
    """
    Exception used by the HTTP layer to report a refused start.

    The lifecycle itself returns refusals as values; this type only exists so
    the refusal can travel through the shared exception handlers.
    """
    code = ErrorCode.INELIGIBLE

    def __init__(self, reason: str):
        super().__init__(f"Cannot start attempt: {reason}", details={"reason": reason})
        self.reason = reason


class ConflictError(LMSError):
    """Exception raised when a write violates a uniqueness rule."""
    code = ErrorCode.CONFLICT

    def __init__(self, entity_type: str, identifier: Any, cause: Optional[Exception] = None):
        super().__init__(
            f"Conflicting {entity_type} for {identifier}",
            details={"entity_type": entity_type, "identifier": str(identifier)},
            cause=cause
        )
        self.entity_type = entity_type
        self.identifier = identifier


class DatabaseError(LMSError):
    """Exception raised for database-related errors."""
    code = ErrorCode.DATABASE_ERROR

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(f"Database error: {message}", cause=cause)


class ConfigurationError(LMSError):
    """Exception raised for configuration-related errors."""
    code = ErrorCode.CONFIGURATION_ERROR

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(f"Configuration error: {message}", details={"config_key": config_key})
        self.config_key = config_key
