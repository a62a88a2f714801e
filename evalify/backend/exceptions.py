"""
Evalify Quiz Attempt Service
Custom exception classes for structured error handling
"""

from typing import Optional, Dict, Any
from fastapi import status


class AppException(Exception):
    """Base application exception with structured error information

    ``response_key`` selects the field the client reads the message from.
    The quiz endpoints answer with either ``{"error": ...}`` or
    ``{"message": ...}`` and clients depend on the exact key.
    """

    response_key = "error"

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses"""
        return {self.response_key: self.message}


# Authentication Exceptions
class AuthenticationException(AppException):
    """Raised when the session is missing, invalid or has the wrong role"""

    def __init__(
        self,
        message: str = "Unauthorized",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="UNAUTHORIZED",
            details=details
        )


# Validation Exceptions
class ValidationException(AppException):
    """Raised when request input is incomplete"""

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None
    ):
        details = {}
        if field:
            details["field"] = field

        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="VALIDATION_ERROR",
            details=details
        )


# Resource Exceptions
class NotFoundException(AppException):
    """Raised when requested resource is not found"""

    def __init__(
        self,
        message: str = "Resource not found",
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None
    ):
        details = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id

        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
            details=details
        )


class QuizIdMissingException(NotFoundException):
    """Raised when the request carries no quiz id"""

    def __init__(self):
        super().__init__(message="QuizID not found", resource_type="quiz")


class QuizNotFoundException(NotFoundException):
    """Raised when quiz is not found"""

    response_key = "message"

    def __init__(self, quiz_id: str):
        super().__init__(
            message="Quiz not found",
            resource_type="quiz",
            resource_id=quiz_id
        )


class SubmissionQuizNotFoundException(QuizNotFoundException):
    """Quiz disappeared between attempt start and submission"""

    response_key = "error"


class AttemptNotFoundException(NotFoundException):
    """Raised when a student submits without ever starting the quiz"""

    def __init__(self, quiz_id: str, student_id: str):
        super().__init__(
            message="No quiz attempt found",
            resource_type="quiz_attempt",
            resource_id=f"{student_id}:{quiz_id}"
        )


# Availability Exceptions
class QuizWindowException(AppException):
    """Raised when the current time falls outside the quiz window"""

    def __init__(self, message: str, quiz_id: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="QUIZ_WINDOW_CLOSED",
            details={"quiz_id": quiz_id}
        )


class QuizNotAvailableException(QuizWindowException):
    """Raised when a student opens a quiz outside its window"""

    response_key = "message"

    def __init__(self, quiz_id: str):
        super().__init__("Quiz is not available at this time", quiz_id)


class SubmissionWindowClosedException(QuizWindowException):
    """Raised when a submission arrives outside the quiz window"""

    def __init__(self, quiz_id: str):
        super().__init__("Quiz submission window closed", quiz_id)


# Business Logic Exceptions
class BusinessLogicException(AppException):
    """Raised when business rules are violated"""

    def __init__(
        self,
        message: str,
        rule_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if details is None:
            details = {}

        if rule_name:
            details["violated_rule"] = rule_name

        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="BUSINESS_RULE_VIOLATION",
            details=details
        )


class QuizAlreadyCompletedException(BusinessLogicException):
    """Raised when a student reopens a quiz they already submitted"""

    response_key = "message"

    def __init__(self, quiz_id: str):
        super().__init__(
            message="Quiz already completed",
            rule_name="single_attempt",
            details={"quiz_id": quiz_id}
        )


class QuizAlreadySubmittedException(BusinessLogicException):
    """Raised when a submitted attempt receives another submission"""

    def __init__(self, quiz_id: str):
        super().__init__(
            message="Quiz already submitted",
            rule_name="single_submission",
            details={"quiz_id": quiz_id}
        )


# Timeout Exceptions
class SubmissionTimeoutException(AppException):
    """Raised when the submission transaction outlives its time budget

    The commit may or may not have happened; a retry either succeeds or
    reports the attempt as already submitted.
    """

    def __init__(self, timeout_seconds: float):
        super().__init__(
            message="Request timed out. Please try again.",
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            error_code="TIMEOUT",
            details={"timeout_seconds": timeout_seconds}
        )

    @property
    def retryable(self) -> bool:
        return True


# Internal Exceptions
class InternalServerException(AppException):
    """Generic failure; the cause is logged, never returned"""

    def __init__(self, message: str = "An internal server error occurred"):
        super().__init__(message=message)


__all__ = [
    "AppException",
    "AuthenticationException",
    "ValidationException",
    "NotFoundException",
    "QuizIdMissingException",
    "QuizNotFoundException",
    "SubmissionQuizNotFoundException",
    "AttemptNotFoundException",
    "QuizWindowException",
    "QuizNotAvailableException",
    "SubmissionWindowClosedException",
    "BusinessLogicException",
    "QuizAlreadyCompletedException",
    "QuizAlreadySubmittedException",
    "SubmissionTimeoutException",
    "InternalServerException",
]
