"""Domain errors raised by the attempt engine.

Every error carries a stable machine ``code`` that the global exception handler
puts in the error envelope, so clients can tell "too late" apart from "not
allowed" without parsing messages.
"""
from typing import Any, Dict, Optional
from fastapi import HTTPException, status

from app.core.constants import PolicyReasonEnum


class ExamEngineError(HTTPException):
    code: str = "EXAM_ENGINE_ERROR"
    status_code_default: int = status.HTTP_400_BAD_REQUEST
    message: str = "The request could not be processed."

    def __init__(self, detail: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=self.status_code_default, detail=detail or self.message)
        self.details = details


# Policy rejections

class ExamNotAvailableError(ExamEngineError):
    code = PolicyReasonEnum.EXAM_NOT_AVAILABLE.value
    status_code_default = status.HTTP_403_FORBIDDEN
    message = "This exam is not available at this time."

class NotAssignedError(ExamEngineError):
    code = PolicyReasonEnum.NOT_ASSIGNED.value
    status_code_default = status.HTTP_403_FORBIDDEN
    message = "You are not assigned to this exam."

class MaxAttemptsReachedError(ExamEngineError):
    code = PolicyReasonEnum.MAX_ATTEMPTS_REACHED.value
    status_code_default = status.HTTP_409_CONFLICT
    message = "You have used all allowed attempts for this exam."

class AttemptInProgressError(ExamEngineError):
    code = PolicyReasonEnum.ATTEMPT_IN_PROGRESS.value
    status_code_default = status.HTTP_409_CONFLICT
    message = "An attempt for this exam is already in progress."


POLICY_ERRORS = {
    PolicyReasonEnum.EXAM_NOT_AVAILABLE: ExamNotAvailableError,
    PolicyReasonEnum.NOT_ASSIGNED: NotAssignedError,
    PolicyReasonEnum.MAX_ATTEMPTS_REACHED: MaxAttemptsReachedError,
    PolicyReasonEnum.ATTEMPT_IN_PROGRESS: AttemptInProgressError,
}


# Validation errors

class AnswerValidationError(ExamEngineError):
    code = "ANSWER_VALIDATION_ERROR"
    status_code_default = status.HTTP_422_UNPROCESSABLE_ENTITY
    message = "The submitted answer does not match the question type."

class ExamConfigurationError(ExamEngineError):
    code = "EXAM_CONFIGURATION_ERROR"
    status_code_default = status.HTTP_422_UNPROCESSABLE_ENTITY
    message = "The exam configuration is invalid."

class QuestionConfigurationError(ExamEngineError):
    code = "QUESTION_CONFIGURATION_ERROR"
    status_code_default = status.HTTP_422_UNPROCESSABLE_ENTITY
    message = "The question configuration is invalid."

class SecurityEventValidationError(ExamEngineError):
    code = "SECURITY_EVENT_VALIDATION_ERROR"
    status_code_default = status.HTTP_422_UNPROCESSABLE_ENTITY
    message = "Unknown security event type."


# Expiry

class AttemptExpiredError(ExamEngineError):
    code = "ATTEMPT_EXPIRED"
    status_code_default = status.HTTP_410_GONE
    message = "The time allowed for this attempt has run out."

class SubmissionWindowClosedError(ExamEngineError):
    code = "SUBMISSION_WINDOW_CLOSED"
    status_code_default = status.HTTP_410_GONE
    message = "The submission window for this attempt has closed."


# State

class AttemptNotInProgressError(ExamEngineError):
    code = "ATTEMPT_NOT_IN_PROGRESS"
    status_code_default = status.HTTP_409_CONFLICT
    message = "This attempt is no longer in progress."

class GradingNotAllowedError(ExamEngineError):
    code = "GRADING_NOT_ALLOWED"
    status_code_default = status.HTTP_409_CONFLICT
    message = "This answer cannot be graded in the attempt's current state."

class ReviewNotPendingError(ExamEngineError):
    code = "REVIEW_NOT_PENDING"
    status_code_default = status.HTTP_409_CONFLICT
    message = "This attempt is not awaiting review."


# Consistency

class ConsistencyConflictError(ExamEngineError):
    code = "CONSISTENCY_CONFLICT"
    status_code_default = status.HTTP_409_CONFLICT
    message = "The attempt was modified concurrently. Please retry."
