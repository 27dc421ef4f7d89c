from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.schemas.response import APIResponse
from app.utils import deps
from app.schemas.exam_attempt import (
    ExamAttemptDetails, ExamAttemptReviewRelease, ExamAttemptSubmit, ExamAttemptTerminate, ScoredResult, SweepResult
)
from app.schemas.security_event import SecurityEventCreate, SecurityEventResult
from app.schemas.user_answer import AnswerEvaluation, ManualGrade, UserAnswerSave
from app.services.exam_attempt import exam_attempt_service
from app.schemas.user import UserContext

router = APIRouter()

@router.post("/sweep", response_model=APIResponse[SweepResult])
async def sweep_expired_attempts(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.require_admin)
):
    result = exam_attempt_service.sweep_expired_attempts(db)
    return APIResponse(message="Expired attempts swept", data=result)


@router.get("/{attempt_id}", response_model=APIResponse[ExamAttemptDetails])
async def get_exam_attempt(
    *,
    db: Session = Depends(deps.get_db),
    attempt_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    details = exam_attempt_service.get_attempt(db, attempt_id=attempt_id, current_user_context=context)
    return APIResponse(message="Exam attempt retrieved successfully", data=details)


@router.post("/{attempt_id}/answers", response_model=APIResponse[AnswerEvaluation])
async def save_answer(
    *,
    db: Session = Depends(deps.get_db),
    attempt_id: int,
    answer_in: UserAnswerSave,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    evaluation = exam_attempt_service.save_answer(db, attempt_id=attempt_id, answer_in=answer_in, current_user_context=context)
    return APIResponse(message="Answer saved", data=evaluation)


@router.post("/{attempt_id}/security-events", response_model=APIResponse[SecurityEventResult])
async def record_security_event(
    *,
    db: Session = Depends(deps.get_db),
    attempt_id: int,
    event_in: SecurityEventCreate,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    result = exam_attempt_service.record_security_event(db, attempt_id=attempt_id, event_in=event_in, current_user_context=context)
    return APIResponse(message="Security event recorded", data=result)


@router.post("/{attempt_id}/submit", response_model=APIResponse[ScoredResult])
async def submit_exam_attempt(
    *,
    db: Session = Depends(deps.get_db),
    attempt_id: int,
    submit_in: ExamAttemptSubmit,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    result = exam_attempt_service.submit_attempt(db, attempt_id=attempt_id, submit_in=submit_in, current_user_context=context)
    return APIResponse(message="Exam attempt submitted", data=result)


@router.post("/{attempt_id}/terminate", response_model=APIResponse[ScoredResult])
async def terminate_exam_attempt(
    *,
    db: Session = Depends(deps.get_db),
    attempt_id: int,
    terminate_in: ExamAttemptTerminate,
    context: UserContext = Depends(deps.require_staff)
):
    result = exam_attempt_service.terminate_attempt(db, attempt_id=attempt_id, terminate_in=terminate_in, current_user_context=context)
    return APIResponse(message="Exam attempt terminated", data=result)


@router.post("/{attempt_id}/answers/{answer_id}/grade", response_model=APIResponse[ScoredResult])
async def grade_answer(
    *,
    db: Session = Depends(deps.get_db),
    attempt_id: int,
    answer_id: int,
    grade_in: ManualGrade,
    context: UserContext = Depends(deps.require_staff)
):
    result = exam_attempt_service.manual_grade(
        db, attempt_id=attempt_id, answer_id=answer_id, grade_in=grade_in, current_user_context=context
    )
    return APIResponse(message="Answer graded", data=result)


@router.post("/{attempt_id}/review/release", response_model=APIResponse[ScoredResult])
async def release_attempt_review(
    *,
    db: Session = Depends(deps.get_db),
    attempt_id: int,
    release_in: ExamAttemptReviewRelease,
    context: UserContext = Depends(deps.require_staff)
):
    result = exam_attempt_service.release_review(db, attempt_id=attempt_id, release_in=release_in, current_user_context=context)
    return APIResponse(message="Attempt review released", data=result)
