from typing import List
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.schemas.response import APIResponse
from app.utils import deps
from app.schemas.exam import Exam, ExamCreate, ExamUpdate, ExamAssignmentCreate
from app.schemas.question import QuestionCreate, QuestionUpdate, QuestionWithAnswerKey
from app.schemas.exam_attempt import ClientContext, ExamAttempt, ExamAttemptStart, AttemptStatistics
from app.schemas.policy import PolicyDecision
from app.services.exam import exam_service
from app.services.exam_attempt import exam_attempt_service
from app.services.report import report_service
from app.schemas.user import UserContext

router = APIRouter()

@router.post("/", response_model=APIResponse[Exam], status_code=status.HTTP_201_CREATED)
async def create_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_in: ExamCreate,
    context: UserContext = Depends(deps.require_staff)
):
    new_exam = exam_service.create_exam(db, exam_in=exam_in, current_user_context=context)
    return APIResponse(message="Exam created successfully", data=Exam.model_validate(new_exam))


@router.get("/", response_model=APIResponse[List[Exam]])
async def get_my_exams(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.require_staff),
    skip: int = 0,
    limit: int = 100
):
    exams = exam_service.get_my_exams(db, current_user_context=context, skip=skip, limit=limit)
    return APIResponse(message="Exams retrieved successfully", data=[Exam.model_validate(e) for e in exams])


@router.put("/questions/{question_id}", response_model=APIResponse[QuestionWithAnswerKey])
async def update_question(
    *,
    db: Session = Depends(deps.get_transactional_db),
    question_id: int,
    question_in: QuestionUpdate,
    context: UserContext = Depends(deps.require_staff)
):
    question = exam_service.update_question(db, question_id=question_id, question_in=question_in, current_user_context=context)
    return APIResponse(message="Question updated successfully", data=QuestionWithAnswerKey.model_validate(question))


@router.get("/{exam_id}", response_model=APIResponse[Exam])
async def get_exam(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.require_staff)
):
    exam = exam_service.get_exam(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Exam retrieved successfully", data=Exam.model_validate(exam))


@router.put("/{exam_id}", response_model=APIResponse[Exam])
async def update_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    exam_in: ExamUpdate,
    context: UserContext = Depends(deps.require_staff)
):
    updated_exam = exam_service.update_exam(db, exam_id=exam_id, exam_in=exam_in, current_user_context=context)
    return APIResponse(message="Exam updated successfully", data=Exam.model_validate(updated_exam))


@router.post("/{exam_id}/questions", response_model=APIResponse[QuestionWithAnswerKey], status_code=status.HTTP_201_CREATED)
async def create_question(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    question_in: QuestionCreate,
    context: UserContext = Depends(deps.require_staff)
):
    question = exam_service.create_question(db, exam_id=exam_id, question_in=question_in, current_user_context=context)
    return APIResponse(message="Question created successfully", data=QuestionWithAnswerKey.model_validate(question))


@router.post("/{exam_id}/publish", response_model=APIResponse[Exam])
async def publish_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    context: UserContext = Depends(deps.require_staff)
):
    exam = exam_service.publish_exam(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Exam published successfully", data=Exam.model_validate(exam))


@router.post("/{exam_id}/archive", response_model=APIResponse[Exam])
async def archive_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    context: UserContext = Depends(deps.require_staff)
):
    exam = exam_service.archive_exam(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Exam archived successfully", data=Exam.model_validate(exam))


@router.post("/{exam_id}/assignments", response_model=APIResponse[Exam])
async def assign_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    assignment_in: ExamAssignmentCreate,
    context: UserContext = Depends(deps.require_staff)
):
    exam = exam_service.assign_exam(db, exam_id=exam_id, assignment_in=assignment_in, current_user_context=context)
    return APIResponse(message="Exam assignments updated successfully", data=Exam.model_validate(exam))


@router.get("/{exam_id}/policy", response_model=APIResponse[PolicyDecision])
async def get_start_policy(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    decision = exam_attempt_service.resolve_start_policy(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Start policy resolved", data=decision)


@router.post("/{exam_id}/attempts", response_model=APIResponse[ExamAttempt], status_code=status.HTTP_201_CREATED)
async def start_exam_attempt(
    *,
    request: Request,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    attempt_in: ExamAttemptStart,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    client_context = ClientContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        device_fingerprint=attempt_in.device_fingerprint,
        session_id=attempt_in.session_id,
    )
    attempt = exam_attempt_service.start_attempt(
        db, exam_id=exam_id, current_user_context=context, client_context=client_context
    )
    return APIResponse(message="Exam attempt started", data=exam_attempt_service.attempt_out(attempt, results_visible=False))


@router.get("/{exam_id}/attempts", response_model=APIResponse[List[ExamAttempt]])
async def get_exam_attempts(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    attempts = exam_attempt_service.get_exam_attempts_by_exam(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Exam attempts retrieved successfully", data=attempts)


@router.get("/{exam_id}/statistics", response_model=APIResponse[AttemptStatistics])
async def get_exam_statistics(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.require_staff)
):
    stats = report_service.get_attempt_statistics(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Exam statistics retrieved successfully", data=stats)
