from datetime import datetime
from typing import Sequence

from app.core.constants import (
    ExamStatusEnum, ExamAttemptStatusEnum, PolicyReasonEnum, TimingModeEnum, TERMINAL_ATTEMPT_STATUSES
)
from app.schemas.policy import PolicyDecision
from app.schemas.user import UserContext
from app.utils.clock import as_utc


def is_exam_available(exam, now: datetime) -> bool:
    if exam.status != ExamStatusEnum.PUBLISHED:
        return False
    return as_utc(exam.start_date) <= now < as_utc(exam.end_date)


def is_student_assigned(exam, student: UserContext) -> bool:
    if exam.is_public:
        return True
    if any(a.student_id == student.user_id for a in exam.assignments):
        return True
    assigned_groups = {g.group_name for g in exam.group_assignments}
    return bool(assigned_groups.intersection(student.groups))


def compute_time_budget(exam, question_count: int) -> int:
    whole_exam_seconds = exam.duration_minutes * 60
    if exam.timing_mode == TimingModeEnum.WHOLE_EXAM or not exam.time_per_question_seconds:
        return whole_exam_seconds

    per_question_seconds = exam.time_per_question_seconds * question_count
    if exam.timing_mode == TimingModeEnum.PER_QUESTION:
        return per_question_seconds
    return min(whole_exam_seconds, per_question_seconds)


def resolve_start_policy(exam, student: UserContext, prior_attempts: Sequence, now: datetime,
                         question_count: int) -> PolicyDecision:
    """Decide whether ``student`` may open a new attempt. Rules run in order; first failure wins."""
    if not is_exam_available(exam, now):
        return PolicyDecision(allowed=False, reason=PolicyReasonEnum.EXAM_NOT_AVAILABLE)

    if not is_student_assigned(exam, student):
        return PolicyDecision(allowed=False, reason=PolicyReasonEnum.NOT_ASSIGNED)

    finished = [a for a in prior_attempts if a.status in TERMINAL_ATTEMPT_STATUSES]
    if len(finished) >= exam.max_attempts and not exam.allow_retake:
        return PolicyDecision(allowed=False, reason=PolicyReasonEnum.MAX_ATTEMPTS_REACHED)

    in_progress = next((a for a in prior_attempts if a.status == ExamAttemptStatusEnum.IN_PROGRESS), None)
    if in_progress is not None:
        return PolicyDecision(
            allowed=False,
            reason=PolicyReasonEnum.ATTEMPT_IN_PROGRESS,
            attempt_number=in_progress.attempt_number,
            time_budget_seconds=in_progress.time_budget_seconds,
            existing_attempt_id=in_progress.id,
        )

    # numbers are never reused, so continue after the highest one handed out
    next_number = max((a.attempt_number for a in prior_attempts), default=0) + 1
    return PolicyDecision(
        allowed=True,
        attempt_number=next_number,
        time_budget_seconds=compute_time_budget(exam, question_count),
    )
