import pytest
from datetime import timedelta
from fastapi import HTTPException

from app.core.constants import ExamAttemptStatusEnum
from app.core.exceptions import ReviewNotPendingError
from app.models.exam_attempt import ExamAttempt
from app.schemas.exam_attempt import ExamAttemptReviewRelease, ExamAttemptTerminate
from app.schemas.user_answer import UserAnswerSave
from app.services.exam_attempt import exam_attempt_service
from tests.helpers.factories import STUDENT, TEACHER, option_ids


def _terminated_attempt(db, exam_factory, now):
    exam = exam_factory()
    q1, _ = exam.active_questions
    attempt = exam_attempt_service.start_attempt(db, exam_id=exam.id, current_user_context=STUDENT, now=now)
    exam_attempt_service.save_answer(
        db, attempt_id=attempt.id,
        answer_in=UserAnswerSave(question_id=q1.id, value=option_ids(q1)[0]),
        current_user_context=STUDENT, now=now,
    )
    exam_attempt_service.terminate_attempt(
        db, attempt_id=attempt.id, terminate_in=ExamAttemptTerminate(reason="Second screen visible"),
        current_user_context=TEACHER, now=now + timedelta(minutes=1),
    )
    return exam, attempt


def test_score_is_withheld_from_the_student_while_under_review(db_session, exam_factory, now):
    exam, attempt = _terminated_attempt(db_session, exam_factory, now)

    student_view = exam_attempt_service.get_attempt(
        db_session, attempt_id=attempt.id, current_user_context=STUDENT, now=now + timedelta(minutes=2)
    )
    assert student_view.attempt.status == ExamAttemptStatusEnum.TERMINATED
    assert student_view.attempt.is_under_review is True
    assert student_view.results_visible is False
    assert student_view.attempt.score is None
    assert student_view.attempt.passed is None
    assert student_view.attempt.user_answers[0].is_correct is None

    listed = exam_attempt_service.get_exam_attempts_by_exam(
        db_session, exam_id=exam.id, current_user_context=STUDENT, now=now + timedelta(minutes=2)
    )
    assert listed[0].score is None

    staff_view = exam_attempt_service.get_attempt(
        db_session, attempt_id=attempt.id, current_user_context=TEACHER, now=now + timedelta(minutes=2)
    )
    assert staff_view.attempt.score == 5


def test_releasing_the_review_shows_the_result(db_session, exam_factory, now):
    _, attempt = _terminated_attempt(db_session, exam_factory, now)

    released = exam_attempt_service.release_review(
        db_session, attempt_id=attempt.id, release_in=ExamAttemptReviewRelease(notes="Cleared after call"),
        current_user_context=TEACHER, now=now + timedelta(hours=1),
    )

    assert released.is_under_review is False
    assert released.score == 5
    stored = db_session.get(ExamAttempt, attempt.id)
    assert stored.reviewed_by == TEACHER.user_id
    assert stored.review_notes == "Cleared after call"
    assert stored.status == ExamAttemptStatusEnum.TERMINATED

    student_view = exam_attempt_service.get_attempt(
        db_session, attempt_id=attempt.id, current_user_context=STUDENT, now=now + timedelta(hours=2)
    )
    assert student_view.results_visible is True
    assert student_view.attempt.score == 5
    assert student_view.attempt.user_answers[0].is_correct is True


def test_review_can_only_be_released_once_and_only_by_staff(db_session, exam_factory, now):
    _, attempt = _terminated_attempt(db_session, exam_factory, now)

    with pytest.raises(HTTPException) as exc_info:
        exam_attempt_service.release_review(
            db_session, attempt_id=attempt.id, release_in=ExamAttemptReviewRelease(),
            current_user_context=STUDENT, now=now,
        )
    assert exc_info.value.status_code == 403

    exam_attempt_service.release_review(
        db_session, attempt_id=attempt.id, release_in=ExamAttemptReviewRelease(),
        current_user_context=TEACHER, now=now,
    )
    with pytest.raises(ReviewNotPendingError) as exc_info:
        exam_attempt_service.release_review(
            db_session, attempt_id=attempt.id, release_in=ExamAttemptReviewRelease(),
            current_user_context=TEACHER, now=now,
        )
    assert exc_info.value.code == "REVIEW_NOT_PENDING"
