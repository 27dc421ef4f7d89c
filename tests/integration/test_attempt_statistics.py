from datetime import timedelta

from app.core.constants import RoleEnum
from app.schemas.exam_attempt import ExamAttemptSubmit
from app.schemas.user import UserContext
from app.schemas.user_answer import UserAnswerSave
from app.services.exam_attempt import exam_attempt_service
from app.services.report import report_service
from tests.helpers.factories import TEACHER, option_ids, single_choice


def _student(user_id):
    return UserContext(user_id=user_id, role=RoleEnum.STUDENT)


def _take(db, exam, student, correct_answers, now):
    attempt = exam_attempt_service.start_attempt(db, exam_id=exam.id, current_user_context=student, now=now)
    for question, correct in zip(exam.active_questions, correct_answers):
        exam_attempt_service.save_answer(
            db, attempt_id=attempt.id,
            answer_in=UserAnswerSave(question_id=question.id, value=option_ids(question, correct=correct)[0]),
            current_user_context=student, now=now,
        )
    return attempt


def test_statistics_with_no_finished_attempts_are_zero(db_session, exam_factory, now):
    exam = exam_factory()
    _take(db_session, exam, _student(1), [True, True], now)

    stats = report_service.get_attempt_statistics(db_session, exam_id=exam.id, current_user_context=TEACHER)

    assert stats.total_attempts == 0
    assert stats.average_score == 0
    assert stats.pass_rate == 0


def test_statistics_cover_finished_attempts_only(db_session, exam_factory, now):
    exam = exam_factory(questions=[single_choice(marks=5), single_choice(marks=5)], pass_mark=60)

    for user_id, answers in ((1, [True, True]), (2, [True, False]), (3, [False, False])):
        attempt = _take(db_session, exam, _student(user_id), answers, now)
        exam_attempt_service.submit_attempt(
            db_session, attempt_id=attempt.id, submit_in=ExamAttemptSubmit(),
            current_user_context=_student(user_id), now=now + timedelta(minutes=5),
        )
    _take(db_session, exam, _student(4), [True, True], now)

    stats = report_service.get_attempt_statistics(db_session, exam_id=exam.id, current_user_context=TEACHER)

    assert stats.total_attempts == 3
    assert stats.average_score == 5
    assert stats.average_percentage == 50
    assert stats.pass_rate == 33.33
    assert stats.max_score == 10
    assert stats.min_score == 0
