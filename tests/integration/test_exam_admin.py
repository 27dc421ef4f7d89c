import pytest
from datetime import timedelta
from fastapi import HTTPException

from app.core.constants import ExamStatusEnum, QuestionTypeEnum, TimingModeEnum
from app.core.exceptions import ExamConfigurationError, ExamNotAvailableError, QuestionConfigurationError
from app.models.question import Question
from app.schemas.exam import ExamCreate, ExamSettings, ExamUpdate
from app.schemas.exam_attempt import ExamAttemptSubmit
from app.schemas.question import QuestionCreate, QuestionOptionCreate, QuestionUpdate
from app.schemas.user_answer import UserAnswerSave
from app.services.exam import exam_service
from app.services.exam_attempt import exam_attempt_service
from tests.helpers.factories import (
    ADMIN, OTHER_STUDENT, STUDENT, TEACHER, essay, multiple_choice, option_ids, short_answer, single_choice, true_false,
)


def _exam_in(now, **settings_overrides):
    return ExamCreate(
        title="Chemistry",
        duration_minutes=30,
        start_date=now - timedelta(hours=1),
        end_date=now + timedelta(hours=1),
        pass_mark=50,
        settings=ExamSettings(**settings_overrides),
    )


def test_timing_configuration_is_validated(db_session, now):
    with pytest.raises(ExamConfigurationError):
        exam_service.create_exam(db_session, exam_in=_exam_in(now, time_per_question_seconds=60), current_user_context=TEACHER)

    with pytest.raises(ExamConfigurationError):
        exam_service.create_exam(
            db_session, exam_in=_exam_in(now, timing_mode=TimingModeEnum.PER_QUESTION), current_user_context=TEACHER
        )

    exam = exam_service.create_exam(
        db_session,
        exam_in=_exam_in(now, timing_mode=TimingModeEnum.HYBRID, time_per_question_seconds=60),
        current_user_context=TEACHER,
    )
    assert exam.status == ExamStatusEnum.DRAFT
    assert exam.created_by == TEACHER.user_id


def test_window_and_score_floor_are_validated(db_session, now):
    bad_window = _exam_in(now)
    bad_window.end_date = bad_window.start_date
    with pytest.raises(ExamConfigurationError):
        exam_service.create_exam(db_session, exam_in=bad_window, current_user_context=TEACHER)

    with pytest.raises(ExamConfigurationError):
        exam_service.create_exam(db_session, exam_in=_exam_in(now, score_floor=5), current_user_context=TEACHER)


def test_students_cannot_create_exams(db_session, now):
    with pytest.raises(HTTPException) as exc_info:
        exam_service.create_exam(db_session, exam_in=_exam_in(now), current_user_context=STUDENT)
    assert exc_info.value.status_code == 403


@pytest.mark.parametrize("question_in", [
    QuestionCreate(
        question_type=QuestionTypeEnum.SINGLE_CHOICE, question_text="Two right answers",
        options=[QuestionOptionCreate(text="A", is_correct=True), QuestionOptionCreate(text="B", is_correct=True)],
    ),
    QuestionCreate(
        question_type=QuestionTypeEnum.MULTIPLE_CHOICE, question_text="No right answer",
        options=[QuestionOptionCreate(text="A"), QuestionOptionCreate(text="B")],
    ),
    QuestionCreate(
        question_type=QuestionTypeEnum.TRUE_FALSE, question_text="Odd labels",
        options=[QuestionOptionCreate(text="Yes", is_correct=True), QuestionOptionCreate(text="No")],
    ),
    QuestionCreate(
        question_type=QuestionTypeEnum.SINGLE_CHOICE, question_text="One option",
        options=[QuestionOptionCreate(text="A", is_correct=True)],
    ),
    QuestionCreate(question_type=QuestionTypeEnum.SHORT_ANSWER, question_text="No key"),
    QuestionCreate(question_type=QuestionTypeEnum.ESSAY, question_text="Keyed essay", accepted_answers=["x"]),
])
def test_question_invariants(db_session, exam_factory, question_in):
    exam = exam_factory(publish=False)

    with pytest.raises(QuestionConfigurationError):
        exam_service.create_question(db_session, exam_id=exam.id, question_in=question_in, current_user_context=TEACHER)


def test_every_question_kind_can_be_added(db_session, exam_factory):
    exam = exam_factory(
        questions=[single_choice(), multiple_choice(), true_false(), short_answer(), essay()],
    )

    assert [q.question_type for q in exam.active_questions] == [
        QuestionTypeEnum.SINGLE_CHOICE,
        QuestionTypeEnum.MULTIPLE_CHOICE,
        QuestionTypeEnum.TRUE_FALSE,
        QuestionTypeEnum.SHORT_ANSWER,
        QuestionTypeEnum.ESSAY,
    ]
    assert [q.order for q in exam.active_questions] == [1, 2, 3, 4, 5]


def test_publish_requires_a_question_and_archive_blocks_attempts(db_session, exam_factory, now):
    empty = exam_factory(questions=[], publish=False)
    with pytest.raises(ExamConfigurationError):
        exam_service.publish_exam(db_session, exam_id=empty.id, current_user_context=TEACHER)

    exam = exam_factory()
    exam_service.archive_exam(db_session, exam_id=exam.id, current_user_context=TEACHER)

    with pytest.raises(ExamNotAvailableError):
        exam_attempt_service.start_attempt(db_session, exam_id=exam.id, current_user_context=STUDENT, now=now)
    with pytest.raises(ExamConfigurationError):
        exam_service.update_exam(db_session, exam_id=exam.id, exam_in=ExamUpdate(title="Renamed"), current_user_context=TEACHER)


def test_only_the_owner_or_an_admin_manages_an_exam(db_session, exam_factory):
    exam = exam_factory(publish=False)
    other_teacher = TEACHER.model_copy(update={"user_id": 501})

    with pytest.raises(HTTPException):
        exam_service.publish_exam(db_session, exam_id=exam.id, current_user_context=other_teacher)

    published = exam_service.publish_exam(db_session, exam_id=exam.id, current_user_context=ADMIN)
    assert published.status == ExamStatusEnum.PUBLISHED


def test_question_is_edited_in_place_before_any_attempt(db_session, exam_factory):
    exam = exam_factory(publish=False)
    q1 = exam.active_questions[0]

    updated = exam_service.update_question(
        db_session, question_id=q1.id, question_in=QuestionUpdate(question_text="Reworded", marks=7),
        current_user_context=TEACHER,
    )

    assert updated.id == q1.id
    assert updated.version == 1
    assert updated.question_text == "Reworded"
    assert updated.marks == 7
    assert len(updated.options) == 4


def test_editing_a_referenced_question_creates_a_new_version(db_session, exam_factory, now):
    exam = exam_factory()
    q1, q2 = exam.active_questions
    attempt = exam_attempt_service.start_attempt(db_session, exam_id=exam.id, current_user_context=STUDENT, now=now)
    old_correct = option_ids(q1)[0]

    new_version = exam_service.update_question(
        db_session,
        question_id=q1.id,
        question_in=QuestionUpdate(options=[
            QuestionOptionCreate(text="A"),
            QuestionOptionCreate(text="B", is_correct=True),
        ]),
        current_user_context=TEACHER,
    )

    assert new_version.id != q1.id
    assert new_version.version == 2
    assert new_version.parent_question_id == q1.id
    assert db_session.get(Question, q1.id).is_active is False

    # The in-flight attempt still grades against the row it started with
    evaluation = exam_attempt_service.save_answer(
        db_session, attempt_id=attempt.id,
        answer_in=UserAnswerSave(question_id=q1.id, value=old_correct),
        current_user_context=STUDENT, now=now + timedelta(minutes=1),
    )
    assert evaluation.is_correct is True

    # A fresh attempt sees the new version
    exam_attempt_service.submit_attempt(
        db_session, attempt_id=attempt.id, submit_in=ExamAttemptSubmit(),
        current_user_context=STUDENT, now=now + timedelta(minutes=2),
    )
    other = exam_attempt_service.start_attempt(
        db_session, exam_id=exam.id, current_user_context=OTHER_STUDENT, now=now + timedelta(minutes=3)
    )
    assert set(other.question_order) == {new_version.id, q2.id}
