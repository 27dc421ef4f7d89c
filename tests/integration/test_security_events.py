import pytest
from datetime import timedelta

from app.core.config import settings
from app.core.constants import ExamAttemptStatusEnum, SeverityEnum
from app.core.exceptions import AttemptNotInProgressError, SecurityEventValidationError
from app.models.exam_attempt import ExamAttempt
from app.schemas.security_event import SecurityEventCreate
from app.schemas.user_answer import UserAnswerSave
from app.services.exam_attempt import exam_attempt_service
from tests.helpers.factories import STUDENT, option_ids


def _event(db, attempt, event_type, now):
    return exam_attempt_service.record_security_event(
        db, attempt_id=attempt.id, event_in=SecurityEventCreate(event_type=event_type),
        current_user_context=STUDENT, now=now,
    )


def test_events_are_logged_with_severity_and_counters(db_session, exam_factory, now):
    exam = exam_factory()
    attempt = exam_attempt_service.start_attempt(db_session, exam_id=exam.id, current_user_context=STUDENT, now=now)

    first = _event(db_session, attempt, "copy_attempt", now)
    second = _event(db_session, attempt, "paste_attempt", now)
    blur = _event(db_session, attempt, "window_blur", now)

    assert first.event.severity == SeverityEnum.HIGH
    assert second.copy_attempts == 2
    assert blur.event.severity == SeverityEnum.LOW
    assert blur.terminated is False
    assert len(db_session.get(ExamAttempt, attempt.id).security_events) == 3


def test_crossing_the_tab_switch_threshold_terminates(db_session, exam_factory, now):
    exam = exam_factory()
    q1, _ = exam.active_questions
    attempt = exam_attempt_service.start_attempt(db_session, exam_id=exam.id, current_user_context=STUDENT, now=now)
    exam_attempt_service.save_answer(
        db_session, attempt_id=attempt.id,
        answer_in=UserAnswerSave(question_id=q1.id, value=option_ids(q1)[0]),
        current_user_context=STUDENT, now=now,
    )

    for i in range(settings.MAX_TAB_SWITCHES):
        result = _event(db_session, attempt, "tab_switch", now + timedelta(seconds=i))
        assert result.terminated is False

    result = _event(db_session, attempt, "tab_switch", now + timedelta(minutes=1))

    assert result.terminated is True
    assert result.attempt_status == ExamAttemptStatusEnum.TERMINATED
    stored = db_session.get(ExamAttempt, attempt.id)
    assert stored.is_under_review is True
    assert "Tab switches" in stored.review_reason
    assert stored.score == 5

    with pytest.raises(AttemptNotInProgressError):
        _event(db_session, attempt, "tab_switch", now + timedelta(minutes=2))


def test_disabled_enforcement_never_terminates(db_session, exam_factory, now):
    exam = exam_factory(detect_tab_switch=False)
    attempt = exam_attempt_service.start_attempt(db_session, exam_id=exam.id, current_user_context=STUDENT, now=now)

    for i in range(settings.MAX_TAB_SWITCHES + 3):
        result = _event(db_session, attempt, "tab_switch", now + timedelta(seconds=i))

    assert result.terminated is False
    assert result.tab_switches == settings.MAX_TAB_SWITCHES + 3


def test_unknown_event_type_is_rejected(db_session, exam_factory, now):
    exam = exam_factory()
    attempt = exam_attempt_service.start_attempt(db_session, exam_id=exam.id, current_user_context=STUDENT, now=now)

    with pytest.raises(SecurityEventValidationError):
        _event(db_session, attempt, "screen_record", now)
