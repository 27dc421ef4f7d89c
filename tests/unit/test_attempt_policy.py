from datetime import timedelta
from types import SimpleNamespace

from app.core.constants import ExamAttemptStatusEnum, ExamStatusEnum, PolicyReasonEnum, RoleEnum, TimingModeEnum
from app.schemas.user import UserContext
from app.services.attempt_policy import compute_time_budget, resolve_start_policy
from app.utils.clock import utcnow

NOW = utcnow()
STUDENT = UserContext(user_id=7, role=RoleEnum.STUDENT, groups=["ss2-blue"])


def _exam(**overrides):
    fields = dict(
        status=ExamStatusEnum.PUBLISHED,
        start_date=NOW - timedelta(hours=1),
        end_date=NOW + timedelta(hours=1),
        is_public=True,
        assignments=[],
        group_assignments=[],
        max_attempts=1,
        allow_retake=False,
        duration_minutes=30,
        timing_mode=TimingModeEnum.WHOLE_EXAM,
        time_per_question_seconds=None,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def _attempt(number, status, attempt_id=None):
    return SimpleNamespace(id=attempt_id or number, attempt_number=number, status=status, time_budget_seconds=1800)


def test_first_attempt_is_allowed():
    decision = resolve_start_policy(_exam(), STUDENT, [], NOW, question_count=10)

    assert decision.allowed is True
    assert decision.attempt_number == 1
    assert decision.time_budget_seconds == 1800


def test_unpublished_or_out_of_window_exam_is_not_available():
    for exam in (
        _exam(status=ExamStatusEnum.DRAFT),
        _exam(status=ExamStatusEnum.ARCHIVED),
        _exam(start_date=NOW + timedelta(minutes=5)),
        _exam(end_date=NOW),
    ):
        decision = resolve_start_policy(exam, STUDENT, [], NOW, question_count=1)
        assert decision.reason == PolicyReasonEnum.EXAM_NOT_AVAILABLE


def test_private_exam_checks_direct_and_group_assignment():
    private = _exam(is_public=False)
    assert resolve_start_policy(private, STUDENT, [], NOW, 1).reason == PolicyReasonEnum.NOT_ASSIGNED

    direct = _exam(is_public=False, assignments=[SimpleNamespace(student_id=7)])
    assert resolve_start_policy(direct, STUDENT, [], NOW, 1).allowed is True

    grouped = _exam(is_public=False, group_assignments=[SimpleNamespace(group_name="ss2-blue")])
    assert resolve_start_policy(grouped, STUDENT, [], NOW, 1).allowed is True


def test_max_attempts_counts_finished_attempts():
    prior = [_attempt(1, ExamAttemptStatusEnum.GRADED)]

    assert resolve_start_policy(_exam(), STUDENT, prior, NOW, 1).reason == PolicyReasonEnum.MAX_ATTEMPTS_REACHED

    decision = resolve_start_policy(_exam(max_attempts=2), STUDENT, prior, NOW, 1)
    assert decision.allowed is True
    assert decision.attempt_number == 2

    assert resolve_start_policy(_exam(allow_retake=True), STUDENT, prior, NOW, 1).allowed is True


def test_open_attempt_is_reported_for_resume():
    prior = [_attempt(1, ExamAttemptStatusEnum.IN_PROGRESS, attempt_id=42)]

    decision = resolve_start_policy(_exam(max_attempts=3), STUDENT, prior, NOW, 1)

    assert decision.allowed is False
    assert decision.reason == PolicyReasonEnum.ATTEMPT_IN_PROGRESS
    assert decision.existing_attempt_id == 42


def test_attempt_numbers_continue_after_the_highest():
    prior = [_attempt(1, ExamAttemptStatusEnum.GRADED), _attempt(3, ExamAttemptStatusEnum.ABANDONED)]

    decision = resolve_start_policy(_exam(max_attempts=5), STUDENT, prior, NOW, 1)

    assert decision.attempt_number == 4


def test_time_budget_per_timing_mode():
    assert compute_time_budget(_exam(duration_minutes=30), 10) == 1800
    per_question = _exam(timing_mode=TimingModeEnum.PER_QUESTION, time_per_question_seconds=60)
    assert compute_time_budget(per_question, 10) == 600
    hybrid = _exam(timing_mode=TimingModeEnum.HYBRID, time_per_question_seconds=240, duration_minutes=30)
    assert compute_time_budget(hybrid, 10) == 1800
    assert compute_time_budget(hybrid, 5) == 1200
