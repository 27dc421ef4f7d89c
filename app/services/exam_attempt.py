import logging
import math
import random
from datetime import datetime, timedelta
from functools import partial
from typing import Callable, List, Optional, TypeVar

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.core.constants import (
    ExamAttemptStatusEnum, GRADEABLE_ATTEMPT_STATUSES, GradingMethodEnum, MANUALLY_GRADABLE_TYPES,
    PolicyReasonEnum, QuestionTypeEnum,
)
from app.core.exceptions import (
    POLICY_ERRORS, AnswerValidationError, AttemptExpiredError, AttemptNotInProgressError,
    ConsistencyConflictError, GradingNotAllowedError, ReviewNotPendingError, SubmissionWindowClosedError,
)
from app.crud.exam import exam as crud_exam
from app.crud.exam_attempt import exam_attempt as crud_exam_attempt
from app.crud.question import question as crud_question
from app.crud.security_event import security_event as crud_security_event
from app.crud.user_answer import user_answer as crud_user_answer
from app.models.exam import Exam
from app.models.exam_attempt import ExamAttempt
from app.schemas.exam_attempt import (
    ClientContext, ExamAttempt as ExamAttemptSchema, ExamAttemptDetails, ExamAttemptReviewRelease,
    ExamAttemptSubmit, ExamAttemptTerminate, ScoredResult, ScoreSummary, SweepResult,
)
from app.schemas.policy import PolicyDecision
from app.schemas.question import Question as QuestionSchema, QuestionKey, QuestionSnapshot
from app.schemas.security_event import SecurityEvent as SecurityEventSchema, SecurityEventCreate, SecurityEventResult
from app.schemas.user import UserContext
from app.schemas.user_answer import AnswerEvaluation, ManualGrade, UserAnswerSave
from app.services import attempt_policy
from app.services.evaluator import evaluate
from app.services.scoring import aggregate_score
from app.services.security_log import classify_severity, counter_for, parse_event_type, termination_reason
from app.utils.clock import as_utc, utcnow
from app.utils.permission import PermissionHelper as permission_helper

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ExamAttemptService:

    # Loading and guards

    def _get_exam_or_404(self, db: Session, exam_id: int) -> Exam:
        exam = crud_exam.get(db, id=exam_id)
        if not exam:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found.")
        return exam

    def _get_attempt_or_404(self, db: Session, attempt_id: int) -> ExamAttempt:
        attempt = crud_exam_attempt.get(db, id=attempt_id)
        if not attempt:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam attempt not found.")
        return attempt

    def _require_in_progress(self, attempt: ExamAttempt):
        if attempt.status != ExamAttemptStatusEnum.IN_PROGRESS:
            raise AttemptNotInProgressError(details={"status": attempt.status.value})

    def _run_with_retries(self, db: Session, operation: str, func: Callable[[], T]) -> T:
        """Run a read-modify-write unit, retrying when a concurrent writer bumped the attempt version."""
        for try_number in range(1, settings.ATTEMPT_UPDATE_MAX_RETRIES + 1):
            try:
                return func()
            except (StaleDataError, IntegrityError) as e:
                db.rollback()
                logger.warning(f"{operation} hit a concurrent update (try {try_number}): {e}")
        logger.error(f"{operation} gave up after {settings.ATTEMPT_UPDATE_MAX_RETRIES} tries")
        raise ConsistencyConflictError(details={"operation": operation})

    # Time

    def _deadline(self, attempt: ExamAttempt) -> datetime:
        return as_utc(attempt.start_time) + timedelta(seconds=attempt.time_budget_seconds)

    def _late_window_end(self, attempt: ExamAttempt, exam: Exam) -> datetime:
        deadline = self._deadline(attempt)
        if not exam.allow_late_submission:
            return deadline
        return deadline + timedelta(minutes=exam.late_window_minutes)

    def _expire_if_due(self, db: Session, attempt: ExamAttempt, exam: Exam, now: datetime) -> bool:
        """Auto-submit an open attempt whose time and late window have both run out. Caller commits."""
        if attempt.status != ExamAttemptStatusEnum.IN_PROGRESS or not exam.auto_submit:
            return False
        if now < self._late_window_end(attempt, exam):
            return False

        self._finalize(db, attempt, exam, ExamAttemptStatusEnum.AUTO_SUBMITTED,
                       end_time=self._deadline(attempt), now=now)
        logger.info(f"Attempt {attempt.id} auto-submitted at deadline {self._deadline(attempt).isoformat()}")
        return True

    def _is_abandoned(self, attempt: ExamAttempt, exam: Exam, now: datetime) -> bool:
        cutoff = self._late_window_end(attempt, exam) + timedelta(minutes=settings.ABANDON_GRACE_MINUTES)
        if now < cutoff:
            return False
        last_contact = as_utc(attempt.last_activity_at)
        return last_contact is None or last_contact <= self._deadline(attempt)

    def _is_closable(self, attempt, exam: Exam, now: datetime) -> bool:
        """Whether the sweep would close ``attempt`` now. Accepts an ORM row or a timings row."""
        if exam.auto_submit:
            return now >= self._late_window_end(attempt, exam)
        return self._is_abandoned(attempt, exam, now)

    # Result release

    def _results_visible(self, attempt: ExamAttempt, exam: Exam, now: datetime) -> bool:
        if attempt.status == ExamAttemptStatusEnum.IN_PROGRESS or attempt.is_under_review:
            return False
        if exam.show_results_immediately:
            return True
        release_at = as_utc(exam.show_results_after)
        return release_at is not None and now >= release_at

    def attempt_out(self, attempt: ExamAttempt, results_visible: bool) -> ExamAttemptSchema:
        attempt_out = ExamAttemptSchema.model_validate(attempt)
        if results_visible:
            return attempt_out
        return attempt_out.model_copy(update={
            "score": None,
            "percentage": None,
            "passed": None,
            "grade": None,
            "user_answers": [
                a.model_copy(update={"is_correct": None, "marks_awarded": None, "feedback": None})
                for a in attempt_out.user_answers
            ],
        })

    def _answer_key(self, question) -> QuestionKey:
        return QuestionKey(
            question_id=question.id,
            explanation=question.explanation,
            correct_option_ids=[o.id for o in question.options if o.is_correct],
            accepted_answers=list(question.accepted_answers or []),
        )

    # Scoring

    def _evaluate_unscored(self, db: Session, attempt: ExamAttempt, answers: list, now: datetime):
        unscored = [a for a in answers if a.evaluated_at is None and not a.manually_graded]
        if not unscored:
            return
        questions = {q.id: q for q in crud_question.get_by_ids(db, ids=[a.question_id for a in unscored])}
        for answer in unscored:
            result = evaluate(
                QuestionSnapshot.from_question(questions[answer.question_id]),
                answer.value,
                attempt.negative_marking_snapshot,
                attempt.negative_marking_percentage_snapshot,
            )
            answer.is_correct = result.is_correct
            answer.marks_awarded = result.marks_awarded
            answer.evaluated_at = now

    def _pending_count(self, answers: list) -> int:
        return sum(1 for a in answers if a.is_correct is None and not a.manually_graded)

    def _score(self, attempt: ExamAttempt, exam: Exam, answers: list, late_penalty: float) -> ScoreSummary:
        return aggregate_score(
            [a.marks_awarded for a in answers],
            attempt.total_marks,
            attempt.pass_mark_snapshot,
            late_penalty_percentage=late_penalty,
            score_floor=exam.score_floor,
            grade_scale=exam.grade_scale or settings.DEFAULT_GRADE_SCALE,
        )

    def _apply_summary(self, attempt: ExamAttempt, summary: ScoreSummary):
        attempt.score = summary.score
        attempt.percentage = summary.percentage
        attempt.passed = summary.passed
        attempt.grade = summary.grade
        attempt.late_penalty_applied = summary.late_penalty_applied

    def _finalize(self, db: Session, attempt: ExamAttempt, exam: Exam, new_status: ExamAttemptStatusEnum,
                  end_time: datetime, now: datetime, late_penalty: float = 0) -> int:
        """Score every stored answer and close the attempt. Returns how many answers still need a grader."""
        answers = crud_user_answer.get_all_by_attempt(db, exam_attempt_id=attempt.id)
        self._evaluate_unscored(db, attempt, answers, now)
        self._apply_summary(attempt, self._score(attempt, exam, answers, late_penalty))

        attempt.end_time = end_time
        attempt.time_taken_seconds = max(0, int((end_time - as_utc(attempt.start_time)).total_seconds()))

        pending = self._pending_count(answers)
        if new_status == ExamAttemptStatusEnum.SUBMITTED and pending == 0 and exam.auto_finalize_results:
            new_status = ExamAttemptStatusEnum.GRADED
            attempt.graded_at = now
        attempt.status = new_status
        return pending

    def _terminate(self, db: Session, attempt: ExamAttempt, exam: Exam, reason: str, now: datetime):
        self._finalize(db, attempt, exam, ExamAttemptStatusEnum.TERMINATED,
                       end_time=min(now, self._deadline(attempt)), now=now)
        attempt.is_under_review = True
        attempt.review_reason = reason
        logger.warning(f"Attempt {attempt.id} terminated: {reason}")

    def _scored_result(self, attempt: ExamAttempt, pending: int, results_visible: bool = True) -> ScoredResult:
        result = ScoredResult(
            attempt_id=attempt.id,
            status=attempt.status,
            score=attempt.score or 0,
            total_marks=attempt.total_marks,
            percentage=attempt.percentage,
            passed=bool(attempt.passed),
            grade=attempt.grade,
            late_penalty_applied=attempt.late_penalty_applied,
            time_taken_seconds=attempt.time_taken_seconds,
            is_under_review=attempt.is_under_review,
            pending_manual_grading=pending,
        )
        if results_visible:
            return result
        return result.model_copy(update={"score": None, "percentage": None, "passed": None, "grade": None})

    # Policy and start

    def _load_policy(self, db: Session, exam: Exam, current_user_context: UserContext, now: datetime) -> PolicyDecision:
        prior_attempts = crud_exam_attempt.get_by_user_and_exam(
            db, user_id=current_user_context.user_id, exam_id=exam.id
        )
        expired = [a for a in prior_attempts if self._expire_if_due(db, a, exam, now)]
        if expired:
            db.commit()
        return attempt_policy.resolve_start_policy(
            exam, current_user_context, prior_attempts, now, len(exam.active_questions)
        )

    def resolve_start_policy(self, db: Session, exam_id: int, current_user_context: UserContext,
                             now: Optional[datetime] = None) -> PolicyDecision:
        now = now or utcnow()
        exam = self._get_exam_or_404(db, exam_id)
        return self._load_policy(db, exam, current_user_context, now)

    def _build_snapshot(self, exam: Exam, decision: PolicyDecision) -> dict:
        questions = list(exam.active_questions)
        if exam.randomize_questions:
            random.shuffle(questions)

        option_order = None
        if exam.randomize_options:
            option_order = {}
            for q in questions:
                ids = [o.id for o in q.options]
                random.shuffle(ids)
                option_order[str(q.id)] = ids

        return {
            "attempt_number": decision.attempt_number,
            "time_budget_seconds": decision.time_budget_seconds,
            "total_marks": math.fsum(q.marks for q in questions),
            "pass_mark_snapshot": exam.pass_mark,
            "negative_marking_snapshot": exam.negative_marking,
            "negative_marking_percentage_snapshot": exam.negative_marking_percentage,
            "question_order": [q.id for q in questions],
            "option_order": option_order,
        }

    def start_attempt(self, db: Session, exam_id: int, current_user_context: UserContext,
                      client_context: Optional[ClientContext] = None,
                      now: Optional[datetime] = None) -> ExamAttempt:
        now = now or utcnow()
        if not permission_helper.is_student(current_user_context):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only students can start exam attempts.")

        exam = self._get_exam_or_404(db, exam_id)
        decision = self._load_policy(db, exam, current_user_context, now)

        if not decision.allowed:
            if decision.reason == PolicyReasonEnum.ATTEMPT_IN_PROGRESS:
                logger.info(f"Resuming attempt {decision.existing_attempt_id} for student {current_user_context.user_id}")
                return self._get_attempt_or_404(db, decision.existing_attempt_id)
            raise POLICY_ERRORS[decision.reason]()

        client_context = client_context or ClientContext()
        attempt_in = {
            "exam_id": exam.id,
            "student_id": current_user_context.user_id,
            "status": ExamAttemptStatusEnum.IN_PROGRESS,
            "start_time": now,
            "last_activity_at": now,
            **self._build_snapshot(exam, decision),
            **client_context.model_dump(),
        }

        try:
            new_attempt = crud_exam_attempt.create(db, obj_in=attempt_in)
        except IntegrityError:
            # Lost the race against a concurrent start; hand back the winner
            db.rollback()
            existing = crud_exam_attempt.get_in_progress(db, user_id=current_user_context.user_id, exam_id=exam.id)
            if existing is None:
                raise ConsistencyConflictError(details={"operation": "start_attempt"})
            logger.info(f"Concurrent start for exam {exam.id} resolved to attempt {existing.id}")
            return existing

        logger.info(
            f"Student {current_user_context.user_id} started attempt {new_attempt.id} "
            f"(#{new_attempt.attempt_number}) on exam {exam.id}"
        )
        return new_attempt

    # Answers

    def save_answer(self, db: Session, attempt_id: int, answer_in: UserAnswerSave,
                    current_user_context: UserContext, now: Optional[datetime] = None) -> AnswerEvaluation:
        now = now or utcnow()
        return self._run_with_retries(
            db, "save_answer", partial(self._save_answer, db, attempt_id, answer_in, current_user_context, now)
        )

    def _save_answer(self, db: Session, attempt_id: int, answer_in: UserAnswerSave,
                     current_user_context: UserContext, now: datetime) -> AnswerEvaluation:
        attempt = self._get_attempt_or_404(db, attempt_id)
        permission_helper.require_attempt_owner(current_user_context, attempt)
        self._require_in_progress(attempt)

        deadline = self._deadline(attempt)
        if now >= deadline:
            if self._expire_if_due(db, attempt, attempt.exam, now):
                db.commit()
            raise AttemptExpiredError(details={"deadline": deadline.isoformat()})

        if answer_in.question_id not in attempt.question_order:
            raise AnswerValidationError(f"Question {answer_in.question_id} is not part of this attempt.")

        existing_answer = crud_user_answer.get_by_attempt_and_question(
            db, exam_attempt_id=attempt.id, question_id=answer_in.question_id
        )
        if existing_answer and as_utc(existing_answer.answered_at) > now:
            # Last write wins by receipt time, not by commit order
            logger.info(
                f"Ignoring save for question {answer_in.question_id} on attempt {attempt.id}: "
                f"received {now.isoformat()}, stored answer is newer"
            )
            return AnswerEvaluation(
                question_id=answer_in.question_id,
                is_correct=existing_answer.is_correct,
                marks_awarded=existing_answer.marks_awarded,
            )

        question = crud_question.get(db, id=answer_in.question_id)
        result = evaluate(
            QuestionSnapshot.from_question(question),
            answer_in.value,
            attempt.negative_marking_snapshot,
            attempt.negative_marking_percentage_snapshot,
        )

        answer_data = {
            "value": answer_in.value,
            "is_correct": result.is_correct,
            "marks_awarded": result.marks_awarded,
            "time_spent_seconds": answer_in.time_spent_seconds,
            "is_flagged": answer_in.is_flagged,
            "answered_at": now,
            "evaluated_at": now,
        }
        if existing_answer:
            crud_user_answer.update(db, db_obj=existing_answer, obj_in=answer_data, commit=False)
        else:
            crud_user_answer.create(
                db,
                obj_in={"exam_attempt_id": attempt.id, "question_id": answer_in.question_id, **answer_data},
                commit=False,
            )

        # Touching the attempt row bumps its version, which serializes saves against submit
        attempt.last_activity_at = now
        attempt.auto_save_count += 1
        db.commit()

        return AnswerEvaluation(
            question_id=answer_in.question_id,
            is_correct=result.is_correct,
            marks_awarded=result.marks_awarded,
        )

    # Security events

    def record_security_event(self, db: Session, attempt_id: int, event_in: SecurityEventCreate,
                              current_user_context: UserContext, now: Optional[datetime] = None) -> SecurityEventResult:
        now = now or utcnow()
        event_type = parse_event_type(event_in.event_type)
        return self._run_with_retries(
            db, "record_security_event",
            partial(self._record_security_event, db, attempt_id, event_type, event_in.details, current_user_context, now),
        )

    def _record_security_event(self, db: Session, attempt_id: int, event_type, details: Optional[str],
                               current_user_context: UserContext, now: datetime) -> SecurityEventResult:
        attempt = self._get_attempt_or_404(db, attempt_id)
        permission_helper.require_attempt_owner(current_user_context, attempt)
        self._require_in_progress(attempt)

        exam = attempt.exam
        deadline = self._deadline(attempt)
        if now >= deadline:
            if self._expire_if_due(db, attempt, exam, now):
                db.commit()
            raise AttemptExpiredError(details={"deadline": deadline.isoformat()})

        event = crud_security_event.create(
            db,
            obj_in={
                "exam_attempt_id": attempt.id,
                "event_type": event_type,
                "severity": classify_severity(event_type),
                "details": details,
                "created_at": now,
            },
            commit=False,
        )

        counter = counter_for(event_type)
        if counter:
            setattr(attempt, counter, getattr(attempt, counter) + 1)
        attempt.last_activity_at = now

        counters = {
            "tab_switches": attempt.tab_switches,
            "copy_attempts": attempt.copy_attempts,
            "full_screen_exits": attempt.full_screen_exits,
            "right_clicks": attempt.right_clicks,
        }
        reason = termination_reason(counters, exam)
        if reason:
            self._terminate(db, attempt, exam, reason, now)

        db.commit()

        return SecurityEventResult(
            event=SecurityEventSchema.model_validate(event),
            attempt_status=attempt.status,
            terminated=reason is not None,
            **counters,
        )

    # Submission

    def submit_attempt(self, db: Session, attempt_id: int, submit_in: ExamAttemptSubmit,
                       current_user_context: UserContext, now: Optional[datetime] = None) -> ScoredResult:
        now = now or utcnow()
        return self._run_with_retries(
            db, "submit_attempt", partial(self._submit_attempt, db, attempt_id, submit_in, current_user_context, now)
        )

    def _submit_attempt(self, db: Session, attempt_id: int, submit_in: ExamAttemptSubmit,
                        current_user_context: UserContext, now: datetime) -> ScoredResult:
        attempt = self._get_attempt_or_404(db, attempt_id)
        permission_helper.require_attempt_owner(current_user_context, attempt)
        self._require_in_progress(attempt)

        exam = attempt.exam
        late_penalty = 0
        if now >= self._deadline(attempt):
            window_end = self._late_window_end(attempt, exam)
            if not exam.allow_late_submission or now >= window_end:
                if self._expire_if_due(db, attempt, exam, now):
                    db.commit()
                raise SubmissionWindowClosedError(details={"window_closed_at": window_end.isoformat()})
            late_penalty = exam.late_submission_penalty
            logger.info(f"Attempt {attempt.id} submitted late; applying {late_penalty}% penalty")

        attempt.client_time_remaining = submit_in.client_time_remaining
        attempt.submitted_at = now
        pending = self._finalize(db, attempt, exam, ExamAttemptStatusEnum.SUBMITTED,
                                 end_time=now, now=now, late_penalty=late_penalty)
        db.commit()

        logger.info(f"Attempt {attempt.id} submitted with score {attempt.score}/{attempt.total_marks}")
        return self._scored_result(attempt, pending, self._results_visible(attempt, exam, now))

    def terminate_attempt(self, db: Session, attempt_id: int, terminate_in: ExamAttemptTerminate,
                          current_user_context: UserContext, now: Optional[datetime] = None) -> ScoredResult:
        now = now or utcnow()
        return self._run_with_retries(
            db, "terminate_attempt",
            partial(self._terminate_attempt, db, attempt_id, terminate_in, current_user_context, now),
        )

    def _terminate_attempt(self, db: Session, attempt_id: int, terminate_in: ExamAttemptTerminate,
                           current_user_context: UserContext, now: datetime) -> ScoredResult:
        attempt = self._get_attempt_or_404(db, attempt_id)
        permission_helper.require_exam_management(current_user_context, attempt.exam)
        self._require_in_progress(attempt)

        self._terminate(db, attempt, attempt.exam, terminate_in.reason, now)
        db.commit()

        answers = crud_user_answer.get_all_by_attempt(db, exam_attempt_id=attempt.id)
        return self._scored_result(attempt, self._pending_count(answers))

    # Sweep

    def _sweep_one(self, db: Session, attempt_id: int, now: datetime) -> Optional[ExamAttemptStatusEnum]:
        attempt = crud_exam_attempt.get(db, id=attempt_id)
        if attempt is None or attempt.status != ExamAttemptStatusEnum.IN_PROGRESS:
            return None

        exam = attempt.exam
        if self._expire_if_due(db, attempt, exam, now):
            db.commit()
            return ExamAttemptStatusEnum.AUTO_SUBMITTED

        if not exam.auto_submit and self._is_abandoned(attempt, exam, now):
            self._finalize(db, attempt, exam, ExamAttemptStatusEnum.ABANDONED,
                           end_time=self._deadline(attempt), now=now)
            db.commit()
            logger.info(f"Attempt {attempt.id} marked abandoned")
            return ExamAttemptStatusEnum.ABANDONED

        return None

    def _sweep_candidates(self, db: Session, now: datetime) -> List[int]:
        """Ids of open attempts the sweep can close right now, oldest first, capped at one batch."""
        rows = crud_exam_attempt.get_in_progress_timings(db)
        exams = {e.id: e for e in crud_exam.get_by_ids(db, ids=list({r.exam_id for r in rows}))}
        due = [r.id for r in rows if self._is_closable(r, exams[r.exam_id], now)]
        return due[:settings.SWEEP_BATCH_SIZE]

    def sweep_expired_attempts(self, db: Session, now: Optional[datetime] = None) -> SweepResult:
        now = now or utcnow()
        auto_submitted = 0
        abandoned = 0

        for attempt_id in self._sweep_candidates(db, now):
            try:
                outcome = self._run_with_retries(db, "sweep", partial(self._sweep_one, db, attempt_id, now))
            except Exception as e:
                db.rollback()
                logger.error(f"Sweep failed for attempt {attempt_id}: {e}", exc_info=True)
                continue

            if outcome == ExamAttemptStatusEnum.AUTO_SUBMITTED:
                auto_submitted += 1
            elif outcome == ExamAttemptStatusEnum.ABANDONED:
                abandoned += 1

        if auto_submitted or abandoned:
            logger.info(f"Sweep closed {auto_submitted} auto-submitted and {abandoned} abandoned attempts")
        return SweepResult(auto_submitted=auto_submitted, abandoned=abandoned)

    # Manual grading

    def _grading_method(self, db: Session, attempt: ExamAttempt) -> GradingMethodEnum:
        questions = crud_question.get_by_ids(db, ids=attempt.question_order)
        if questions and all(q.question_type == QuestionTypeEnum.ESSAY for q in questions):
            return GradingMethodEnum.MANUAL
        return GradingMethodEnum.HYBRID

    def manual_grade(self, db: Session, attempt_id: int, answer_id: int, grade_in: ManualGrade,
                     current_user_context: UserContext, now: Optional[datetime] = None) -> ScoredResult:
        now = now or utcnow()
        return self._run_with_retries(
            db, "manual_grade",
            partial(self._manual_grade, db, attempt_id, answer_id, grade_in, current_user_context, now),
        )

    def _manual_grade(self, db: Session, attempt_id: int, answer_id: int, grade_in: ManualGrade,
                      current_user_context: UserContext, now: datetime) -> ScoredResult:
        attempt = self._get_attempt_or_404(db, attempt_id)
        permission_helper.require_exam_management(current_user_context, attempt.exam)

        if attempt.status not in GRADEABLE_ATTEMPT_STATUSES:
            raise GradingNotAllowedError(f"Attempts with status '{attempt.status.value}' cannot be graded.")

        answer = crud_user_answer.get(db, id=answer_id)
        if not answer or answer.exam_attempt_id != attempt.id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Answer not found for this attempt.")

        question = crud_question.get(db, id=answer.question_id)
        if question.question_type not in MANUALLY_GRADABLE_TYPES:
            raise GradingNotAllowedError("Only short-answer and essay answers can be graded manually.")
        if grade_in.marks_awarded > question.marks:
            raise AnswerValidationError(f"Marks cannot exceed {question.marks} for this question.")

        answer.marks_awarded = grade_in.marks_awarded
        answer.is_correct = grade_in.marks_awarded > 0
        answer.manually_graded = True
        answer.feedback = grade_in.feedback
        answer.graded_by = current_user_context.user_id
        answer.graded_at = now

        answers = crud_user_answer.get_all_by_attempt(db, exam_attempt_id=attempt.id)
        self._apply_summary(attempt, self._score(attempt, attempt.exam, answers, attempt.late_penalty_applied))
        attempt.grading_method = self._grading_method(db, attempt)
        attempt.graded_by = current_user_context.user_id

        pending = self._pending_count(answers)
        if pending == 0:
            attempt.status = ExamAttemptStatusEnum.GRADED
            attempt.graded_at = now
        db.commit()

        logger.info(f"Answer {answer.id} on attempt {attempt.id} graded {grade_in.marks_awarded} by {current_user_context.user_id}")
        return self._scored_result(attempt, pending)

    # Review

    def release_review(self, db: Session, attempt_id: int, release_in: ExamAttemptReviewRelease,
                       current_user_context: UserContext, now: Optional[datetime] = None) -> ScoredResult:
        now = now or utcnow()
        return self._run_with_retries(
            db, "release_review",
            partial(self._release_review, db, attempt_id, release_in, current_user_context, now),
        )

    def _release_review(self, db: Session, attempt_id: int, release_in: ExamAttemptReviewRelease,
                        current_user_context: UserContext, now: datetime) -> ScoredResult:
        """Clear the review hold on an attempt so its candidate can see the result."""
        attempt = self._get_attempt_or_404(db, attempt_id)
        permission_helper.require_exam_management(current_user_context, attempt.exam)
        if not attempt.is_under_review:
            raise ReviewNotPendingError(details={"status": attempt.status.value})

        attempt.is_under_review = False
        attempt.reviewed_by = current_user_context.user_id
        attempt.reviewed_at = now
        attempt.review_notes = release_in.notes
        db.commit()

        logger.info(f"Review on attempt {attempt.id} released by {current_user_context.user_id}")
        answers = crud_user_answer.get_all_by_attempt(db, exam_attempt_id=attempt.id)
        return self._scored_result(attempt, self._pending_count(answers))

    # Reads

    def get_attempt(self, db: Session, attempt_id: int, current_user_context: UserContext,
                    now: Optional[datetime] = None) -> ExamAttemptDetails:
        now = now or utcnow()
        attempt = self._get_attempt_or_404(db, attempt_id)
        permission_helper.require_attempt_view(current_user_context, attempt)

        if self._expire_if_due(db, attempt, attempt.exam, now):
            db.commit()

        exam = attempt.exam
        in_progress = attempt.status == ExamAttemptStatusEnum.IN_PROGRESS
        staff = not permission_helper.is_student(current_user_context)
        results_visible = staff or self._results_visible(attempt, exam, now)
        attempt_out = self.attempt_out(attempt, results_visible)

        questions = {q.id: q for q in crud_question.get_by_ids(db, ids=attempt.question_order)}
        option_order = attempt.option_order or {}
        questions_out = []
        for question_id in attempt.question_order:
            question_out = QuestionSchema.model_validate(questions[question_id])
            order = option_order.get(str(question_id))
            if order:
                position = {option_id: i for i, option_id in enumerate(order)}
                question_out.options = sorted(question_out.options, key=lambda o: position.get(o.id, len(position)))
            questions_out.append(question_out)

        time_remaining = 0
        if in_progress:
            time_remaining = max(0, int((self._deadline(attempt) - now).total_seconds()))

        answer_key = None
        if staff or (results_visible and exam.show_correct_answers):
            answer_key = [self._answer_key(questions[question_id]) for question_id in attempt.question_order]

        return ExamAttemptDetails(
            attempt=attempt_out,
            questions=questions_out,
            answer_key=answer_key,
            results_visible=results_visible,
            time_remaining_seconds=time_remaining,
        )

    def get_exam_attempts_by_exam(self, db: Session, exam_id: int, current_user_context: UserContext,
                                  now: Optional[datetime] = None) -> List[ExamAttemptSchema]:
        now = now or utcnow()
        exam = self._get_exam_or_404(db, exam_id)

        if permission_helper.is_student(current_user_context):
            attempts = crud_exam_attempt.get_by_user_and_exam(
                db,
                user_id=current_user_context.user_id,
                exam_id=exam_id
            )
            return [self.attempt_out(a, self._results_visible(a, exam, now)) for a in attempts]

        permission_helper.require_exam_management(current_user_context, exam)
        return [self.attempt_out(a, True) for a in crud_exam_attempt.get_all_by_exam(db, exam_id=exam_id)]


exam_attempt_service = ExamAttemptService()
