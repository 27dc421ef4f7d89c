import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.crud.exam import exam as crud_exam
from app.crud.question import question as crud_question
from app.models.exam import Exam
from app.models.question import Question
from app.schemas.exam import ExamCreate, ExamUpdate, ExamAssignmentCreate, GradeBand
from app.schemas.question import QuestionCreate, QuestionUpdate, QuestionOptionCreate
from app.schemas.user import UserContext
from app.utils.clock import as_utc
from app.utils.permission import PermissionHelper as permission_helper
from app.core.constants import ExamStatusEnum, QuestionTypeEnum, TimingModeEnum
from app.core.exceptions import ExamConfigurationError, QuestionConfigurationError

logger = logging.getLogger(__name__)

CHOICE_TYPES = (QuestionTypeEnum.SINGLE_CHOICE, QuestionTypeEnum.MULTIPLE_CHOICE, QuestionTypeEnum.TRUE_FALSE)


class ExamService:

    def _get_exam_or_404(self, db: Session, exam_id: int) -> Exam:
        exam = crud_exam.get(db, id=exam_id)
        if not exam:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found.")
        return exam

    def _require_editable(self, exam: Exam):
        if exam.status == ExamStatusEnum.ARCHIVED:
            raise ExamConfigurationError("Archived exams cannot be changed.")

    def _validate_window(self, start_date: datetime, end_date: datetime):
        if as_utc(end_date) <= as_utc(start_date):
            raise ExamConfigurationError("The exam end date must be after its start date.")

    def _validate_timing(self, timing_mode: TimingModeEnum, time_per_question_seconds: Optional[int]):
        if timing_mode == TimingModeEnum.WHOLE_EXAM and time_per_question_seconds is not None:
            raise ExamConfigurationError(
                "time_per_question_seconds cannot be set when timing_mode is whole_exam; use hybrid to combine limits.",
                details={"timing_mode": timing_mode.value},
            )
        if timing_mode != TimingModeEnum.WHOLE_EXAM and time_per_question_seconds is None:
            raise ExamConfigurationError(
                f"time_per_question_seconds is required when timing_mode is {timing_mode.value}.",
                details={"timing_mode": timing_mode.value},
            )

    def _validate_grade_scale(self, grade_scale: Optional[List[GradeBand]]):
        if not grade_scale:
            return
        grades = [band.grade for band in grade_scale]
        if len(grades) != len(set(grades)):
            raise ExamConfigurationError("Grade scale entries must have distinct grades.")
        thresholds = [band.min_percentage for band in grade_scale]
        if len(thresholds) != len(set(thresholds)):
            raise ExamConfigurationError("Grade scale entries must have distinct minimum percentages.")

    def _validate_settings(self, exam_in):
        settings_in = exam_in.settings
        self._validate_timing(settings_in.timing_mode, settings_in.time_per_question_seconds)
        self._validate_grade_scale(settings_in.grade_scale)
        if settings_in.score_floor is not None and settings_in.score_floor > 0:
            raise ExamConfigurationError("score_floor cannot be positive.")

    def _validate_question(self, question_in: QuestionCreate):
        kind = question_in.question_type
        options = question_in.options
        correct = [o for o in options if o.is_correct]

        if kind in CHOICE_TYPES and len(options) < 2:
            raise QuestionConfigurationError("Choice questions need at least two options.")

        if kind == QuestionTypeEnum.SINGLE_CHOICE and len(correct) != 1:
            raise QuestionConfigurationError("Single-choice questions need exactly one correct option.")

        if kind == QuestionTypeEnum.MULTIPLE_CHOICE and not correct:
            raise QuestionConfigurationError("Multiple-choice questions need at least one correct option.")

        if kind == QuestionTypeEnum.TRUE_FALSE:
            texts = sorted(o.text.strip().lower() for o in options)
            if texts != ["false", "true"]:
                raise QuestionConfigurationError("True/false questions need exactly the options True and False.")
            if len(correct) != 1:
                raise QuestionConfigurationError("True/false questions need exactly one correct option.")

        if kind == QuestionTypeEnum.SHORT_ANSWER:
            if not [a for a in question_in.accepted_answers if a.strip()]:
                raise QuestionConfigurationError("Short-answer questions need at least one accepted answer.")

        if kind in (QuestionTypeEnum.SHORT_ANSWER, QuestionTypeEnum.ESSAY) and options:
            raise QuestionConfigurationError("Text questions cannot have options.")

        if kind == QuestionTypeEnum.ESSAY and question_in.accepted_answers:
            raise QuestionConfigurationError("Essay questions have no answer key.")

    # Exams

    def create_exam(self, db: Session, exam_in: ExamCreate, current_user_context: UserContext) -> Exam:
        permission_helper.require_not_student(current_user_context, "Students cannot manage exams or questions.")
        self._validate_window(exam_in.start_date, exam_in.end_date)
        self._validate_settings(exam_in)

        exam_data = exam_in.model_dump(exclude={"settings"})
        exam_data.update(exam_in.settings.model_dump())
        exam_data["status"] = ExamStatusEnum.DRAFT
        exam_data["created_by"] = current_user_context.user_id

        new_exam = crud_exam.create(db, obj_in=exam_data)
        logger.info(f"Exam {new_exam.id} created by user {current_user_context.user_id}")
        return new_exam

    def get_exam(self, db: Session, exam_id: int, current_user_context: UserContext) -> Exam:
        exam = self._get_exam_or_404(db, exam_id)
        permission_helper.require_exam_management(current_user_context, exam)
        return exam

    def get_my_exams(self, db: Session, current_user_context: UserContext,
                     skip: int = 0, limit: int = 100) -> List[Exam]:
        permission_helper.require_not_student(current_user_context, "Students cannot manage exams or questions.")
        return crud_exam.get_multi_by_creator(db, created_by=current_user_context.user_id, skip=skip, limit=limit)

    def update_exam(self, db: Session, exam_id: int, exam_in: ExamUpdate, current_user_context: UserContext) -> Exam:
        exam = self._get_exam_or_404(db, exam_id)
        permission_helper.require_exam_management(current_user_context, exam)
        self._require_editable(exam)

        self._validate_window(exam_in.start_date or exam.start_date, exam_in.end_date or exam.end_date)
        update_data = exam_in.model_dump(exclude_unset=True, exclude={"settings"})
        if exam_in.settings is not None:
            self._validate_settings(exam_in)
            update_data.update(exam_in.settings.model_dump())

        return crud_exam.update(db, db_obj=exam, obj_in=update_data)

    def publish_exam(self, db: Session, exam_id: int, current_user_context: UserContext) -> Exam:
        exam = self._get_exam_or_404(db, exam_id)
        permission_helper.require_exam_management(current_user_context, exam)
        self._require_editable(exam)

        if not exam.active_questions:
            raise ExamConfigurationError("An exam needs at least one question before it can be published.")
        self._validate_timing(exam.timing_mode, exam.time_per_question_seconds)

        exam.status = ExamStatusEnum.PUBLISHED
        db.commit()
        logger.info(f"Exam {exam.id} published")
        return exam

    def archive_exam(self, db: Session, exam_id: int, current_user_context: UserContext) -> Exam:
        exam = self._get_exam_or_404(db, exam_id)
        permission_helper.require_exam_management(current_user_context, exam)

        exam.status = ExamStatusEnum.ARCHIVED
        db.commit()
        logger.info(f"Exam {exam.id} archived")
        return exam

    def assign_exam(self, db: Session, exam_id: int, assignment_in: ExamAssignmentCreate,
                    current_user_context: UserContext) -> Exam:
        exam = self._get_exam_or_404(db, exam_id)
        permission_helper.require_exam_management(current_user_context, exam)
        self._require_editable(exam)

        crud_exam.add_student_assignments(db, exam=exam, student_ids=assignment_in.student_ids)
        crud_exam.add_group_assignments(db, exam=exam, group_names=assignment_in.group_names)
        db.commit()
        return exam

    # Questions

    def create_question(self, db: Session, exam_id: int, question_in: QuestionCreate,
                        current_user_context: UserContext) -> Question:
        exam = self._get_exam_or_404(db, exam_id)
        permission_helper.require_exam_management(current_user_context, exam)
        self._require_editable(exam)
        self._validate_question(question_in)

        order = question_in.order or crud_question.get_next_order(db, exam_id=exam.id)
        return crud_question.create_with_options(db, exam_id=exam.id, obj_in=question_in, order=order)

    def _merge_question(self, question: Question, question_in: QuestionUpdate) -> QuestionCreate:
        merged = {
            "question_type": question.question_type,
            "question_text": question.question_text,
            "question_image": question.question_image,
            "explanation": question.explanation,
            "marks": question.marks,
            "negative_marks": question.negative_marks,
            "difficulty": question.difficulty,
            "order": question.order,
        }
        merged.update(question_in.model_dump(exclude_unset=True, exclude_none=True, exclude={"options", "accepted_answers"}))

        if question_in.options is not None:
            options = question_in.options
        else:
            options = [QuestionOptionCreate(text=o.text, image=o.image, is_correct=o.is_correct) for o in question.options]

        if question_in.accepted_answers is not None:
            accepted_answers = question_in.accepted_answers
        else:
            accepted_answers = list(question.accepted_answers or [])

        return QuestionCreate(**merged, options=options, accepted_answers=accepted_answers)

    def update_question(self, db: Session, question_id: int, question_in: QuestionUpdate,
                        current_user_context: UserContext) -> Question:
        question = crud_question.get(db, id=question_id)
        if not question or not question.is_active:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found.")

        exam = self._get_exam_or_404(db, question.exam_id)
        permission_helper.require_exam_management(current_user_context, exam)
        self._require_editable(exam)

        merged = self._merge_question(question, question_in)
        self._validate_question(merged)

        if exam.attempts:
            # Attempts grade against the row they snapshotted, so edits go to a new version
            new_question = crud_question.create_with_options(
                db,
                exam_id=exam.id,
                obj_in=merged,
                order=question.order,
                version=question.version + 1,
                parent_question_id=question.id,
                commit=False,
            )
            question.is_active = False
            db.commit()
            db.refresh(new_question)
            logger.info(f"Question {question.id} superseded by version {new_question.version} ({new_question.id})")
            return new_question

        for field, value in merged.model_dump(exclude={"options", "order", "question_type"}).items():
            setattr(question, field, value)
        question.options = crud_question.build_options(merged)
        db.commit()
        db.refresh(question)
        return question


exam_service = ExamService()
