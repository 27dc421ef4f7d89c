from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Float, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base, value_enum
from app.core.constants import ExamStatusEnum, ExamTypeEnum, TimingModeEnum

class Exam(Base):
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), index=True, nullable=False)
    description = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    pass_mark = Column(Float, nullable=False)
    exam_type = Column(value_enum(ExamTypeEnum, "exam_type"), nullable=False, default=ExamTypeEnum.QUIZ)
    status = Column(value_enum(ExamStatusEnum, "exam_status"), nullable=False, default=ExamStatusEnum.DRAFT, index=True)
    is_public = Column(Boolean, nullable=False, default=False)
    created_by = Column(Integer, nullable=False, index=True)

    # Settings bundle
    max_attempts = Column(Integer, nullable=False, default=1)
    allow_retake = Column(Boolean, nullable=False, default=False)
    # Result release to candidates
    show_results_immediately = Column(Boolean, nullable=False, default=True)
    show_correct_answers = Column(Boolean, nullable=False, default=False)
    show_results_after = Column(DateTime(timezone=True), nullable=True)
    randomize_questions = Column(Boolean, nullable=False, default=False)
    randomize_options = Column(Boolean, nullable=False, default=False)
    full_screen_mode = Column(Boolean, nullable=False, default=True)
    detect_tab_switch = Column(Boolean, nullable=False, default=True)
    prevent_copy_paste = Column(Boolean, nullable=False, default=True)
    proctoring_enabled = Column(Boolean, nullable=False, default=False)
    allow_late_submission = Column(Boolean, nullable=False, default=False)
    late_submission_penalty = Column(Float, nullable=False, default=0)
    late_submission_window_minutes = Column(Integer, nullable=False, default=0)
    auto_submit = Column(Boolean, nullable=False, default=True)
    auto_finalize_results = Column(Boolean, nullable=False, default=True)
    negative_marking = Column(Boolean, nullable=False, default=False)
    negative_marking_percentage = Column(Float, nullable=False, default=25)
    review_time_minutes = Column(Integer, nullable=False, default=5)
    timing_mode = Column(value_enum(TimingModeEnum, "timing_mode"), nullable=False, default=TimingModeEnum.WHOLE_EXAM)
    time_per_question_seconds = Column(Integer, nullable=True)
    score_floor = Column(Float, nullable=True)
    grade_scale = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    questions = relationship(
        "Question",
        back_populates="exam",
        cascade="all, delete-orphan",
        order_by="Question.order",
    )
    attempts = relationship("ExamAttempt", back_populates="exam", cascade="all, delete-orphan")
    assignments = relationship("ExamAssignment", back_populates="exam", cascade="all, delete-orphan")
    group_assignments = relationship("ExamGroupAssignment", back_populates="exam", cascade="all, delete-orphan")

    @property
    def active_questions(self):
        return [q for q in self.questions if q.is_active]

    @property
    def late_window_minutes(self) -> int:
        return self.late_submission_window_minutes or self.review_time_minutes


class ExamAssignment(Base):
    __tablename__ = "exam_assignments"
    __table_args__ = (UniqueConstraint("exam_id", "student_id", name="uq_exam_assignment_student"),)

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    exam = relationship("Exam", back_populates="assignments")


class ExamGroupAssignment(Base):
    __tablename__ = "exam_group_assignments"
    __table_args__ = (UniqueConstraint("exam_id", "group_name", name="uq_exam_assignment_group"),)

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    group_name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    exam = relationship("Exam", back_populates="group_assignments")
