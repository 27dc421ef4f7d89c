from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Float, Boolean, JSON, Index, UniqueConstraint, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base, value_enum
from app.core.constants import ExamAttemptStatusEnum, GradingMethodEnum

class ExamAttempt(Base):
    __tablename__ = "exam_attempts"
    __table_args__ = (
        UniqueConstraint("exam_id", "student_id", "attempt_number", name="uq_exam_attempt_number"),
        # At most one open attempt per student and exam
        Index(
            "uq_exam_attempt_in_progress",
            "exam_id",
            "student_id",
            unique=True,
            sqlite_where=text("status = 'in_progress'"),
            postgresql_where=text("status = 'in_progress'"),
        ),
        Index("ix_exam_attempts_student_exam_status", "student_id", "exam_id", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False)
    status = Column(
        value_enum(ExamAttemptStatusEnum, "exam_attempt_status"),
        nullable=False,
        default=ExamAttemptStatusEnum.IN_PROGRESS,
        index=True,
    )
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    time_taken_seconds = Column(Integer, nullable=False, default=0)

    # Snapshots taken at start
    time_budget_seconds = Column(Integer, nullable=False)
    total_marks = Column(Float, nullable=False, default=0)
    pass_mark_snapshot = Column(Float, nullable=False)
    negative_marking_snapshot = Column(Boolean, nullable=False, default=False)
    negative_marking_percentage_snapshot = Column(Float, nullable=False, default=0)
    question_order = Column(JSON, nullable=False, default=list)
    option_order = Column(JSON, nullable=True)

    score = Column(Float, nullable=True)
    percentage = Column(Float, nullable=False, default=0)
    passed = Column(Boolean, nullable=True)
    grade = Column(String(10), nullable=True)
    late_penalty_applied = Column(Float, nullable=False, default=0)

    grading_method = Column(value_enum(GradingMethodEnum, "grading_method"), nullable=False, default=GradingMethodEnum.AUTOMATIC)
    graded_at = Column(DateTime(timezone=True), nullable=True)
    graded_by = Column(Integer, nullable=True)

    is_under_review = Column(Boolean, nullable=False, default=False)
    review_reason = Column(String, nullable=True)
    reviewed_by = Column(Integer, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    review_notes = Column(String(1000), nullable=True)

    tab_switches = Column(Integer, nullable=False, default=0)
    copy_attempts = Column(Integer, nullable=False, default=0)
    full_screen_exits = Column(Integer, nullable=False, default=0)
    right_clicks = Column(Integer, nullable=False, default=0)

    last_activity_at = Column(DateTime(timezone=True), nullable=True)
    auto_save_count = Column(Integer, nullable=False, default=0)
    client_time_remaining = Column(Integer, nullable=True)

    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String, nullable=True)
    device_fingerprint = Column(String, nullable=True)
    session_id = Column(String, nullable=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    exam = relationship("Exam", back_populates="attempts")
    user_answers = relationship(
        "UserAnswer",
        back_populates="exam_attempt",
        cascade="all, delete-orphan",
        order_by="UserAnswer.id",
    )
    security_events = relationship(
        "SecurityEvent",
        back_populates="exam_attempt",
        cascade="all, delete-orphan",
        order_by="SecurityEvent.id",
    )

    __mapper_args__ = {"version_id_col": version}
