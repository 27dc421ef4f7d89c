from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, Float, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base

class UserAnswer(Base):
    __tablename__ = "user_answers"
    __table_args__ = (UniqueConstraint("exam_attempt_id", "question_id", name="uq_user_answer_question"),)

    id = Column(Integer, primary_key=True, index=True)
    exam_attempt_id = Column(Integer, ForeignKey("exam_attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    value = Column(JSON, nullable=True) # Option id, list of option ids, bool or text depending on the question
    is_correct = Column(Boolean, nullable=True) # None while pending manual grading
    marks_awarded = Column(Float, nullable=False, default=0)
    time_spent_seconds = Column(Integer, nullable=False, default=0)
    is_flagged = Column(Boolean, nullable=False, default=False)
    answered_at = Column(DateTime(timezone=True), nullable=False)
    evaluated_at = Column(DateTime(timezone=True), nullable=True)
    manually_graded = Column(Boolean, nullable=False, default=False)
    feedback = Column(String(1000), nullable=True)
    graded_by = Column(Integer, nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    exam_attempt = relationship("ExamAttempt", back_populates="user_answers")
    question = relationship("Question", back_populates="user_answers")
