from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Float, Boolean, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base, value_enum
from app.core.constants import QuestionTypeEnum, DifficultyEnum

class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    question_type = Column(value_enum(QuestionTypeEnum, "question_type"), nullable=False)
    question_text = Column(Text, nullable=False)
    question_image = Column(String, nullable=True)
    explanation = Column(Text, nullable=True)
    accepted_answers = Column(JSON, nullable=True) # Short-answer keys
    marks = Column(Float, nullable=False, default=1)
    negative_marks = Column(Float, nullable=True)
    difficulty = Column(value_enum(DifficultyEnum, "difficulty"), nullable=False, default=DifficultyEnum.MEDIUM)
    order = Column(Integer, nullable=False, default=1)
    version = Column(Integer, nullable=False, default=1)
    parent_question_id = Column(Integer, ForeignKey("questions.id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    exam = relationship("Exam", back_populates="questions")
    options = relationship(
        "QuestionOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuestionOption.order",
    )
    user_answers = relationship("UserAnswer", back_populates="question")


class QuestionOption(Base):
    __tablename__ = "question_options"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(String, nullable=False)
    image = Column(String, nullable=True)
    is_correct = Column(Boolean, nullable=False, default=False)
    order = Column(Integer, nullable=False, default=0)

    question = relationship("Question", back_populates="options")
