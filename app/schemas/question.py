from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Tuple
from datetime import datetime

from app.core.constants import QuestionTypeEnum, DifficultyEnum

class QuestionOptionCreate(BaseModel):
    text: str = Field(..., min_length=1)
    image: Optional[str] = None
    is_correct: bool = False

class QuestionOption(BaseModel):
    """Option as shown to a student: no correctness flag."""
    id: int
    text: str
    image: Optional[str] = None
    order: int

    model_config = ConfigDict(from_attributes=True)

class QuestionOptionWithKey(QuestionOption):
    is_correct: bool

class QuestionBase(BaseModel):
    question_type: QuestionTypeEnum
    question_text: str = Field(..., min_length=1)
    question_image: Optional[str] = None
    marks: float = Field(default=1, gt=0, le=100)
    negative_marks: Optional[float] = Field(default=None, ge=0)
    difficulty: DifficultyEnum = DifficultyEnum.MEDIUM
    order: Optional[int] = Field(default=None, ge=1)

class QuestionCreate(QuestionBase):
    explanation: Optional[str] = None
    options: List[QuestionOptionCreate] = []
    accepted_answers: List[str] = []

class QuestionUpdate(BaseModel):
    question_text: Optional[str] = None
    question_image: Optional[str] = None
    explanation: Optional[str] = None
    marks: Optional[float] = Field(default=None, gt=0, le=100)
    negative_marks: Optional[float] = Field(default=None, ge=0)
    difficulty: Optional[DifficultyEnum] = None
    options: Optional[List[QuestionOptionCreate]] = None
    accepted_answers: Optional[List[str]] = None

class Question(QuestionBase):
    """Question as shown to a candidate: no explanation and no answer key."""
    id: int
    exam_id: int
    order: int
    version: int
    is_active: bool
    options: List[QuestionOption] = []
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class QuestionWithAnswerKey(Question):
    # Staff view
    explanation: Optional[str] = None
    options: List[QuestionOptionWithKey] = []
    accepted_answers: Optional[List[str]] = None
    parent_question_id: Optional[int] = None

class QuestionKey(BaseModel):
    question_id: int
    explanation: Optional[str] = None
    correct_option_ids: List[int] = []
    accepted_answers: List[str] = []


class OptionSnapshot(BaseModel):
    id: int
    text: str
    is_correct: bool

    model_config = ConfigDict(frozen=True, from_attributes=True)

class QuestionSnapshot(BaseModel):
    """Immutable view of a question used for evaluation."""
    id: int
    question_type: QuestionTypeEnum
    marks: float
    negative_marks: Optional[float] = None
    options: Tuple[OptionSnapshot, ...] = ()
    accepted_answers: Tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_question(cls, question) -> "QuestionSnapshot":
        return cls(
            id=question.id,
            question_type=question.question_type,
            marks=question.marks,
            negative_marks=question.negative_marks,
            options=tuple(OptionSnapshot.model_validate(o) for o in question.options),
            accepted_answers=tuple(question.accepted_answers or ()),
        )

    @property
    def correct_option_ids(self) -> frozenset:
        return frozenset(o.id for o in self.options if o.is_correct)
