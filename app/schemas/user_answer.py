from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Any
from datetime import datetime

class UserAnswerSave(BaseModel):
    question_id: int
    # Option id, list of option ids, bool or free text depending on the question kind
    value: Any = None
    time_spent_seconds: int = Field(default=0, ge=0)
    is_flagged: bool = False

class AnswerEvaluation(BaseModel):
    question_id: int
    is_correct: Optional[bool] = None
    marks_awarded: float = 0

class ManualGrade(BaseModel):
    marks_awarded: float = Field(..., ge=0)
    feedback: Optional[str] = Field(default=None, max_length=1000)

class UserAnswer(BaseModel):
    id: int
    exam_attempt_id: int
    question_id: int
    value: Any = None
    is_correct: Optional[bool] = None
    marks_awarded: Optional[float] = None
    time_spent_seconds: int
    is_flagged: bool
    answered_at: datetime
    manually_graded: bool
    feedback: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
