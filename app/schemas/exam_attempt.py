from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from app.core.constants import ExamAttemptStatusEnum, GradingMethodEnum
from app.schemas.question import Question, QuestionKey
from app.schemas.user_answer import UserAnswer

class ClientContext(BaseModel):
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device_fingerprint: Optional[str] = None
    session_id: Optional[str] = None

class ExamAttemptStart(BaseModel):
    device_fingerprint: Optional[str] = None
    session_id: Optional[str] = None

class ExamAttemptSubmit(BaseModel):
    client_time_remaining: Optional[int] = Field(default=None, ge=0)

class ExamAttemptTerminate(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)

class ExamAttemptReviewRelease(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=1000)

class ExamAttempt(BaseModel):
    id: int
    exam_id: int
    student_id: int
    attempt_number: int
    status: ExamAttemptStatusEnum
    start_time: datetime
    end_time: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    time_taken_seconds: int
    time_budget_seconds: int
    total_marks: float
    score: Optional[float] = None
    percentage: Optional[float] = None
    passed: Optional[bool] = None
    grade: Optional[str] = None
    late_penalty_applied: float
    grading_method: GradingMethodEnum
    is_under_review: bool
    review_reason: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    tab_switches: int
    copy_attempts: int
    full_screen_exits: int
    question_order: List[int] = []
    user_answers: List[UserAnswer] = []

    model_config = ConfigDict(from_attributes=True)

class ExamAttemptDetails(BaseModel):
    attempt: ExamAttempt
    questions: List[Question] = []
    answer_key: Optional[List[QuestionKey]] = None
    results_visible: bool = False
    time_remaining_seconds: int = 0

class ScoreSummary(BaseModel):
    raw_score: float
    score: float
    percentage: float
    passed: bool
    grade: Optional[str] = None
    late_penalty_applied: float = 0

    model_config = ConfigDict(frozen=True)

class ScoredResult(BaseModel):
    attempt_id: int
    status: ExamAttemptStatusEnum
    score: Optional[float] = None
    total_marks: float
    percentage: Optional[float] = None
    passed: Optional[bool] = None
    grade: Optional[str] = None
    late_penalty_applied: float = 0
    time_taken_seconds: int = 0
    is_under_review: bool = False
    pending_manual_grading: int = 0

class SweepResult(BaseModel):
    auto_submitted: int
    abandoned: int

class AttemptStatistics(BaseModel):
    exam_id: int
    total_attempts: int
    average_score: float
    average_percentage: float
    pass_rate: float
    max_score: float
    min_score: float
