from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from app.core.constants import ExamStatusEnum, ExamTypeEnum, TimingModeEnum

class GradeBand(BaseModel):
    grade: str = Field(..., min_length=1, max_length=10)
    min_percentage: float = Field(..., ge=0, le=100)

class ExamSettings(BaseModel):
    max_attempts: int = Field(default=1, ge=1, le=10)
    allow_retake: bool = False
    show_results_immediately: bool = True
    show_correct_answers: bool = False
    show_results_after: Optional[datetime] = None
    randomize_questions: bool = False
    randomize_options: bool = False
    full_screen_mode: bool = True
    detect_tab_switch: bool = True
    prevent_copy_paste: bool = True
    proctoring_enabled: bool = False
    allow_late_submission: bool = False
    late_submission_penalty: float = Field(default=0, ge=0, le=100)
    late_submission_window_minutes: int = Field(default=0, ge=0)
    auto_submit: bool = True
    auto_finalize_results: bool = True
    negative_marking: bool = False
    negative_marking_percentage: float = Field(default=25, ge=0, le=100)
    review_time_minutes: int = Field(default=5, ge=0, le=60)
    timing_mode: TimingModeEnum = TimingModeEnum.WHOLE_EXAM
    time_per_question_seconds: Optional[int] = Field(default=None, ge=30)
    score_floor: Optional[float] = None
    grade_scale: Optional[List[GradeBand]] = None

class ExamBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    instructions: Optional[str] = None
    duration_minutes: int = Field(..., ge=1, le=1440)
    start_date: datetime
    end_date: datetime
    pass_mark: float = Field(..., ge=0, le=100)
    exam_type: ExamTypeEnum = ExamTypeEnum.QUIZ
    is_public: bool = False

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Biology Midterm",
                "duration_minutes": 60,
                "start_date": "2026-01-10T08:00:00Z",
                "end_date": "2026-01-10T18:00:00Z",
                "pass_mark": 50,
                "exam_type": "midterm",
                "settings": {"max_attempts": 1, "negative_marking": True, "negative_marking_percentage": 25},
            }
        }
    )

class ExamCreate(ExamBase):
    settings: ExamSettings = Field(default_factory=ExamSettings)

class ExamUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    instructions: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=1440)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    pass_mark: Optional[float] = Field(default=None, ge=0, le=100)
    is_public: Optional[bool] = None
    settings: Optional[ExamSettings] = None

class ExamAssignmentCreate(BaseModel):
    student_ids: List[int] = []
    group_names: List[str] = []

class Exam(ExamBase, ExamSettings):
    id: int
    status: ExamStatusEnum
    created_by: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
