from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

from app.core.constants import SecurityEventTypeEnum, SeverityEnum, ExamAttemptStatusEnum

class SecurityEventCreate(BaseModel):
    # Kept as a plain string so unknown types surface as SECURITY_EVENT_VALIDATION_ERROR
    event_type: str
    details: Optional[str] = Field(default=None, max_length=1000)

class SecurityEvent(BaseModel):
    id: int
    exam_attempt_id: int
    event_type: SecurityEventTypeEnum
    severity: SeverityEnum
    details: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class SecurityEventResult(BaseModel):
    event: SecurityEvent
    attempt_status: ExamAttemptStatusEnum
    tab_switches: int
    copy_attempts: int
    full_screen_exits: int
    right_clicks: int
    terminated: bool = False
