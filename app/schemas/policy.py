from pydantic import BaseModel
from typing import Optional

from app.core.constants import PolicyReasonEnum

class PolicyDecision(BaseModel):
    allowed: bool
    reason: Optional[PolicyReasonEnum] = None
    attempt_number: Optional[int] = None
    time_budget_seconds: Optional[int] = None
    existing_attempt_id: Optional[int] = None
