from pydantic import BaseModel, Field
from typing import List

from app.core.constants import RoleEnum

class UserContext(BaseModel):
    """Caller identity as asserted by the auth service token."""
    user_id: int
    role: RoleEnum
    groups: List[str] = Field(default_factory=list)
