from pydantic import BaseModel
from typing import Optional
from leadgen.schemas.credits import CreditStatus


class UserResponse(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    university: Optional[str] = None
    study_level: Optional[str] = None
    field_of_study: Optional[str] = None
    plan: str
    credits: CreditStatus
    created_at: Optional[str] = None
