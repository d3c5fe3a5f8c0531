from enum import Enum
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field


class Unlimited(BaseModel):
    kind: Literal["unlimited"] = "unlimited"


class Remaining(BaseModel):
    kind: Literal["remaining"] = "remaining"
    count: int = Field(ge=0)


# Premium quotas are Unlimited instead of a float('inf') sentinel
CreditAllowance = Annotated[Union[Unlimited, Remaining], Field(discriminator="kind")]


class DenialReason(str, Enum):
    QUOTA_EXHAUSTED = "quota_exhausted"
    UNAVAILABLE = "unavailable"


class AccountSnapshot(BaseModel):
    plan: str
    usage_count: int


class CreditStatus(BaseModel):
    can_generate: bool
    credits_used: int
    credits_remaining: CreditAllowance
    max_credits: CreditAllowance
    plan: str
    is_at_limit: bool


class DeductResult(BaseModel):
    success: bool
    new_credits_used: int
    credits_remaining: CreditAllowance
    error: Optional[str] = None
    reason: Optional[DenialReason] = None
