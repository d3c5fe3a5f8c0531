from pydantic import BaseModel
from typing import Optional
from leadgen.schemas.credits import DeductResult


class EmailGenerateRequest(BaseModel):
    contact_name: Optional[str] = None
    job_title: Optional[str] = None
    company_name: Optional[str] = None
    location: Optional[str] = None
    email_type: Optional[str] = None
    language: Optional[str] = None


class EmailGenerateResponse(BaseModel):
    success: bool
    subject: str
    body: str
    email_type: str
    language: str
    credits: DeductResult
