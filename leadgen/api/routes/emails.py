import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from leadgen.db.session import get_db
from leadgen.dependencies.auth import get_current_account_id
from leadgen.models.user import User
from leadgen.schemas.emails import EmailGenerateRequest, EmailGenerateResponse
from leadgen.services import email_templates
from leadgen.services.credit_service import CreditService
from leadgen.utils.credit_enforcement import get_credit_service, require_email_credit

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate", response_model=EmailGenerateResponse)
def generate_email(
    request: EmailGenerateRequest,
    db: Session = Depends(get_db),
    account_id: str = Depends(get_current_account_id),
    credit_service: CreditService = Depends(get_credit_service)
):
    """
    Generate an outreach email. Costs one credit on the freemium plan.

    Input is validated before the credit is taken so a malformed request
    never consumes quota.
    """
    if not (request.contact_name and request.job_title and request.company_name and request.email_type):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Contact name, job title, company name, and email type are required"
        )

    email_type = email_templates.map_email_type(request.email_type)
    if email_type not in email_templates.VALID_EMAIL_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid email type"
        )

    user = db.query(User).filter(User.id == account_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    # Raises QuotaExhausted / ConcurrencyExhausted / StorageError, handled in main
    credits = require_email_credit(account_id, credit_service)

    language = request.language or email_templates.DEFAULT_LANGUAGE
    sender_name = None
    if user.first_name and user.last_name:
        sender_name = f"{user.first_name} {user.last_name}"

    subject = email_templates.render_subject(language)
    body = email_templates.render_body(
        language,
        contact_name=request.contact_name,
        company_name=request.company_name,
        sender_name=sender_name,
        study_level=user.study_level,
        field_of_study=user.field_of_study,
        university=user.university,
    )

    logger.info("Generated %s email for account %s (%s)", email_type, account_id, language)

    return {
        "success": True,
        "subject": subject,
        "body": body,
        "email_type": email_templates.EMAIL_TYPE_LABELS[email_type],
        "language": language,
        "credits": credits,
    }
