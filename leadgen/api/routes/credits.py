from fastapi import APIRouter, Depends
from leadgen.dependencies.auth import get_current_account_id
from leadgen.schemas.credits import CreditStatus
from leadgen.services.credit_service import CreditService
from leadgen.utils.credit_enforcement import get_credit_service

router = APIRouter()


@router.get("", response_model=CreditStatus)
def get_credit_status(
    account_id: str = Depends(get_current_account_id),
    credit_service: CreditService = Depends(get_credit_service)
):
    """Current email generation credits for the signed-in user (read only)"""
    return credit_service.get_credit_status(account_id)
