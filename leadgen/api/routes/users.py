from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from leadgen.db.session import get_db
from leadgen.dependencies.auth import get_current_account_id
from leadgen.models.user import User
from leadgen.schemas.users import UserResponse
from leadgen.services.credit_service import CreditService
from leadgen.utils.credit_enforcement import get_credit_service

router = APIRouter()


@router.get("/me", response_model=UserResponse)
def get_current_user(
    db: Session = Depends(get_db),
    account_id: str = Depends(get_current_account_id),
    credit_service: CreditService = Depends(get_credit_service)
):
    """Get current user profile with credit status"""
    user = db.query(User).filter(User.id == account_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "university": user.university,
        "study_level": user.study_level,
        "field_of_study": user.field_of_study,
        "plan": user.plan,
        "credits": credit_service.get_credit_status(account_id),
        "created_at": user.created_at.isoformat() if user.created_at else None
    }
