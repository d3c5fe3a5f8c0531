import logging
from fastapi import Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from leadgen.db.session import get_db
from leadgen.core.exceptions import (
    AccountNotFound,
    ConcurrencyExhausted,
    CreditError,
    GenerationUnavailable,
    QuotaExhausted,
    StorageError,
)
from leadgen.schemas.credits import DeductResult, DenialReason
from leadgen.services.account_store import SqlAccountStore
from leadgen.services.credit_service import CreditService

logger = logging.getLogger(__name__)

RETRY_LATER_MESSAGE = "Failed to process credit deduction. Please try again in a moment."


def get_credit_service(db: Session = Depends(get_db)) -> CreditService:
    """FastAPI dependency: a CreditService bound to the request's DB session."""
    return CreditService(SqlAccountStore(db))


def require_email_credit(account_id: str, credit_service: CreditService) -> DeductResult:
    """
    Consume one email generation credit or raise.

    Call this before the metered action, never after: the credit is consumed
    even if the generation that follows fails.
    Raises QuotaExhausted / GenerationUnavailable for business denials.
    """
    result = credit_service.check_and_deduct_credit(account_id)
    if result.success:
        return result

    if result.reason == DenialReason.QUOTA_EXHAUSTED:
        raise QuotaExhausted(
            result.error,
            limit=credit_service.max_free_credits,
            used=result.new_credits_used,
        )
    raise GenerationUnavailable(result.error)


def credit_error_response(exc: CreditError) -> JSONResponse:
    """
    Map a credit gate exception to the API error body {error, rateLimited?}.

    Business denials keep their message so the UI can show an upgrade prompt;
    infrastructure failures are logged and answered with a generic retry message.
    """
    if isinstance(exc, QuotaExhausted):
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"error": exc.message})
    if isinstance(exc, GenerationUnavailable):
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"error": exc.message})
    if isinstance(exc, AccountNotFound):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "User not found"})
    if isinstance(exc, ConcurrencyExhausted):
        logger.warning("Credit deduction contention: %s", exc.to_dict())
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"error": RETRY_LATER_MESSAGE, "rateLimited": True},
        )
    if isinstance(exc, StorageError):
        logger.error("Credit storage failure: %s", exc.to_dict())
    else:
        logger.error("Unhandled credit error: %s", exc.to_dict())
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": RETRY_LATER_MESSAGE},
    )
