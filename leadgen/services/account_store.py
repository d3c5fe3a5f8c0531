"""
SQLAlchemy-backed account store used by the credit gate.

Exposes exactly the two round trips CreditService needs: a fresh read of
(plan, email_credits) and a compare-and-swap increment of email_credits.
"""
import logging
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import func
from leadgen.core.exceptions import AccountNotFound, ConcurrencyConflict, StorageError
from leadgen.models.user import User, PlanTier
from leadgen.schemas.credits import AccountSnapshot

logger = logging.getLogger(__name__)


class SqlAccountStore:
    def __init__(self, db: Session):
        self.db = db

    def read_account(self, account_id: str) -> AccountSnapshot:
        """
        Read plan and usage count for an account.

        Selects columns rather than the User entity so a retry is never served
        a stale object from the session identity map.
        """
        try:
            row = self.db.query(User.plan, User.email_credits).filter(User.id == account_id).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to read account %s: %s", account_id, e)
            raise StorageError("Failed to check user credits", account_id=account_id) from e

        if row is None:
            raise AccountNotFound(account_id)

        plan, email_credits = row
        return AccountSnapshot(
            plan=plan or PlanTier.FREEMIUM.value,
            usage_count=email_credits or 0,
        )

    def conditional_increment_usage(self, account_id: str, expected_usage_count: int) -> int:
        """
        Increment email_credits by one only if it still equals expected_usage_count.

        Returns the new usage count. Raises ConcurrencyConflict when another
        request committed first, AccountNotFound when the row is gone.
        """
        stmt = (
            update(User)
            .where(User.id == account_id, User.email_credits == expected_usage_count)
            .values(email_credits=expected_usage_count + 1, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
            if result.rowcount == 1:
                self.db.commit()
                return expected_usage_count + 1

            # Nothing matched: either the row moved on or it no longer exists
            self.db.rollback()
            exists = self.db.query(User.id).filter(User.id == account_id).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to deduct credit for account %s: %s", account_id, e)
            raise StorageError("Failed to deduct credit", account_id=account_id) from e

        if exists is None:
            raise AccountNotFound(account_id)
        raise ConcurrencyConflict(account_id, expected_usage_count)
