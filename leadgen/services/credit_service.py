"""
Credit gate for metered email generation.

Freemium accounts get MAX_FREE_CREDITS generations; premium accounts are not
metered. Deduction is optimistic: read the usage count, then increment it
only if it is unchanged. A lost race re-reads and re-evaluates, so concurrent
requests for the same account can never push usage past the quota.

No lock is held between the read and the write. If the caller's request is
cancelled after a successful deduction, the credit stays consumed.
"""
import logging
import random
import time
from leadgen.core import plan_limits
from leadgen.core.exceptions import ConcurrencyConflict, ConcurrencyExhausted
from leadgen.models.user import PlanTier
from leadgen.schemas.credits import (
    CreditStatus,
    DeductResult,
    DenialReason,
    Remaining,
    Unlimited,
)

logger = logging.getLogger(__name__)


class CreditService:
    """
    Check and deduct email generation credits against an account store.

    The store must provide read_account(account_id) and
    conditional_increment_usage(account_id, expected_usage_count);
    see leadgen.services.account_store.SqlAccountStore.
    """

    def __init__(self, store, max_free_credits: int = None, max_retries: int = None,
                 backoff_seconds: float = None):
        self.store = store
        self.max_free_credits = (
            plan_limits.MAX_FREE_CREDITS if max_free_credits is None else max_free_credits
        )
        self.max_retries = plan_limits.MAX_DEDUCT_RETRIES if max_retries is None else max_retries
        self.backoff_seconds = (
            plan_limits.RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        )

    def check_credits(self, account_id: str) -> CreditStatus:
        """Read-only credit check. AccountNotFound and StorageError propagate."""
        account = self.store.read_account(account_id)
        used = account.usage_count
        is_premium = account.plan == PlanTier.PREMIUM.value
        is_freemium = account.plan == PlanTier.FREEMIUM.value

        if is_premium:
            max_credits = Unlimited()
            remaining = Unlimited()
        else:
            max_credits = Remaining(count=self.max_free_credits)
            remaining = Remaining(count=max(0, self.max_free_credits - used))

        return CreditStatus(
            can_generate=is_premium or (is_freemium and used < self.max_free_credits),
            credits_used=used,
            credits_remaining=remaining,
            max_credits=max_credits,
            plan=account.plan,
            is_at_limit=is_freemium and used >= self.max_free_credits,
        )

    def get_credit_status(self, account_id: str) -> CreditStatus:
        """Current credit status for display."""
        return self.check_credits(account_id)

    def check_and_deduct_credit(self, account_id: str) -> DeductResult:
        """
        Check credits and, for freemium accounts, consume one.

        Returns a failed DeductResult when the account may not generate.
        Raises ConcurrencyExhausted if every conditional update lost its race,
        AccountNotFound / StorageError straight from the store.
        """
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            status = self.check_credits(account_id)

            if not status.can_generate:
                return self._denied(account_id, status)

            # Premium usage is not metered, nothing to write
            if status.plan == PlanTier.PREMIUM.value:
                return DeductResult(
                    success=True,
                    new_credits_used=status.credits_used,
                    credits_remaining=Unlimited(),
                )

            try:
                new_credits_used = self.store.conditional_increment_usage(
                    account_id, status.credits_used
                )
            except ConcurrencyConflict:
                logger.info(
                    "Concurrent credit update for account %s (attempt %d/%d), retrying",
                    account_id, attempt + 1, attempts
                )
                if attempt + 1 < attempts:
                    self._backoff(attempt)
                continue

            credits_remaining = max(0, self.max_free_credits - new_credits_used)
            logger.info(
                "Credit deducted for account %s: %d used, %d remaining",
                account_id, new_credits_used, credits_remaining
            )
            return DeductResult(
                success=True,
                new_credits_used=new_credits_used,
                credits_remaining=Remaining(count=credits_remaining),
            )

        logger.error("Gave up deducting credit for account %s after %d attempts", account_id, attempts)
        raise ConcurrencyExhausted(account_id, attempts)

    def _denied(self, account_id: str, status: CreditStatus) -> DeductResult:
        if status.plan == PlanTier.FREEMIUM.value:
            error = (
                f"You have used all {self.max_free_credits} free email generations. "
                "Upgrade to Premium for unlimited access."
            )
            reason = DenialReason.QUOTA_EXHAUSTED
        else:
            # Premium is never denied; reached for plans ops has parked (e.g. suspended)
            logger.warning("Account %s on plan %r cannot generate", account_id, status.plan)
            error = "Unable to generate email at this time."
            reason = DenialReason.UNAVAILABLE

        return DeductResult(
            success=False,
            new_credits_used=status.credits_used,
            credits_remaining=status.credits_remaining,
            error=error,
            reason=reason,
        )

    def _backoff(self, attempt: int) -> None:
        if self.backoff_seconds <= 0:
            return
        # Linear backoff with jitter so racing requests spread out
        delay = self.backoff_seconds * (attempt + 1)
        time.sleep(delay + random.uniform(0, self.backoff_seconds))
