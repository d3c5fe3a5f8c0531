"""
Credit gate exceptions.

Business failures (quota) carry enough detail to render an upgrade prompt.
Infrastructure failures carry the account id for logging only; the API layer
never returns their details to the end user.
"""


class CreditError(Exception):
    """Base exception for everything the credit gate can raise."""

    def __init__(self, message: str, code: str = "CREDIT_ERROR", details: dict = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert exception to dictionary for logs and internal responses."""
        return {
            'error': self.code,
            'message': self.message,
            'details': self.details
        }


class AccountNotFound(CreditError):
    """Raised when the account row does not exist. Never retried."""

    def __init__(self, account_id: str):
        super().__init__(
            message=f"Account {account_id} not found",
            code="ACCOUNT_NOT_FOUND",
            details={'account_id': account_id}
        )
        self.account_id = account_id


class QuotaExhausted(CreditError):
    """
    Raised when a freemium account has used every free generation.

    Attributes:
        limit: The free tier quota that was reached
        used: Credits used by the account
    """

    def __init__(self, message: str, limit: int, used: int):
        super().__init__(
            message=message,
            code="QUOTA_EXHAUSTED",
            details={'limit': limit, 'used': used}
        )
        self.limit = limit
        self.used = used


class ConcurrencyConflict(CreditError):
    """
    The conditional update lost a race: the stored usage count moved
    since it was read. Handled inside CreditService by retrying.
    """

    def __init__(self, account_id: str, expected_usage_count: int):
        super().__init__(
            message=f"Usage count for account {account_id} changed from {expected_usage_count}",
            code="CONCURRENCY_CONFLICT",
            details={'account_id': account_id, 'expected_usage_count': expected_usage_count}
        )
        self.account_id = account_id
        self.expected_usage_count = expected_usage_count


class ConcurrencyExhausted(CreditError):
    """Raised when every retry lost the race. Transient, the caller may retry later."""

    def __init__(self, account_id: str, attempts: int):
        super().__init__(
            message=f"Could not deduct credit for account {account_id} after {attempts} attempts",
            code="CONCURRENCY_EXHAUSTED",
            details={'account_id': account_id, 'attempts': attempts}
        )
        self.account_id = account_id
        self.attempts = attempts


class StorageError(CreditError):
    """Raised when the account store fails for any reason other than a version mismatch."""

    def __init__(self, message: str = "Account storage operation failed", account_id: str = None):
        super().__init__(
            message=message,
            code="STORAGE_ERROR",
            details={'account_id': account_id}
        )
        self.account_id = account_id


class GenerationUnavailable(CreditError):
    """Raised when a non-freemium account is denied (e.g. a suspended plan)."""

    def __init__(self, message: str):
        super().__init__(message=message, code="GENERATION_UNAVAILABLE")
