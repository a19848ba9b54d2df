"""
Ledger exception types.

Business outcomes (missing referrer, skipped non-master, insufficient funds,
duplicate order delivery) are results, not exceptions. Only the conditions
below are raised to callers.
"""


class LedgerError(Exception):
    """Base class for referral ledger errors."""

    pass


class NotFoundError(LedgerError):
    """Raised when a required bonus, ledger record or user does not exist."""

    def __init__(self, entity: str, entity_id: int | str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ConcurrencyConflictError(LedgerError):
    """Raised when a ledger transaction kept conflicting after all retries."""

    def __init__(self, operation: str, attempts: int) -> None:
        self.operation = operation
        self.attempts = attempts
        super().__init__(
            f"{operation} failed after {attempts} attempts due to concurrent updates"
        )


class InvalidReferralError(LedgerError, ValueError):
    """Raised when a referral edge would be self-referential or cyclic."""

    pass
