"""Domain errors raised by the credit ledger."""


class CreditError(Exception):
    """Base class for expected, caller-facing ledger outcomes."""

    code = "CreditError"

    def __init__(self, message: str, user_id: str | None = None) -> None:
        super().__init__(message)
        self.user_id = user_id


class AccountNotFound(CreditError):
    """Raised when no account exists for a user."""

    code = "AccountNotFound"

    def __init__(self, user_id: str) -> None:
        super().__init__(f"No credit account for user {user_id}", user_id=user_id)


class AccountExists(CreditError):
    """Raised when opening an account that is already open."""

    code = "AccountExists"

    def __init__(self, user_id: str) -> None:
        super().__init__(f"Credit account already exists for user {user_id}", user_id=user_id)


class UnknownOperation(CreditError):
    """Raised when an operation name is not in the cost table."""

    code = "UnknownOperation"

    def __init__(self, operation: str) -> None:
        super().__init__(f"Unknown operation: {operation}")
        self.operation = operation


class UnknownCounter(CreditError):
    """Raised when an account does not track the requested secondary counter."""

    code = "UnknownCounter"

    def __init__(self, counter: str, user_id: str) -> None:
        super().__init__(f"Account {user_id} has no counter {counter}", user_id=user_id)
        self.counter = counter


class InsufficientCredits(CreditError):
    """Raised when a debit would take a balance or counter below zero."""

    code = "InsufficientCredits"

    def __init__(self, user_id: str, required: int, available: int) -> None:
        super().__init__(
            f"Insufficient credits: {required} required, {available} available",
            user_id=user_id,
        )
        self.required = required
        self.available = available


class StorageUnavailable(Exception):
    """Transient account store failure raised before any write was attempted.

    Safe to retry: the store guarantees nothing was persisted.
    """

    def __init__(self, message: str, user_id: str | None = None) -> None:
        super().__init__(message)
        self.user_id = user_id
