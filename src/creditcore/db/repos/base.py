"""Base repository with per-user scoping invariants."""

from abc import ABC
from datetime import datetime, timezone


class BaseRepo(ABC):
    """Base repository class for account-scoped tables.

    Invariants:
    - Every query MUST filter on user_id; no statement touches more than one
      account's rows except the explicit listing used by the reset sweep
    - Writes to credit_accounts happen only inside a transaction that holds
      the row lock taken by AccountRepo.get_for_update
    - credit_audit is append-only: no UPDATE or DELETE statements
    """

    @staticmethod
    def now() -> datetime:
        """Get current UTC timestamp.

        Returns:
            Current UTC datetime. Use this instead of datetime.utcnow() for consistency.
        """
        return datetime.now(timezone.utc)
