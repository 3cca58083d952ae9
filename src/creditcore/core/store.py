"""Account store protocol and in-memory implementation."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from creditcore.contracts.enums import Tier
from creditcore.contracts.models import Account, AuditEntry, utcnow
from creditcore.core.errors import AccountExists, AccountNotFound


@dataclass
class AccountChange:
    """New account state plus the audit entries committed with it."""

    account: Account
    entries: list[AuditEntry] = field(default_factory=list)


# Runs under the account's exclusive scope. Returning None means "no write";
# raising aborts without a write.
Mutator = Callable[[Account], AccountChange | None]


class AccountStore(Protocol):
    """Persistent record store keyed by user_id with atomic per-key updates."""

    async def get(self, user_id: str) -> Account | None:
        """Snapshot read of one account."""
        ...

    async def create(self, account: Account, entries: list[AuditEntry]) -> None:
        """Insert a new account. Raises AccountExists."""
        ...

    async def mutate(self, user_id: str, fn: Mutator) -> AccountChange | None:
        """Apply fn atomically to one account. Raises AccountNotFound."""
        ...

    async def list_user_ids(self) -> list[str]:
        ...

    async def list_audit(self, user_id: str, limit: int = 50) -> list[AuditEntry]:
        """Audit entries for a user, newest first."""
        ...


class InMemoryAccountStore:
    """Store holding accounts in a dict with one asyncio.Lock per account.

    Suitable for a single process and for tests. Accounts are copied on the
    way in and out so callers never hold a live reference.
    """

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self.audit: list[AuditEntry] = []

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        return self._locks.setdefault(user_id, asyncio.Lock())

    async def get(self, user_id: str) -> Account | None:
        account = self._accounts.get(user_id)
        return account.model_copy(deep=True) if account else None

    async def create(self, account: Account, entries: list[AuditEntry]) -> None:
        async with self._lock_for(account.user_id):
            if account.user_id in self._accounts:
                raise AccountExists(account.user_id)
            self._accounts[account.user_id] = account.model_copy(deep=True)
            self.audit.extend(entries)

    async def mutate(self, user_id: str, fn: Mutator) -> AccountChange | None:
        async with self._lock_for(user_id):
            return await self._apply(user_id, fn)

    async def _apply(self, user_id: str, fn: Mutator) -> AccountChange | None:
        """Read, mutate and commit one account. Caller holds its lock."""
        current = self._accounts.get(user_id)
        if current is None:
            raise AccountNotFound(user_id)
        change = fn(current.model_copy(deep=True))
        if change is None:
            return None
        # validate before committing so a bad state never lands
        committed = Account.model_validate(change.account.model_dump())
        committed.updated_at = utcnow()
        self._accounts[user_id] = committed
        self.audit.extend(change.entries)
        return AccountChange(account=committed.model_copy(deep=True), entries=list(change.entries))

    async def list_user_ids(self) -> list[str]:
        return sorted(self._accounts)

    async def list_audit(self, user_id: str, limit: int = 50) -> list[AuditEntry]:
        entries = [e for e in self.audit if e.user_id == user_id]
        return list(reversed(entries))[:limit]

    async def apply_tier_change(self, user_id: str, tier: Tier) -> None:
        """Stand-in for the external billing system writing a new tier."""
        async with self._lock_for(user_id):
            current = self._accounts.get(user_id)
            if current is None:
                raise AccountNotFound(user_id)
            self._accounts[user_id] = current.model_copy(update={"tier": tier})
