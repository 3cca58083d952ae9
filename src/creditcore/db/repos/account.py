"""Credit account repository."""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from creditcore.contracts.models import Account
from creditcore.db.repos.base import BaseRepo

_COLUMNS = "user_id, balance, tier, cycle_anchor, secondary_counters, created_at, updated_at"


def _row_to_account(row: Any) -> Account:
    data = dict(row)
    if isinstance(data.get("secondary_counters"), str):
        data["secondary_counters"] = json.loads(data["secondary_counters"])
    data["secondary_counters"] = data.get("secondary_counters") or {}
    return Account.model_validate(data)


class AccountRepo(BaseRepo):
    """Repository for credit_accounts table."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, user_id: str) -> Account | None:
        """Plain snapshot read, takes no lock."""
        result = await self.session.execute(
            text(f"SELECT {_COLUMNS} FROM credit_accounts WHERE user_id = :user_id"),
            {"user_id": user_id},
        )
        row = result.mappings().fetchone()
        return _row_to_account(row) if row else None

    async def get_for_update(self, user_id: str) -> Account | None:
        """Read and row-lock one account until the transaction ends.

        Must be called inside a transaction. Concurrent callers for the same
        user_id queue on the lock; other accounts are unaffected.
        """
        result = await self.session.execute(
            text(f"SELECT {_COLUMNS} FROM credit_accounts WHERE user_id = :user_id FOR UPDATE"),
            {"user_id": user_id},
        )
        row = result.mappings().fetchone()
        return _row_to_account(row) if row else None

    async def insert(self, account: Account) -> bool:
        """Insert a new account. Returns False if the user already has one."""
        result = await self.session.execute(
            text("""
                INSERT INTO credit_accounts (
                    user_id, balance, tier, cycle_anchor, secondary_counters,
                    created_at, updated_at
                )
                VALUES (
                    :user_id, :balance, :tier, :cycle_anchor, :secondary_counters,
                    :created_at, :updated_at
                )
                ON CONFLICT (user_id) DO NOTHING
            """),
            {
                "user_id": account.user_id,
                "balance": account.balance,
                "tier": account.tier.value,
                "cycle_anchor": account.cycle_anchor,
                "secondary_counters": json.dumps(account.secondary_counters),
                "created_at": account.created_at,
                "updated_at": account.updated_at,
            },
        )
        return result.rowcount > 0

    async def update_state(self, account: Account) -> bool:
        """Write the ledger-owned columns. Tier is owned by billing and left alone."""
        result = await self.session.execute(
            text("""
                UPDATE credit_accounts
                SET balance = :balance,
                    cycle_anchor = :cycle_anchor,
                    secondary_counters = :secondary_counters,
                    updated_at = :updated_at
                WHERE user_id = :user_id
            """),
            {
                "user_id": account.user_id,
                "balance": account.balance,
                "cycle_anchor": account.cycle_anchor,
                "secondary_counters": json.dumps(account.secondary_counters),
                "updated_at": self.now(),
            },
        )
        return result.rowcount > 0

    async def list_user_ids(self) -> list[str]:
        """All account ids, for the reset sweep."""
        result = await self.session.execute(
            text("SELECT user_id FROM credit_accounts ORDER BY user_id")
        )
        return [row[0] for row in result.fetchall()]
