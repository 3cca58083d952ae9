"""Credit audit repository."""

import json

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from creditcore.contracts.models import AuditEntry
from creditcore.db.repos.base import BaseRepo


class AuditRepo(BaseRepo):
    """Repository for the append-only credit_audit table."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert_entry(self, entry: AuditEntry) -> None:
        await self.session.execute(
            text("""
                INSERT INTO credit_audit (
                    id, user_id, kind, operation, counter, amount,
                    balance_after, reason, context, occurred_at
                )
                VALUES (
                    :id, :user_id, :kind, :operation, :counter, :amount,
                    :balance_after, :reason, :context, :occurred_at
                )
            """),
            {
                "id": entry.id,
                "user_id": entry.user_id,
                "kind": entry.kind.value,
                "operation": entry.operation,
                "counter": entry.counter,
                "amount": entry.amount,
                "balance_after": entry.balance_after,
                "reason": entry.reason,
                "context": json.dumps(entry.context, default=str),
                "occurred_at": entry.occurred_at,
            },
        )

    async def list_for_user(self, user_id: str, limit: int = 50) -> list[AuditEntry]:
        """List audit entries for a user, newest first."""
        result = await self.session.execute(
            text("""
                SELECT id, user_id, kind, operation, counter, amount,
                       balance_after, reason, context, occurred_at
                FROM credit_audit
                WHERE user_id = :user_id
                ORDER BY occurred_at DESC
                LIMIT :limit
            """),
            {"user_id": user_id, "limit": limit},
        )
        entries = []
        for row in result.mappings().fetchall():
            data = dict(row)
            if isinstance(data.get("context"), str):
                data["context"] = json.loads(data["context"])
            data["context"] = data.get("context") or {}
            entries.append(AuditEntry.model_validate(data))
        return entries
