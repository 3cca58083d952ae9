"""Audit sinks that mirror committed ledger entries to logs."""

import json
import logging
from typing import Protocol

from creditcore.contracts.enums import AuditKind
from creditcore.contracts.models import AuditEntry

AUDIT_LOGGER_NAME = "creditcore.audit"


class AuditSink(Protocol):
    """Protocol for observing committed audit entries."""

    def record(self, entry: AuditEntry) -> None:
        """Record an audit entry."""
        ...


class InMemoryAuditSink:
    """Sink that keeps entries in a list."""

    def __init__(self) -> None:
        self.entries: list[AuditEntry] = []

    def record(self, entry: AuditEntry) -> None:
        self.entries.append(entry)

    def total_debited(self, user_id: str | None = None) -> int:
        """Sum of credits deducted, optionally for one user."""
        return sum(
            e.amount
            for e in self.entries
            if e.kind == AuditKind.DEDUCT and (user_id is None or e.user_id == user_id)
        )


class JsonLogAuditSink:
    """Sink that writes one JSON line per entry to logger creditcore.audit."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(AUDIT_LOGGER_NAME)

    def record(self, entry: AuditEntry) -> None:
        """Record entry as a single JSON line to the audit logger."""
        payload = {
            "id": str(entry.id),
            "occurred_at": entry.occurred_at.isoformat(),
            "user_id": entry.user_id,
            "kind": entry.kind.value,
            "operation": entry.operation,
            "counter": entry.counter,
            "amount": entry.amount,
            "balance_after": entry.balance_after,
            "reason": entry.reason,
            "context": entry.context,
        }
        self._logger.info(json.dumps(payload, default=str))
