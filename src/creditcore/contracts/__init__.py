"""Contracts shared by the ledger, store and API layers."""

from creditcore.contracts.enums import AuditKind, CyclePolicyKind, StorageBackend, Tier
from creditcore.contracts.models import (
    Account,
    Affordability,
    AuditEntry,
    BalanceSnapshot,
    CounterResult,
    DeductResult,
    GrantResult,
    OperationDescriptor,
    ResetResult,
    SweepError,
    SweepResult,
)

__all__ = [
    "Account",
    "Affordability",
    "AuditEntry",
    "AuditKind",
    "BalanceSnapshot",
    "CounterResult",
    "CyclePolicyKind",
    "DeductResult",
    "GrantResult",
    "OperationDescriptor",
    "ResetResult",
    "StorageBackend",
    "SweepError",
    "SweepResult",
    "Tier",
]
