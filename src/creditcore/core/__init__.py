"""Core accounting: costs, tiers, cycles, ledger and scheduler."""

from creditcore.core.audit import AuditSink, InMemoryAuditSink, JsonLogAuditSink
from creditcore.core.costs import CostTable
from creditcore.core.cycle import CalendarMonthCycle, CyclePolicy, RollingCycle, build_cycle_policy
from creditcore.core.errors import (
    AccountExists,
    AccountNotFound,
    CreditError,
    InsufficientCredits,
    StorageUnavailable,
    UnknownCounter,
    UnknownOperation,
)
from creditcore.core.ledger import CreditLedger
from creditcore.core.scheduler import CycleScheduler
from creditcore.core.store import AccountChange, AccountStore, InMemoryAccountStore
from creditcore.core.tiers import TierAllotment, TierPolicy

__all__ = [
    "AccountChange",
    "AccountExists",
    "AccountNotFound",
    "AccountStore",
    "AuditSink",
    "CalendarMonthCycle",
    "CostTable",
    "CreditError",
    "CreditLedger",
    "CyclePolicy",
    "CycleScheduler",
    "InMemoryAccountStore",
    "InMemoryAuditSink",
    "InsufficientCredits",
    "JsonLogAuditSink",
    "RollingCycle",
    "StorageUnavailable",
    "TierAllotment",
    "TierPolicy",
    "UnknownCounter",
    "UnknownOperation",
    "build_cycle_policy",
]
