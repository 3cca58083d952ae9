"""Canonical enum definitions for credit accounting."""

from enum import Enum


class Tier(str, Enum):
    """Subscription tier; written by billing, read by the ledger."""

    FREE = "free"
    STARTER = "starter"
    CREATOR = "creator"
    PRO = "pro"


class CyclePolicyKind(str, Enum):
    """How billing cycle boundaries are computed."""

    ROLLING = "rolling"
    CALENDAR_MONTH = "calendar_month"


class AuditKind(str, Enum):
    """Kind of balance transition recorded in the audit trail."""

    DEDUCT = "deduct"
    GRANT = "grant"
    RESET = "reset"
    COUNTER = "counter"


class StorageBackend(str, Enum):
    """Account store implementation selected at start-up."""

    MEMORY = "memory"
    POSTGRES = "postgres"
