"""Pydantic v2 models for accounts, audit entries and ledger results."""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from creditcore.contracts.enums import AuditKind, Tier


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Naive timestamps are taken as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class BaseContractModel(BaseModel):
    """Base model for all contracts."""

    model_config = {"extra": "forbid", "frozen": False}


class Account(BaseContractModel):
    """Per-user ledger record."""

    user_id: str = Field(min_length=1)
    balance: int = Field(ge=0)
    tier: Tier = Tier.FREE
    cycle_anchor: datetime
    secondary_counters: dict[str, int] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("cycle_anchor", "created_at", "updated_at")
    @classmethod
    def require_tz(cls, v: datetime) -> datetime:
        return as_utc(v)

    @field_validator("secondary_counters")
    @classmethod
    def counters_non_negative(cls, v: dict[str, int]) -> dict[str, int]:
        for name, remaining in v.items():
            if remaining < 0:
                raise ValueError(f"secondary counter {name} must be >= 0")
        return v


class AuditEntry(BaseContractModel):
    """Append-only record of a committed balance or counter change."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    kind: AuditKind
    amount: int
    balance_after: int = Field(ge=0)
    operation: str | None = None
    counter: str | None = None
    reason: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=utcnow)

    @field_validator("occurred_at")
    @classmethod
    def occurred_at_tz(cls, v: datetime) -> datetime:
        return as_utc(v)


class OperationDescriptor(BaseContractModel):
    """Cost table entry."""

    name: str = Field(min_length=1)
    cost: int = Field(gt=0)

    model_config = {"extra": "forbid", "frozen": True}


class BalanceSnapshot(BaseContractModel):
    """Read-only view returned by check_balance."""

    balance: int
    tier: Tier
    secondary_counters: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def of(cls, account: Account) -> "BalanceSnapshot":
        return cls(
            balance=account.balance,
            tier=account.tier,
            secondary_counters=dict(account.secondary_counters),
        )


class DeductResult(BaseContractModel):
    remaining: int


class GrantResult(BaseContractModel):
    balance: int


class ResetResult(BaseContractModel):
    reset: bool


class CounterResult(BaseContractModel):
    remaining: int


class Affordability(BaseContractModel):
    """Advisory answer to "can this user pay for this operation now"."""

    allowed: bool
    cost: int
    balance: int


class SweepError(BaseContractModel):
    """Per-account failure collected during a reset sweep."""

    user_id: str
    error: str
    message: str


class SweepResult(BaseContractModel):
    """Outcome of one scheduler pass over all accounts."""

    accounts_seen: int = 0
    accounts_reset: int = 0
    errors: list[SweepError] = Field(default_factory=list)
