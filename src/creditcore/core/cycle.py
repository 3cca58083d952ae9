"""Billing cycle boundary policies."""

from datetime import datetime, timedelta, timezone
from typing import Protocol

from creditcore.contracts.enums import CyclePolicyKind
from creditcore.contracts.models import as_utc


class CyclePolicy(Protocol):
    """Decides when an account's cycle ends."""

    def next_boundary(self, anchor: datetime) -> datetime:
        """First instant after anchor at which a reset is due."""
        ...

    def current_start(self, anchor: datetime, now: datetime) -> datetime:
        """Start of the cycle containing now (latest boundary <= now)."""
        ...


def is_reset_due(policy: CyclePolicy, anchor: datetime, now: datetime) -> bool:
    """Return True when now has reached the boundary after anchor."""
    return now >= policy.next_boundary(anchor)


class RollingCycle:
    """Fixed-length cycles counted from the account's anchor."""

    def __init__(self, days: int = 30) -> None:
        if days < 1:
            raise ValueError("days must be >= 1")
        self.length = timedelta(days=days)

    def next_boundary(self, anchor: datetime) -> datetime:
        return anchor + self.length

    def current_start(self, anchor: datetime, now: datetime) -> datetime:
        if now < anchor:
            return anchor
        elapsed = (now - anchor) // self.length
        return anchor + elapsed * self.length


class CalendarMonthCycle:
    """Cycles that roll over at 00:00 UTC on the first of each month."""

    @staticmethod
    def _month_start(moment: datetime) -> datetime:
        moment = as_utc(moment).astimezone(timezone.utc)
        return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    def next_boundary(self, anchor: datetime) -> datetime:
        start = self._month_start(anchor)
        if start.month == 12:
            return start.replace(year=start.year + 1, month=1)
        return start.replace(month=start.month + 1)

    def current_start(self, anchor: datetime, now: datetime) -> datetime:
        if now < self.next_boundary(anchor):
            return anchor
        return self._month_start(now)


def build_cycle_policy(kind: CyclePolicyKind, days: int = 30) -> CyclePolicy:
    if kind == CyclePolicyKind.CALENDAR_MONTH:
        return CalendarMonthCycle()
    return RollingCycle(days=days)
