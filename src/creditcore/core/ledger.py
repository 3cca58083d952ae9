"""Credit ledger: the sole arbiter and mutator of account balances."""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar, cast

from creditcore.contracts.enums import AuditKind, Tier
from creditcore.contracts.models import (
    Account,
    Affordability,
    AuditEntry,
    BalanceSnapshot,
    CounterResult,
    DeductResult,
    GrantResult,
    ResetResult,
    as_utc,
    utcnow,
)
from creditcore.core.audit import AuditSink
from creditcore.core.costs import CostTable
from creditcore.core.cycle import CyclePolicy, RollingCycle, is_reset_due
from creditcore.core.errors import (
    AccountNotFound,
    CreditError,
    InsufficientCredits,
    UnknownCounter,
)
from creditcore.core.retry import retry_unavailable
from creditcore.core.store import AccountChange, AccountStore
from creditcore.core.tiers import TierPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CreditLedger:
    """Checks, debits, grants and cycle resets against an AccountStore.

    Every write goes through ``store.mutate`` so the read-check-write for one
    account happens inside that account's exclusive scope. The scope is never
    held across a call to anything outside the store.
    """

    def __init__(
        self,
        store: AccountStore,
        costs: CostTable | None = None,
        tiers: TierPolicy | None = None,
        cycle: CyclePolicy | None = None,
        sinks: list[AuditSink] | None = None,
        max_retries: int = 3,
        backoff_base_seconds: float = 0.05,
    ) -> None:
        self.store = store
        self.costs = costs or CostTable()
        self.tiers = tiers or TierPolicy()
        self.cycle = cycle or RollingCycle()
        self.sinks = list(sinks or [])
        self.max_retries = max_retries
        self.backoff_base_seconds = backoff_base_seconds

    async def _run(
        self,
        action: str,
        user_id: str,
        fn: Callable[[], Awaitable[T]],
        operation: str | None = None,
    ) -> T:
        """Run a store call with retries, logging unexpected failures."""
        try:
            return await retry_unavailable(
                fn,
                max_retries=self.max_retries,
                base_seconds=self.backoff_base_seconds,
                label=f"{action} user={user_id}",
            )
        except CreditError:
            raise
        except Exception:
            logger.exception(
                "Ledger %s failed: user_id=%s operation=%s at=%s",
                action,
                user_id,
                operation,
                utcnow().isoformat(),
            )
            raise

    def _publish(self, change: AccountChange | None) -> None:
        if change is None:
            return
        for entry in change.entries:
            for sink in self.sinks:
                sink.record(entry)

    async def open_account(
        self,
        user_id: str,
        tier: Tier = Tier.FREE,
        now: datetime | None = None,
    ) -> BalanceSnapshot:
        """Create an account holding its tier's initial allotment."""
        now = as_utc(now) if now else utcnow()
        allotment = self.tiers.allotment_for(tier)
        account = Account(
            user_id=user_id,
            balance=allotment.credits,
            tier=tier,
            cycle_anchor=now,
            secondary_counters=dict(allotment.counters),
            created_at=now,
            updated_at=now,
        )
        entry = AuditEntry(
            user_id=user_id,
            kind=AuditKind.GRANT,
            amount=allotment.credits,
            balance_after=allotment.credits,
            reason="account_opened",
            occurred_at=now,
        )
        await self._run("open_account", user_id, lambda: self.store.create(account, [entry]))
        self._publish(AccountChange(account=account, entries=[entry]))
        logger.info("Opened account %s on tier %s with %d credits", user_id, tier.value, allotment.credits)
        return BalanceSnapshot.of(account)

    async def check_balance(self, user_id: str) -> BalanceSnapshot:
        """Advisory snapshot; reserves nothing."""
        account = await self._run("check_balance", user_id, lambda: self.store.get(user_id))
        if account is None:
            raise AccountNotFound(user_id)
        return BalanceSnapshot.of(account)

    async def can_afford(self, user_id: str, operation: str) -> Affordability:
        """Advisory pre-check before starting paid work."""
        cost = self.costs.cost_of(operation)
        snapshot = await self.check_balance(user_id)
        return Affordability(allowed=snapshot.balance >= cost, cost=cost, balance=snapshot.balance)

    async def deduct(
        self,
        user_id: str,
        operation: str,
        context: dict[str, Any] | None = None,
    ) -> DeductResult:
        """Atomically debit the operation's cost.

        Raises:
            UnknownOperation: before the store is touched
            AccountNotFound: no such account
            InsufficientCredits: balance below cost at commit time; nothing written
        """
        cost = self.costs.cost_of(operation)
        canonical = self.costs.canonical(operation)

        def apply(account: Account) -> AccountChange:
            if account.balance < cost:
                raise InsufficientCredits(user_id, required=cost, available=account.balance)
            account.balance -= cost
            entry = AuditEntry(
                user_id=user_id,
                kind=AuditKind.DEDUCT,
                operation=canonical,
                amount=cost,
                balance_after=account.balance,
                context=dict(context or {}),
            )
            return AccountChange(account=account, entries=[entry])

        change = await self._run(
            "deduct", user_id, lambda: self.store.mutate(user_id, apply), operation=operation
        )
        committed = cast(AccountChange, change)
        self._publish(committed)
        return DeductResult(remaining=committed.account.balance)

    async def grant(self, user_id: str, amount: int, reason: str) -> GrantResult:
        """Add credits outside the reset cycle (top-ups, support credits)."""
        if amount <= 0:
            raise ValueError("amount must be > 0")

        def apply(account: Account) -> AccountChange:
            account.balance += amount
            entry = AuditEntry(
                user_id=user_id,
                kind=AuditKind.GRANT,
                amount=amount,
                balance_after=account.balance,
                reason=reason,
            )
            return AccountChange(account=account, entries=[entry])

        change = await self._run("grant", user_id, lambda: self.store.mutate(user_id, apply))
        committed = cast(AccountChange, change)
        self._publish(committed)
        logger.info("Granted %d credits to %s (%s)", amount, user_id, reason)
        return GrantResult(balance=committed.account.balance)

    async def reset_cycle(self, user_id: str, now: datetime | None = None) -> ResetResult:
        """Reset balance and counters to the current tier's allotment if due.

        The due check runs inside the account scope against the stored
        cycle_anchor, so concurrent or repeated calls for the same boundary
        apply exactly one reset.
        """
        now = as_utc(now) if now else utcnow()

        def apply(account: Account) -> AccountChange | None:
            if not is_reset_due(self.cycle, account.cycle_anchor, now):
                return None
            allotment = self.tiers.allotment_for(account.tier)
            previous = account.balance
            counters = {name: 0 for name in account.secondary_counters}
            counters.update(allotment.counters)
            account.balance = allotment.credits
            account.secondary_counters = counters
            account.cycle_anchor = self.cycle.current_start(account.cycle_anchor, now)
            entry = AuditEntry(
                user_id=user_id,
                kind=AuditKind.RESET,
                amount=allotment.credits,
                balance_after=allotment.credits,
                reason="cycle_reset",
                context={
                    "tier": account.tier.value,
                    "previous_balance": previous,
                    "cycle_anchor": account.cycle_anchor.isoformat(),
                },
                occurred_at=now,
            )
            return AccountChange(account=account, entries=[entry])

        change = await self._run("reset_cycle", user_id, lambda: self.store.mutate(user_id, apply))
        if change is None:
            return ResetResult(reset=False)
        self._publish(change)
        logger.info(
            "Reset cycle for %s: tier=%s balance=%d",
            user_id,
            change.account.tier.value,
            change.account.balance,
        )
        return ResetResult(reset=True)

    async def consume_counter(self, user_id: str, counter: str, amount: int = 1) -> CounterResult:
        """Atomically decrement a secondary counter such as extension prompts."""
        if amount <= 0:
            raise ValueError("amount must be > 0")

        def apply(account: Account) -> AccountChange:
            if counter not in account.secondary_counters:
                raise UnknownCounter(counter, user_id)
            available = account.secondary_counters[counter]
            if available < amount:
                raise InsufficientCredits(user_id, required=amount, available=available)
            account.secondary_counters[counter] = available - amount
            entry = AuditEntry(
                user_id=user_id,
                kind=AuditKind.COUNTER,
                counter=counter,
                amount=amount,
                balance_after=account.balance,
                context={"counter_remaining": available - amount},
            )
            return AccountChange(account=account, entries=[entry])

        change = await self._run(
            "consume_counter", user_id, lambda: self.store.mutate(user_id, apply), operation=counter
        )
        committed = cast(AccountChange, change)
        self._publish(committed)
        return CounterResult(remaining=committed.account.secondary_counters[counter])

    async def history(self, user_id: str, limit: int = 50) -> list[AuditEntry]:
        """Audit entries for an existing account, newest first."""
        await self.check_balance(user_id)
        return await self._run("history", user_id, lambda: self.store.list_audit(user_id, limit))
