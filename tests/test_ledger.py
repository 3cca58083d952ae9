"""Tests for CreditLedger check, deduct, grant and counters."""

import asyncio
import logging
from datetime import datetime, timezone

import pytest

from creditcore.contracts.enums import AuditKind, Tier
from creditcore.core import (
    AccountExists,
    AccountNotFound,
    CostTable,
    CreditLedger,
    InMemoryAccountStore,
    InsufficientCredits,
    UnknownCounter,
    UnknownOperation,
)
from creditcore.core.tiers import EXTENSION_PROMPTS

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


class PausingStore(InMemoryAccountStore):
    """Yields to the event loop between reading an account and writing it back."""

    async def _apply(self, user_id, fn):
        stale = await self.get(user_id)
        await asyncio.sleep(0)
        return await super()._apply(user_id, lambda _current: fn(stale))


@pytest.fixture
def portrait_ledger(store, sink):
    """Ledger whose cost table only knows generate_portrait at 5 credits."""
    return CreditLedger(
        store=store,
        costs=CostTable({"generate_portrait": 5}, aliases={}),
        sinks=[sink],
        backoff_base_seconds=0.0,
    )


class TestOpenAndCheck:
    """Test account creation and balance snapshots."""

    @pytest.mark.asyncio
    async def test_open_account_grants_tier_allotment(self, ledger) -> None:
        snapshot = await ledger.open_account("u1", Tier.FREE, now=T0)
        assert snapshot.balance == 10
        assert snapshot.tier == Tier.FREE
        assert snapshot.secondary_counters == {EXTENSION_PROMPTS: 10}

    @pytest.mark.asyncio
    async def test_open_twice_rejected(self, ledger) -> None:
        await ledger.open_account("u1", now=T0)
        with pytest.raises(AccountExists):
            await ledger.open_account("u1", now=T0)

    @pytest.mark.asyncio
    async def test_check_balance_unknown_account(self, ledger) -> None:
        with pytest.raises(AccountNotFound) as exc_info:
            await ledger.check_balance("ghost")
        assert exc_info.value.user_id == "ghost"

    @pytest.mark.asyncio
    async def test_snapshot_is_a_copy(self, ledger) -> None:
        await ledger.open_account("u1", now=T0)
        snapshot = await ledger.check_balance("u1")
        snapshot.secondary_counters[EXTENSION_PROMPTS] = 0
        again = await ledger.check_balance("u1")
        assert again.secondary_counters[EXTENSION_PROMPTS] == 10


class TestDeduct:
    """Test atomic deduction."""

    @pytest.mark.asyncio
    async def test_portrait_scenario(self, portrait_ledger, store) -> None:
        """10 credits at cost 5: two successes, then InsufficientCredits at 0."""
        await portrait_ledger.open_account("u1", Tier.FREE, now=T0)

        first = await portrait_ledger.deduct("u1", "generate_portrait")
        assert first.remaining == 5
        second = await portrait_ledger.deduct("u1", "generate_portrait")
        assert second.remaining == 0

        with pytest.raises(InsufficientCredits) as exc_info:
            await portrait_ledger.deduct("u1", "generate_portrait")
        assert exc_info.value.required == 5
        assert exc_info.value.available == 0

        snapshot = await portrait_ledger.check_balance("u1")
        assert snapshot.balance == 0
        deducts = [e for e in store.audit if e.kind == AuditKind.DEDUCT]
        assert len(deducts) == 2

    @pytest.mark.asyncio
    async def test_unknown_operation_never_mutates(self, ledger, store) -> None:
        await ledger.open_account("u1", now=T0)
        audit_before = len(store.audit)

        with pytest.raises(UnknownOperation):
            await ledger.deduct("u1", "teleport")

        assert (await ledger.check_balance("u1")).balance == 10
        assert len(store.audit) == audit_before

    @pytest.mark.asyncio
    async def test_unknown_operation_checked_before_account(self, ledger) -> None:
        with pytest.raises(UnknownOperation):
            await ledger.deduct("ghost", "teleport")

    @pytest.mark.asyncio
    async def test_deduct_unknown_account(self, ledger) -> None:
        with pytest.raises(AccountNotFound):
            await ledger.deduct("ghost", "portrait")

    @pytest.mark.asyncio
    async def test_audit_entry_written_with_context(self, ledger, store, sink) -> None:
        await ledger.open_account("u1", now=T0)
        await ledger.deduct("u1", "bg_remove", {"template_id": "t-42"})

        entry = store.audit[-1]
        assert entry.kind == AuditKind.DEDUCT
        assert entry.operation == "background_remove"
        assert entry.amount == 1
        assert entry.balance_after == 9
        assert entry.context == {"template_id": "t-42"}
        assert sink.entries[-1] == entry

    @pytest.mark.asyncio
    async def test_concurrent_deducts_never_overspend(self) -> None:
        """N concurrent deducts of cost c against B: exactly floor(B/c) succeed."""
        store = PausingStore()
        portrait_ledger = CreditLedger(
            store=store,
            costs=CostTable({"generate_portrait": 5}, aliases={}),
            backoff_base_seconds=0.0,
        )
        await portrait_ledger.open_account("u1", Tier.PRO, now=T0)  # 200 credits

        results = await asyncio.gather(
            *(portrait_ledger.deduct("u1", "generate_portrait") for _ in range(57)),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 200 // 5
        assert all(isinstance(f, InsufficientCredits) for f in failures)
        assert sorted(r.remaining for r in successes) == list(range(0, 200, 5))
        assert (await portrait_ledger.check_balance("u1")).balance == 0
        assert sum(e.amount for e in store.audit if e.kind == AuditKind.DEDUCT) == 200

    @pytest.mark.asyncio
    async def test_accounts_are_independent(self, ledger) -> None:
        await ledger.open_account("a", Tier.FREE, now=T0)
        await ledger.open_account("b", Tier.PRO, now=T0)

        await asyncio.gather(
            *(ledger.deduct("a", "portrait") for _ in range(10)),
            *(ledger.deduct("b", "video_10s") for _ in range(10)),
        )

        assert (await ledger.check_balance("a")).balance == 0
        assert (await ledger.check_balance("b")).balance == 180

    @pytest.mark.asyncio
    async def test_can_afford_is_advisory(self, portrait_ledger) -> None:
        await portrait_ledger.open_account("u1", now=T0)
        check = await portrait_ledger.can_afford("u1", "generate_portrait")
        assert check.allowed is True
        assert check.cost == 5
        assert check.balance == 10
        assert (await portrait_ledger.check_balance("u1")).balance == 10

        await portrait_ledger.deduct("u1", "generate_portrait")
        await portrait_ledger.deduct("u1", "generate_portrait")
        check = await portrait_ledger.can_afford("u1", "generate_portrait")
        assert check.allowed is False


class TestGrant:
    """Test additive grants."""

    @pytest.mark.asyncio
    async def test_grant_then_check(self, ledger, store) -> None:
        await ledger.open_account("u1", now=T0)
        before = (await ledger.check_balance("u1")).balance

        result = await ledger.grant("u1", 25, "support_credit")

        assert result.balance == before + 25
        assert (await ledger.check_balance("u1")).balance == before + 25
        assert store.audit[-1].kind == AuditKind.GRANT
        assert store.audit[-1].reason == "support_credit"

    @pytest.mark.asyncio
    async def test_grant_unknown_account(self, ledger) -> None:
        with pytest.raises(AccountNotFound):
            await ledger.grant("ghost", 5, "top_up")

    @pytest.mark.asyncio
    async def test_grant_requires_positive_amount(self, ledger) -> None:
        await ledger.open_account("u1", now=T0)
        with pytest.raises(ValueError, match="amount"):
            await ledger.grant("u1", 0, "nothing")
        with pytest.raises(ValueError, match="amount"):
            await ledger.grant("u1", -3, "sneaky")
        assert (await ledger.check_balance("u1")).balance == 10


class TestSecondaryCounters:
    """Test named counters such as extension prompts."""

    @pytest.mark.asyncio
    async def test_consume_counter(self, ledger) -> None:
        await ledger.open_account("u1", now=T0)
        result = await ledger.consume_counter("u1", EXTENSION_PROMPTS)
        assert result.remaining == 9
        snapshot = await ledger.check_balance("u1")
        assert snapshot.secondary_counters[EXTENSION_PROMPTS] == 9
        assert snapshot.balance == 10

    @pytest.mark.asyncio
    async def test_counter_cannot_go_negative(self, ledger) -> None:
        await ledger.open_account("u1", now=T0)
        await ledger.consume_counter("u1", EXTENSION_PROMPTS, amount=10)
        with pytest.raises(InsufficientCredits):
            await ledger.consume_counter("u1", EXTENSION_PROMPTS)
        snapshot = await ledger.check_balance("u1")
        assert snapshot.secondary_counters[EXTENSION_PROMPTS] == 0

    @pytest.mark.asyncio
    async def test_unknown_counter(self, ledger) -> None:
        await ledger.open_account("u1", now=T0)
        with pytest.raises(UnknownCounter):
            await ledger.consume_counter("u1", "video_minutes")


class TestHistory:
    """Test audit history reads."""

    @pytest.mark.asyncio
    async def test_history_newest_first(self, ledger) -> None:
        await ledger.open_account("u1", now=T0)
        await ledger.deduct("u1", "portrait")
        await ledger.grant("u1", 3, "promo")

        history = await ledger.history("u1")

        assert [e.kind for e in history] == [AuditKind.GRANT, AuditKind.DEDUCT, AuditKind.GRANT]
        assert history[-1].reason == "account_opened"

    @pytest.mark.asyncio
    async def test_history_limit(self, ledger) -> None:
        await ledger.open_account("u1", now=T0)
        for _ in range(5):
            await ledger.deduct("u1", "portrait")
        assert len(await ledger.history("u1", limit=2)) == 2

    @pytest.mark.asyncio
    async def test_history_unknown_account(self, ledger) -> None:
        with pytest.raises(AccountNotFound):
            await ledger.history("ghost")


@pytest.mark.asyncio
async def test_unexpected_store_error_logged_with_context(
    ledger, store, caplog: pytest.LogCaptureFixture
) -> None:
    """Unexpected failures propagate and are logged with user and operation."""
    await ledger.open_account("u1", now=T0)

    async def broken_mutate(user_id, fn):
        raise RuntimeError("disk on fire")

    store.mutate = broken_mutate
    caplog.set_level(logging.ERROR, logger="creditcore.core.ledger")

    with pytest.raises(RuntimeError, match="disk on fire"):
        await ledger.deduct("u1", "portrait")

    records = [r for r in caplog.records if r.name == "creditcore.core.ledger"]
    assert len(records) == 1
    assert "user_id=u1" in records[0].getMessage()
    assert "operation=portrait" in records[0].getMessage()
