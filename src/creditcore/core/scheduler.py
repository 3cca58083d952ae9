"""Cycle scheduler: resets every account whose billing cycle has ended."""

import asyncio
import logging
from datetime import datetime

from creditcore.contracts.models import SweepError, SweepResult, as_utc, utcnow
from creditcore.core.ledger import CreditLedger

logger = logging.getLogger(__name__)


class CycleScheduler:
    """Runs reset sweeps on an external trigger (cron or HTTP).

    Safe to invoke repeatedly for the same boundary: each account's reset is
    gated on its stored cycle_anchor, so a retried sweep grants nothing twice.
    """

    def __init__(self, ledger: CreditLedger, concurrency: int = 8) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.ledger = ledger
        self.concurrency = concurrency

    async def run_reset_sweep(self, now: datetime | None = None) -> SweepResult:
        """Call reset_cycle for every account and report partial failures."""
        now = as_utc(now) if now else utcnow()
        user_ids = await self.ledger.store.list_user_ids()
        semaphore = asyncio.Semaphore(self.concurrency)
        result = SweepResult(accounts_seen=len(user_ids))

        async def reset_one(user_id: str) -> None:
            async with semaphore:
                try:
                    outcome = await self.ledger.reset_cycle(user_id, now)
                except Exception as e:
                    logger.warning("Reset failed for %s: %s: %s", user_id, type(e).__name__, e)
                    result.errors.append(
                        SweepError(
                            user_id=user_id,
                            error=getattr(e, "code", type(e).__name__),
                            message=str(e),
                        )
                    )
                    return
                if outcome.reset:
                    result.accounts_reset += 1

        await asyncio.gather(*(reset_one(user_id) for user_id in user_ids))

        logger.info(
            "Reset sweep at %s: seen=%d reset=%d errors=%d",
            now.isoformat(),
            result.accounts_seen,
            result.accounts_reset,
            len(result.errors),
        )
        return result
