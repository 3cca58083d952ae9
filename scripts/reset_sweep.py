#!/usr/bin/env python3
"""Run one credit reset sweep against the configured account store.

Usage:
    python scripts/reset_sweep.py

Intended for cron deployments that run a process instead of calling
POST /reset-sweep. Exits non-zero when any account failed to reset so the
scheduler's retry picks it up; already-reset accounts are skipped on retry.
"""

import asyncio
import json
import logging
import sys

from creditcore.api.credits import build_ledger
from creditcore.core import CycleScheduler
from creditcore.settings import get_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


async def main() -> int:
    settings = get_settings()
    ledger = build_ledger(settings)
    scheduler = CycleScheduler(ledger, concurrency=settings.sweep_concurrency)

    result = await scheduler.run_reset_sweep()
    print(json.dumps(result.model_dump(mode="json"), indent=2))

    if result.errors:
        logger.warning("%d account(s) failed to reset", len(result.errors))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
