"""Tier allotment table."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from creditcore.contracts.enums import Tier

EXTENSION_PROMPTS = "extension_prompts"


@dataclass(frozen=True)
class TierAllotment:
    """Credits and secondary counter quotas granted at each cycle reset."""

    credits: int
    counters: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.credits < 0:
            raise ValueError("credits must be >= 0")
        for name, quota in self.counters.items():
            if quota < 0:
                raise ValueError(f"counter {name} must be >= 0")


# Adding a tier means adding a Tier member and one row here.
DEFAULT_TIER_ALLOTMENTS: Mapping[Tier, TierAllotment] = MappingProxyType(
    {
        Tier.FREE: TierAllotment(credits=10, counters={EXTENSION_PROMPTS: 10}),
        Tier.STARTER: TierAllotment(credits=50, counters={EXTENSION_PROMPTS: 20}),
        Tier.CREATOR: TierAllotment(credits=150, counters={EXTENSION_PROMPTS: 50}),
        Tier.PRO: TierAllotment(credits=200, counters={EXTENSION_PROMPTS: 100}),
    }
)


class TierPolicy:
    """Maps each tier to its monthly allotment."""

    def __init__(self, allotments: Mapping[Tier, TierAllotment] | None = None) -> None:
        table = dict(DEFAULT_TIER_ALLOTMENTS if allotments is None else allotments)
        missing = [t.value for t in Tier if t not in table]
        if missing:
            raise ValueError(f"No allotment configured for tiers: {missing}")
        self._allotments: Mapping[Tier, TierAllotment] = MappingProxyType(table)

    def allotment_for(self, tier: Tier) -> TierAllotment:
        return self._allotments[tier]

    def credits_for(self, tier: Tier) -> int:
        return self._allotments[tier].credits

    def counters_for(self, tier: Tier) -> dict[str, int]:
        return dict(self._allotments[tier].counters)
