"""Static operation cost table."""

import logging
from collections.abc import Mapping
from types import MappingProxyType

from creditcore.contracts.models import OperationDescriptor
from creditcore.core.errors import UnknownOperation

logger = logging.getLogger(__name__)

DEFAULT_OPERATION_COSTS: Mapping[str, int] = MappingProxyType(
    {
        "portrait": 1,
        "enhance": 1,
        "background_remove": 1,
        "beautify": 1,
        "prompt_extract": 1,
        "thumbnail": 1,
        "image_gen": 1,
        "image_edit": 1,
        "ad_gen": 1,
        "video_5s": 1,
        "video_10s": 2,
        "batch_10": 10,
    }
)

# Legacy names still sent by older clients.
OPERATION_ALIASES: Mapping[str, str] = MappingProxyType({"bg_remove": "background_remove"})


class CostTable:
    """Read-only mapping from operation name to credit cost.

    Built once at start-up and never mutated afterwards, so lookups need no
    locking.
    """

    def __init__(
        self,
        costs: Mapping[str, int] | None = None,
        aliases: Mapping[str, str] | None = None,
    ) -> None:
        source = DEFAULT_OPERATION_COSTS if costs is None else costs
        descriptors = {
            name: OperationDescriptor(name=name, cost=cost) for name, cost in source.items()
        }
        alias_map = dict(OPERATION_ALIASES if aliases is None else aliases)
        for alias, target in alias_map.items():
            if target not in descriptors:
                raise ValueError(f"alias {alias} points at unknown operation {target}")
        self._descriptors: Mapping[str, OperationDescriptor] = MappingProxyType(descriptors)
        self._aliases: Mapping[str, str] = MappingProxyType(alias_map)

    @classmethod
    def with_overrides(cls, overrides: Mapping[str, int]) -> "CostTable":
        """Default table with per-operation overrides applied on top."""
        merged = {**DEFAULT_OPERATION_COSTS, **overrides}
        if overrides:
            logger.info("Cost table overrides applied: %s", sorted(overrides))
        return cls(merged)

    def canonical(self, operation: str) -> str:
        return self._aliases.get(operation, operation)

    def describe(self, operation: str) -> OperationDescriptor:
        descriptor = self._descriptors.get(self.canonical(operation))
        if descriptor is None:
            raise UnknownOperation(operation)
        return descriptor

    def cost_of(self, operation: str) -> int:
        """Resolve an operation to its cost.

        Raises:
            UnknownOperation: if the name (or alias) is not in the table
        """
        return self.describe(operation).cost

    def operations(self) -> list[OperationDescriptor]:
        return sorted(self._descriptors.values(), key=lambda d: d.name)

    def __contains__(self, operation: object) -> bool:
        return isinstance(operation, str) and self.canonical(operation) in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)
