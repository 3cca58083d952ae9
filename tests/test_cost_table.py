"""Tests for the operation cost table."""

import pytest
from pydantic import ValidationError

from creditcore.core.costs import DEFAULT_OPERATION_COSTS, CostTable
from creditcore.core.errors import UnknownOperation


class TestCostLookup:
    """Test cost_of and friends."""

    def test_known_operation(self) -> None:
        table = CostTable()
        assert table.cost_of("portrait") == 1
        assert table.cost_of("video_10s") == 2
        assert table.cost_of("batch_10") == 10

    def test_unknown_operation_raises(self) -> None:
        table = CostTable()
        with pytest.raises(UnknownOperation) as exc_info:
            table.cost_of("make_coffee")
        assert exc_info.value.operation == "make_coffee"
        assert exc_info.value.code == "UnknownOperation"

    def test_alias_resolves_to_canonical(self) -> None:
        table = CostTable()
        assert table.canonical("bg_remove") == "background_remove"
        assert table.cost_of("bg_remove") == table.cost_of("background_remove")
        assert "bg_remove" in table

    def test_contains(self) -> None:
        table = CostTable({"generate_portrait": 5}, aliases={})
        assert "generate_portrait" in table
        assert "portrait" not in table
        assert 5 not in table
        assert len(table) == 1

    def test_operations_sorted(self) -> None:
        names = [d.name for d in CostTable().operations()]
        assert names == sorted(DEFAULT_OPERATION_COSTS)


class TestCostTableConstruction:
    """Test table validation and overrides."""

    def test_non_positive_cost_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CostTable({"free_lunch": 0}, aliases={})

    def test_alias_to_missing_operation_rejected(self) -> None:
        with pytest.raises(ValueError, match="alias"):
            CostTable({"portrait": 1}, aliases={"old": "missing"})

    def test_with_overrides_keeps_defaults(self) -> None:
        table = CostTable.with_overrides({"portrait": 4, "upscale_8k": 6})
        assert table.cost_of("portrait") == 4
        assert table.cost_of("upscale_8k") == 6
        assert table.cost_of("enhance") == 1

    def test_descriptors_are_immutable(self) -> None:
        descriptor = CostTable().describe("portrait")
        with pytest.raises(ValidationError):
            descriptor.cost = 100
