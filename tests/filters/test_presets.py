"""Tests that every built-in preset compiles cleanly."""

import pytest

from src.filters.cache import FilterCache
from src.filters.compiler import FilterQueryCompiler, normalize_filter_name
from src.filters.models import CustomFilter, FilterConditionSpec
from src.filters.presets import PRESET_FILTERS


def _as_custom(preset) -> CustomFilter:
    return CustomFilter(
        name=preset.name,
        logic=preset.operator,
        conditions=[
            FilterConditionSpec(
                kind=c.kind,
                field=c.field,
                operator=c.operator,
                values=list(c.values),
                date_from=c.date_from,
                date_to=c.date_to,
                unit=c.unit,
            )
            for c in preset.conditions
        ],
    )


class TestPresets:
    def test_names_unique(self):
        names = [normalize_filter_name(p.name) for p in PRESET_FILTERS]
        assert len(names) == len(set(names))

    def test_one_default_per_view(self):
        defaults = {p.view_mode: p.name for p in PRESET_FILTERS if p.is_default}
        assert defaults == {
            "planner": "Hide Completed",
            "tracker": "Active in Past 7 Days",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("preset", PRESET_FILTERS, ids=lambda p: p.name)
    async def test_preset_compiles_without_drops(self, preset):
        compiler = FilterQueryCompiler(store=None, cache=FilterCache())
        result = await compiler.compile(custom_filters=[_as_custom(preset)], user_id=1)
        assert result.where_sql is not None
        assert result.dropped_conditions == 0
