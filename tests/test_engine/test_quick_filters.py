"""Tests for quick filters and the toggle engine."""

import pytest

from portfolio_filters.descriptor import (
    MAX_RANGE_VALUE,
    ChainType,
    FilterDescriptor,
    PositionType,
    SortField,
    SortOrder,
    ValueRange,
)
from portfolio_filters.quick_filters import QUICK_FILTERS, ChipColor, QuickFilter, QuickFilterToggle
from portfolio_filters.registry import FILTER_FIELDS
from portfolio_filters.results import Status
from portfolio_filters.store import FilterStore

HIGH_VALUE = QUICK_FILTERS[0]

# Prior states the round-trip property is checked from
PRIOR_STATES = [
    {},
    {"search_query": "sol", "sort_by": "name"},
    {"value_range": (5, 50), "position_types": ["vault"], "chains": ["ethereum"]},
    {"show_only_staked": True, "apy_range": (1, 2), "sort_order": "asc", "group_by": "chain"},
]


class TestQuickFilterCatalog:
    """Tests for the built-in catalog."""

    def test_catalog_ids(self):
        """Test the catalog ships the expected quick filters."""
        assert [qf.id for qf in QUICK_FILTERS] == [
            "high-value",
            "staking-only",
            "defi-positions",
            "high-apy",
            "solana-only",
        ]

    def test_patches_are_normalized(self):
        """Test catalog patches hold canonical values."""
        assert HIGH_VALUE.patch == {
            "value_range": ValueRange(1000, MAX_RANGE_VALUE),
            "sort_by": SortField.VALUE,
            "sort_order": SortOrder.DESC,
        }
        assert HIGH_VALUE.color is ChipColor.SUCCESS

    def test_invalid_patch_rejected(self):
        """Test a quick filter with a bad patch cannot be built."""
        with pytest.raises(ValueError):
            QuickFilter(id="bad", label="Bad", patch={"chains": ["dogechain"]})

    def test_empty_patch_rejected(self):
        """Test a quick filter must set something."""
        with pytest.raises(ValueError):
            QuickFilter(id="empty", label="Empty", patch={})

    def test_duplicate_ids_rejected(self, store):
        """Test the engine refuses a catalog with duplicate ids."""
        with pytest.raises(ValueError):
            QuickFilterToggle(store, [HIGH_VALUE, HIGH_VALUE])


class TestToggle:
    """Tests for toggling quick filters on and off."""

    def test_high_value_scenario(self, store, toggle):
        """Test toggling High Value on and back off."""
        toggle.toggle(HIGH_VALUE)

        assert store.filters.value_range == ValueRange(1000, MAX_RANGE_VALUE)
        assert store.active_filter_count == 1
        assert toggle.is_selected("high-value")

        toggle.toggle(HIGH_VALUE)

        assert store.filters.value_range is None
        assert store.filters.sort_by is SortField.VALUE
        assert store.filters.sort_order is SortOrder.DESC
        assert store.active_filter_count == 0
        assert not toggle.is_selected("high-value")

    def test_toggle_by_id(self, store, toggle):
        """Test quick filters can be toggled by id."""
        result = toggle.toggle("solana-only")

        assert result.ok
        assert store.filters.chains == frozenset({ChainType.SOLANA})
        assert toggle.selected_ids == {"solana-only"}

    def test_unknown_id_is_not_found(self, store, toggle):
        """Test toggling an unknown id changes nothing."""
        result = toggle.toggle("moon-only")

        assert result.status is Status.NOT_FOUND
        assert store.filters == FilterDescriptor()
        assert toggle.selected_ids == frozenset()

    def test_toggle_off_leaves_other_fields(self, store, toggle):
        """Test removing a quick filter does not touch unrelated fields."""
        toggle.toggle("staking-only")
        store.set_search_query("msol")
        store.set_chains(["solana"])

        toggle.toggle("staking-only")

        assert store.filters.position_types == frozenset()
        assert store.filters.show_only_staked is False
        assert store.filters.search_query == "msol"
        assert store.filters.chains == frozenset({ChainType.SOLANA})

    @pytest.mark.parametrize("prior", PRIOR_STATES)
    @pytest.mark.parametrize("quick_filter", QUICK_FILTERS, ids=lambda qf: qf.id)
    def test_round_trip_restores_unnamed_fields(self, prior, quick_filter):
        """Test on/off leaves every field outside the patch unchanged."""
        store = FilterStore()
        store.apply_patch(prior)
        engine = QuickFilterToggle(store)
        before = store.filters

        engine.toggle(quick_filter)
        engine.toggle(quick_filter)

        for name in FILTER_FIELDS:
            if name in quick_filter.patch:
                assert getattr(store.filters, name) == getattr(FilterDescriptor(), name)
            else:
                assert getattr(store.filters, name) == getattr(before, name)

    @pytest.mark.parametrize("quick_filter", QUICK_FILTERS, ids=lambda qf: qf.id)
    def test_reapply_reproduces_fields(self, store, toggle, quick_filter):
        """Test toggling back on reproduces the first application."""
        toggle.toggle(quick_filter)
        first = {name: getattr(store.filters, name) for name in quick_filter.patch}

        toggle.toggle(quick_filter)
        store.set_search_query("unrelated")
        store.toggle_show_only_active()
        toggle.toggle(quick_filter)

        assert {name: getattr(store.filters, name) for name in quick_filter.patch} == first

    def test_overlapping_filters_last_write_wins(self, store, toggle):
        """Test two quick filters on the same field resolve last-write-wins."""
        toggle.toggle("staking-only")
        toggle.toggle("defi-positions")

        assert store.filters.position_types == frozenset({
            PositionType.LENDING,
            PositionType.LIQUIDITY,
            PositionType.FARMING,
        })
        assert store.filters.show_only_staked is True

        toggle.toggle("defi-positions")

        # Both selected filters named position_types; removal resets it
        assert store.filters.position_types == frozenset()
        assert toggle.selected_ids == {"staking-only"}

    def test_selected_filters_in_catalog_order(self, toggle):
        """Test selected filters are listed in catalog order."""
        toggle.toggle("solana-only")
        toggle.toggle("high-value")

        assert [qf.id for qf in toggle.selected_filters] == ["high-value", "solana-only"]


class TestClearAll:
    """Tests for clearing every quick filter."""

    def test_clear_all_resets_quick_filter_fields(self, store, toggle):
        """Test clear_all resets fields used by the catalog only."""
        store.set_search_query("bonk")
        store.toggle_hide_small_balances()
        for quick_filter in QUICK_FILTERS:
            toggle.toggle(quick_filter)

        result = toggle.clear_all()

        assert result.ok
        assert toggle.selected_ids == frozenset()
        assert store.filters.value_range is None
        assert store.filters.apy_range is None
        assert store.filters.position_types == frozenset()
        assert store.filters.chains == frozenset()
        assert store.filters.show_only_staked is False
        assert store.filters.sort_by is SortField.VALUE
        assert store.filters.search_query == "bonk"
        assert store.filters.hide_small_balances is True

    def test_clear_all_with_nothing_selected(self, store, toggle):
        """Test clear_all on a clean store is harmless."""
        result = toggle.clear_all()

        assert result.ok
        assert not result.changed
        assert store.filters == FilterDescriptor()


class TestSelectionTracking:
    """Tests for keeping the selection in line with the store."""

    def test_reset_all_deselects(self, store, toggle):
        """Test a full reset drops the selection so the chip reapplies."""
        toggle.toggle(HIGH_VALUE)

        store.reset_all()

        assert toggle.selected_ids == frozenset()

        toggle.toggle(HIGH_VALUE)

        assert store.filters.value_range == ValueRange(1000, MAX_RANGE_VALUE)
        assert toggle.selected_ids == {"high-value"}

    def test_replace_deselects_filters_no_longer_in_effect(self, store, toggle):
        """Test replacing the descriptor keeps only chips still in effect."""
        toggle.toggle("solana-only")
        toggle.toggle("high-apy")

        store.replace(FilterDescriptor(chains=["solana"]))

        assert toggle.selected_ids == {"solana-only"}

    def test_overlap_keeps_partially_applied_filter(self, store, toggle):
        """Test a chip stays selected while one of its values remains."""
        toggle.toggle("staking-only")
        toggle.toggle("defi-positions")

        assert toggle.selected_ids == {"staking-only", "defi-positions"}

    def test_manual_reset_of_field_deselects(self, store, toggle):
        """Test clearing a chip's only field by hand deselects it."""
        toggle.toggle("solana-only")

        store.set_chains([])

        assert not toggle.is_selected("solana-only")

    def test_is_engaged(self):
        """Test engagement checks only non-default patch values."""
        assert HIGH_VALUE.is_engaged(FilterDescriptor(value_range=(1000, MAX_RANGE_VALUE)))
        assert not HIGH_VALUE.is_engaged(FilterDescriptor())

    def test_close_stops_tracking(self, store, toggle):
        """Test a closed engine no longer prunes its selection."""
        toggle.toggle("solana-only")
        toggle.close()

        store.reset_all()

        assert toggle.selected_ids == {"solana-only"}
