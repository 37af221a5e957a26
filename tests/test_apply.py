"""Tests for applying filter descriptors to position DataFrames."""

import pandas as pd
import pytest

from portfolio_filters.apply import (
    UNGROUPED_LABEL,
    apply_filters,
    filter_positions,
    group_positions,
    sort_positions,
)
from portfolio_filters.descriptor import MAX_RANGE_VALUE, FilterDescriptor


def symbols(df):
    return set(df["symbol"])


class TestFilterPositions:
    """Tests for filter_positions function."""

    def test_default_keeps_everything(self, sample_positions):
        """Test the default descriptor filters nothing."""
        result = filter_positions(sample_positions, FilterDescriptor())

        assert len(result) == len(sample_positions)

    def test_search_is_case_insensitive(self, sample_positions):
        """Test search matches name or symbol ignoring case."""
        result = filter_positions(sample_positions, FilterDescriptor(search_query="  SoL "))

        assert symbols(result) == {"SOL", "mSOL"}

    def test_search_is_literal(self, sample_positions):
        """Test regex characters in the query match literally."""
        result = filter_positions(sample_positions, FilterDescriptor(search_query="ray-"))

        assert symbols(result) == {"RAY-USDC"}

    @pytest.mark.parametrize("patch,expected", [
        ({"token_types": ["spl"]}, {"mSOL", "JUP"}),
        ({"protocols": ["kamino", "raydium"]}, {"USDC", "RAY-USDC"}),
        ({"chains": ["ethereum"]}, {"ETH"}),
        ({"position_types": ["staking"]}, {"mSOL"}),
    ])
    def test_category_filters(self, sample_positions, patch, expected):
        """Test category filters keep rows whose tag is selected."""
        result = filter_positions(sample_positions, FilterDescriptor().merged(patch))

        assert symbols(result) == expected

    def test_value_range(self, sample_positions):
        """Test the value range is inclusive."""
        descriptor = FilterDescriptor(value_range=(1000, MAX_RANGE_VALUE))

        assert symbols(filter_positions(sample_positions, descriptor)) == {"SOL", "mSOL", "ETH"}

    def test_apy_range(self, sample_positions):
        """Test the APY range."""
        descriptor = FilterDescriptor(apy_range=(10, MAX_RANGE_VALUE))

        assert symbols(filter_positions(sample_positions, descriptor)) == {"USDC", "RAY-USDC"}

    def test_hide_small_balances(self, sample_positions):
        """Test small balances are hidden below the threshold."""
        descriptor = FilterDescriptor(hide_small_balances=True)

        result = filter_positions(sample_positions, descriptor, small_balance_threshold=10)

        assert symbols(result) == {"SOL", "mSOL", "RAY-USDC", "ETH"}

    def test_hide_zero_balances(self, sample_positions):
        """Test zero balances are hidden."""
        result = filter_positions(sample_positions, FilterDescriptor(hide_zero_balances=True))

        assert "JUP" not in symbols(result)
        assert len(result) == 5

    def test_staked_and_active_flags(self, sample_positions):
        """Test staked and active flags."""
        staked = filter_positions(sample_positions, FilterDescriptor(show_only_staked=True))
        active = filter_positions(sample_positions, FilterDescriptor(show_only_active=True))

        assert symbols(staked) == {"mSOL"}
        assert "JUP" not in symbols(active)

    def test_criteria_combine(self, sample_positions):
        """Test every active criterion must match."""
        descriptor = FilterDescriptor(chains=["solana"], value_range=(1000, MAX_RANGE_VALUE))

        assert symbols(filter_positions(sample_positions, descriptor)) == {"SOL", "mSOL"}

    def test_missing_column_skips_criterion(self, sample_positions):
        """Test a filter on a missing column is ignored."""
        df = sample_positions.drop(columns=["is_staked"])

        result = filter_positions(df, FilterDescriptor(show_only_staked=True))

        assert len(result) == len(df)

    def test_empty_dataframe(self):
        """Test filtering an empty DataFrame."""
        result = filter_positions(pd.DataFrame(), FilterDescriptor(search_query="x"))

        assert result.empty

    def test_does_not_modify_input(self, sample_positions):
        """Test the input DataFrame is left untouched."""
        before = sample_positions.copy()

        filter_positions(sample_positions, FilterDescriptor(chains=["ethereum"]))

        pd.testing.assert_frame_equal(sample_positions, before)


class TestSortPositions:
    """Tests for sort_positions function."""

    def test_default_sorts_by_value_descending(self, sample_positions):
        """Test default sort order."""
        result = sort_positions(sample_positions, FilterDescriptor())

        assert list(result["symbol"]) == ["ETH", "SOL", "mSOL", "RAY-USDC", "USDC", "JUP"]

    def test_sort_by_name_ascending_ignores_case(self, sample_positions):
        """Test text columns sort case-insensitively."""
        result = sort_positions(
            sample_positions, FilterDescriptor(sort_by="name", sort_order="asc")
        )

        assert list(result["name"]) == [
            "Ether",
            "Jupiter",
            "Marinade SOL",
            "Raydium LP",
            "Solana",
            "USD Coin",
        ]

    @pytest.mark.parametrize("dtype", [object, "string"])
    def test_text_sort_ignores_case_of_first_letter(self, dtype):
        """Test lower and upper case initials sort together."""
        df = pd.DataFrame({"name": pd.Series(["b", "a", "C"], dtype=dtype)})

        result = sort_positions(df, FilterDescriptor(sort_by="name", sort_order="asc"))

        assert list(result["name"]) == ["a", "b", "C"]

    def test_missing_text_sorts_last(self, sample_positions):
        """Test rows without a protocol come after named protocols."""
        result = sort_positions(
            sample_positions, FilterDescriptor(sort_by="protocol", sort_order="asc")
        )

        assert list(result["symbol"]) == ["JUP", "USDC", "mSOL", "RAY-USDC", "SOL", "ETH"]

    def test_missing_sort_column(self, sample_positions):
        """Test a missing sort column leaves the order unchanged."""
        df = sample_positions.drop(columns=["allocation"])

        result = sort_positions(df, FilterDescriptor(sort_by="allocation"))

        assert list(result["symbol"]) == list(df["symbol"])


class TestGroupPositions:
    """Tests for group_positions function."""

    def test_no_grouping(self, sample_positions):
        """Test grouping off yields a single group."""
        groups = group_positions(sample_positions, FilterDescriptor())

        assert list(groups) == ["all"]
        assert len(groups["all"]) == 6

    def test_group_by_chain(self, sample_positions):
        """Test grouping by chain."""
        groups = group_positions(sample_positions, FilterDescriptor(group_by="chain"))

        assert sorted(groups) == ["ethereum", "solana"]
        assert len(groups["solana"]) == 5

    def test_group_by_protocol_keeps_unlabelled_rows(self, sample_positions):
        """Test rows without a protocol are grouped, not dropped."""
        groups = group_positions(sample_positions, FilterDescriptor(group_by="protocol"))

        assert symbols(groups[UNGROUPED_LABEL]) == {"SOL", "ETH"}
        assert sum(len(group) for group in groups.values()) == 6

    def test_group_by_type_uses_token_type(self, sample_positions):
        """Test the type grouping reads the token type column."""
        groups = group_positions(sample_positions, FilterDescriptor(group_by="type"))

        assert symbols(groups["spl"]) == {"mSOL", "JUP"}


class TestApplyFilters:
    """Tests for apply_filters function."""

    def test_filters_then_sorts(self, sample_positions):
        """Test the combined pipeline."""
        descriptor = FilterDescriptor(
            chains=["solana"], hide_zero_balances=True, sort_by="apy", sort_order="desc"
        )

        result = apply_filters(sample_positions, descriptor)

        assert list(result["symbol"])[:3] == ["RAY-USDC", "USDC", "mSOL"]
        assert "JUP" not in symbols(result)
