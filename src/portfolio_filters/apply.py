"""Apply a filter descriptor to a positions DataFrame.

Expected columns: symbol, name, token_type, protocol, chain, position_type,
value, amount, apy, change24h, allocation, is_staked, is_active. A criterion
whose column is missing is skipped.
"""

from typing import Dict, Optional

import pandas as pd
from pandas.api.types import is_object_dtype, is_string_dtype

from .config import config
from .config.logging_config import get_logger
from .descriptor import FilterDescriptor, GroupBy, SortOrder

logger = get_logger("apply")

SEARCH_COLUMNS = ("name", "symbol")

CATEGORY_COLUMNS = {
    "token_types": "token_type",
    "protocols": "protocol",
    "chains": "chain",
    "position_types": "position_type",
}

RANGE_COLUMNS = {
    "value_range": "value",
    "apy_range": "apy",
}

GROUP_COLUMNS = {
    GroupBy.PROTOCOL: "protocol",
    GroupBy.TYPE: "token_type",
    GroupBy.CHAIN: "chain",
}

UNGROUPED_LABEL = "other"


def filter_positions(
    df: pd.DataFrame,
    descriptor: FilterDescriptor,
    small_balance_threshold: Optional[float] = None,
) -> pd.DataFrame:
    """
    Keep the rows matching every active filter.

    Args:
        df: Positions DataFrame.
        descriptor: Filters to apply.
        small_balance_threshold: Value below which a balance is "small".
            Defaults to the configured threshold.

    Returns:
        Filtered copy of the DataFrame.
    """
    if df.empty:
        return df.copy()

    threshold = (
        config.filters.small_balance_threshold
        if small_balance_threshold is None
        else small_balance_threshold
    )
    mask = pd.Series(True, index=df.index)

    query = descriptor.search_query.strip().lower()
    if query:
        search_columns = [col for col in SEARCH_COLUMNS if col in df.columns]
        if search_columns:
            matches = pd.Series(False, index=df.index)
            for col in search_columns:
                matches |= df[col].astype(str).str.lower().str.contains(query, regex=False)
            mask &= matches

    for name, column in CATEGORY_COLUMNS.items():
        tags = getattr(descriptor, name)
        if tags and _has_column(df, column):
            mask &= df[column].isin([tag.value for tag in tags])

    for name, column in RANGE_COLUMNS.items():
        value_range = getattr(descriptor, name)
        if value_range is not None and _has_column(df, column):
            mask &= df[column].between(value_range.min, value_range.max)

    if descriptor.hide_small_balances and _has_column(df, "value"):
        mask &= df["value"] >= threshold

    if descriptor.hide_zero_balances:
        balance_column = "amount" if "amount" in df.columns else "value"
        if _has_column(df, balance_column):
            mask &= df[balance_column].fillna(0) != 0

    if descriptor.show_only_staked and _has_column(df, "is_staked"):
        mask &= df["is_staked"].fillna(False).astype(bool)

    if descriptor.show_only_active and _has_column(df, "is_active"):
        mask &= df["is_active"].fillna(False).astype(bool)

    result = df[mask].copy()
    logger.debug(f"Filtered positions: {len(df)} -> {len(result)}")
    return result


def sort_positions(df: pd.DataFrame, descriptor: FilterDescriptor) -> pd.DataFrame:
    """Sort rows by the descriptor's sort field and order."""
    column = descriptor.sort_by.value
    if df.empty or not _has_column(df, column):
        return df.copy()

    ascending = descriptor.sort_order is SortOrder.ASC
    key = None
    if is_string_dtype(df[column]):
        # Missing text stays missing so it sorts last
        key = lambda s: s.str.lower()
    elif is_object_dtype(df[column]):
        key = lambda s: s.astype(str).str.lower()

    return df.sort_values(
        column,
        ascending=ascending,
        kind="mergesort",
        na_position="last",
        key=key,
    )


def group_positions(df: pd.DataFrame, descriptor: FilterDescriptor) -> Dict[str, pd.DataFrame]:
    """
    Split rows by the descriptor's grouping.

    Returns:
        Dict of group label to rows. A single ``"all"`` group when grouping
        is off or the column is missing. Rows without a value for the
        grouping column land in ``UNGROUPED_LABEL``.
    """
    column = GROUP_COLUMNS.get(descriptor.group_by)
    if column is None or not _has_column(df, column):
        return {"all": df}

    keys = df[column].fillna(UNGROUPED_LABEL).astype(str)
    return {label: group for label, group in df.groupby(keys, sort=True)}


def apply_filters(
    df: pd.DataFrame,
    descriptor: FilterDescriptor,
    small_balance_threshold: Optional[float] = None,
) -> pd.DataFrame:
    """Filter then sort a positions DataFrame."""
    filtered = filter_positions(df, descriptor, small_balance_threshold)
    return sort_positions(filtered, descriptor)


def _has_column(df: pd.DataFrame, column: str) -> bool:
    if column in df.columns:
        return True
    logger.debug(f"Column '{column}' missing; skipping its filter")
    return False
