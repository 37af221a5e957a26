"""Quick filter catalog and toggle engine.

A quick filter is a named patch that is switched on and off as a unit.
Switching it off resets exactly the fields its patch names to their
registry defaults; other fields are never touched.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from .config.logging_config import get_logger
from .descriptor import (
    MAX_RANGE_VALUE,
    ChainType,
    FilterDescriptor,
    PositionType,
    SortField,
    SortOrder,
    normalize_patch,
)
from .registry import default_value, inverse_patch
from .results import OperationResult
from .store import FilterStore

logger = get_logger("quick_filters")


class ChipColor(str, Enum):
    """Color tag shown on a quick filter chip."""
    PRIMARY = "primary"
    SECONDARY = "secondary"
    SUCCESS = "success"
    WARNING = "warning"
    DANGER = "danger"
    INFO = "info"


@dataclass(frozen=True)
class QuickFilter:
    """A catalog entry pairing a label with a predefined patch."""

    id: str
    label: str
    patch: Mapping[str, Any] = field(default_factory=dict, hash=False)
    color: ChipColor = ChipColor.PRIMARY
    icon: Optional[str] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Quick filter id must not be empty")
        if not self.patch:
            raise ValueError(f"Quick filter '{self.id}' must set at least one field")
        object.__setattr__(self, "patch", normalize_patch(self.patch))
        object.__setattr__(self, "color", ChipColor(self.color))

    @property
    def fields(self) -> Tuple[str, ...]:
        """Names of the descriptor fields this quick filter sets."""
        return tuple(self.patch)

    def inverse_patch(self) -> Dict[str, Any]:
        """Patch resetting every field this quick filter sets."""
        return inverse_patch(self.patch)

    def is_engaged(self, descriptor: FilterDescriptor) -> bool:
        """
        Whether any non-default value of the patch is still in effect.

        A patch made only of default values always counts as engaged.
        """
        engaged = {
            name: value
            for name, value in self.patch.items()
            if value != default_value(name)
        }
        if not engaged:
            return True
        return any(getattr(descriptor, name) == value for name, value in engaged.items())


QUICK_FILTERS: Tuple[QuickFilter, ...] = (
    QuickFilter(
        id="high-value",
        label="High Value",
        icon="💰",
        patch={
            "value_range": (1000, MAX_RANGE_VALUE),
            "sort_by": SortField.VALUE,
            "sort_order": SortOrder.DESC,
        },
        color=ChipColor.SUCCESS,
    ),
    QuickFilter(
        id="staking-only",
        label="Staking",
        icon="🔒",
        patch={
            "position_types": [PositionType.STAKING],
            "show_only_staked": True,
        },
        color=ChipColor.PRIMARY,
    ),
    QuickFilter(
        id="defi-positions",
        label="DeFi",
        icon="🌊",
        patch={
            "position_types": [
                PositionType.LENDING,
                PositionType.LIQUIDITY,
                PositionType.FARMING,
            ],
        },
        color=ChipColor.SECONDARY,
    ),
    QuickFilter(
        id="high-apy",
        label="High APY",
        icon="📈",
        patch={
            "apy_range": (10, MAX_RANGE_VALUE),
            "sort_by": SortField.APY,
            "sort_order": SortOrder.DESC,
        },
        color=ChipColor.WARNING,
    ),
    QuickFilter(
        id="solana-only",
        label="Solana",
        icon="⚡",
        patch={"chains": [ChainType.SOLANA]},
        color=ChipColor.INFO,
    ),
)


class QuickFilterToggle:
    """Tracks which quick filters are selected and applies or reverts them.

    Selection is tracked explicitly rather than inferred from the
    descriptor, because two quick filters may set the same field. When they
    do, the last one applied or removed wins. A selected quick filter is
    dropped from the selection once none of its non-default values remain,
    as happens after ``reset_all`` or loading a preset.
    """

    def __init__(self, store: FilterStore, catalog: Iterable[QuickFilter] = QUICK_FILTERS):
        """
        Initialize the toggle engine.

        Args:
            store: Store the patches are applied to.
            catalog: Available quick filters. Ids must be unique.
        """
        self.store = store
        self._catalog: Dict[str, QuickFilter] = {}
        for quick_filter in catalog:
            if quick_filter.id in self._catalog:
                raise ValueError(f"Duplicate quick filter id '{quick_filter.id}'")
            self._catalog[quick_filter.id] = quick_filter
        self._selected: Set[str] = set()
        self._unsubscribe = store.subscribe(self._on_filters_changed)

    @property
    def catalog(self) -> Tuple[QuickFilter, ...]:
        return tuple(self._catalog.values())

    @property
    def selected_ids(self) -> frozenset:
        return frozenset(self._selected)

    @property
    def selected_filters(self) -> List[QuickFilter]:
        """Selected quick filters in catalog order."""
        return [qf for qf in self._catalog.values() if qf.id in self._selected]

    def get(self, quick_filter_id: str) -> Optional[QuickFilter]:
        return self._catalog.get(quick_filter_id)

    def is_selected(self, quick_filter_id: str) -> bool:
        return quick_filter_id in self._selected

    def toggle(self, quick_filter: Union[QuickFilter, str]) -> OperationResult:
        """
        Switch a quick filter on or off.

        Args:
            quick_filter: The catalog entry or its id.

        Returns:
            OperationResult of the underlying patch, or NOT_FOUND when the
            quick filter is not in the catalog.
        """
        quick_filter_id = quick_filter.id if isinstance(quick_filter, QuickFilter) else quick_filter
        entry = self._catalog.get(quick_filter_id)
        if entry is None:
            return OperationResult.not_found(f"Unknown quick filter '{quick_filter_id}'")

        if quick_filter_id in self._selected:
            self._selected.discard(quick_filter_id)
            logger.debug(f"Quick filter off: {quick_filter_id}")
            return self.store.apply_patch(entry.inverse_patch())

        self._selected.add(quick_filter_id)
        logger.debug(f"Quick filter on: {quick_filter_id}")
        return self.store.apply_patch(entry.patch)

    def clear_all(self) -> OperationResult:
        """
        Deselect every quick filter.

        Resets every field named by any catalog entry, leaving the search
        text and other fields no quick filter touches as they are.
        """
        self._selected.clear()

        touched: Dict[str, None] = {}
        for entry in self._catalog.values():
            touched.update(dict.fromkeys(entry.fields))

        return self.store.apply_patch(inverse_patch(touched))

    def close(self) -> None:
        """Stop tracking the store."""
        self._unsubscribe()

    def _on_filters_changed(self, descriptor: FilterDescriptor, changed) -> None:
        stale = [
            quick_filter_id
            for quick_filter_id in self._selected
            if not self._catalog[quick_filter_id].is_engaged(descriptor)
        ]
        for quick_filter_id in stale:
            self._selected.discard(quick_filter_id)
            logger.debug(f"Quick filter no longer in effect: {quick_filter_id}")
