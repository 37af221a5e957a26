"""Filter state store.

Single owner of the current filter descriptor. Quick filters, presets and
UI intents all mutate state through this class; consumers read ``filters``
after every mutation or subscribe to be told about it.
"""

from dataclasses import replace
from typing import Any, Callable, FrozenSet, List, Mapping, Optional, Iterable

from .config.logging_config import get_logger
from .derived import DerivedState, active_filter_count, compute_derived_state, has_active_filters
from .descriptor import (
    ChainType,
    FilterDescriptor,
    GroupBy,
    PositionType,
    ProtocolType,
    SortField,
    SortOrder,
    TokenType,
    ValueRange,
    ViewMode,
    normalize_patch,
)
from .exceptions import InvalidFilterError
from .registry import FILTERING_FIELDS, default_patch, inverse_patch
from .results import OperationResult

logger = get_logger("store")

Listener = Callable[[FilterDescriptor, FrozenSet[str]], None]


class FilterStore:
    """Holds the current filter descriptor and applies mutations to it."""

    def __init__(self, initial: Optional[FilterDescriptor] = None):
        """
        Initialize the store.

        Args:
            initial: Starting descriptor. Defaults to the registry defaults.
        """
        self._filters = initial if initial is not None else FilterDescriptor()
        self._listeners: List[Listener] = []

    @property
    def filters(self) -> FilterDescriptor:
        """The current descriptor."""
        return self._filters

    @property
    def has_active_filters(self) -> bool:
        return has_active_filters(self._filters)

    @property
    def active_filter_count(self) -> int:
        return active_filter_count(self._filters)

    def derived(self) -> DerivedState:
        """Compute all derived indicators for the current descriptor."""
        return compute_derived_state(self._filters)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback run after every mutation.

        The callback receives the new descriptor and the names of the fields
        that changed (empty when the mutation was a no-op write).

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Generic mutations
    # ------------------------------------------------------------------

    def set_field(self, name: str, value: Any) -> OperationResult:
        """Replace exactly one field."""
        return self.apply_patch({name: value})

    def apply_patch(self, patch: Mapping[str, Any]) -> OperationResult:
        """
        Merge a partial descriptor into the current one.

        Fields not named in the patch are left untouched. The whole patch is
        validated before anything changes.

        Args:
            patch: Mapping of field name to new value.

        Returns:
            OperationResult listing the fields that actually changed.
        """
        try:
            normalized = normalize_patch(patch)
        except InvalidFilterError as e:
            logger.warning(f"Rejected filter patch: {e}")
            return OperationResult.invalid(str(e))

        return self._commit(replace(self._filters, **normalized))

    def replace(self, descriptor: FilterDescriptor) -> OperationResult:
        """Replace the whole descriptor."""
        if not isinstance(descriptor, FilterDescriptor):
            return OperationResult.invalid(
                f"Expected a FilterDescriptor, got {type(descriptor).__name__}"
            )
        return self._commit(descriptor)

    def reset_all(self) -> OperationResult:
        """Set every field, display preferences included, back to its default."""
        return self.apply_patch(default_patch())

    def clear_filters(self) -> OperationResult:
        """Reset every filtering field but keep sort, view and grouping."""
        return self.apply_patch(inverse_patch(FILTERING_FIELDS))

    # ------------------------------------------------------------------
    # Field setters
    # ------------------------------------------------------------------

    def set_search_query(self, query: str) -> OperationResult:
        return self.set_field("search_query", query)

    def set_token_types(self, token_types: Iterable[TokenType]) -> OperationResult:
        return self.set_field("token_types", token_types)

    def set_protocols(self, protocols: Iterable[ProtocolType]) -> OperationResult:
        return self.set_field("protocols", protocols)

    def set_chains(self, chains: Iterable[ChainType]) -> OperationResult:
        return self.set_field("chains", chains)

    def set_position_types(self, position_types: Iterable[PositionType]) -> OperationResult:
        return self.set_field("position_types", position_types)

    def set_value_range(self, value_range: Optional[ValueRange]) -> OperationResult:
        return self.set_field("value_range", value_range)

    def set_apy_range(self, apy_range: Optional[ValueRange]) -> OperationResult:
        return self.set_field("apy_range", apy_range)

    def set_sort_by(self, sort_by: SortField) -> OperationResult:
        return self.set_field("sort_by", sort_by)

    def set_sort_order(self, sort_order: SortOrder) -> OperationResult:
        return self.set_field("sort_order", sort_order)

    def set_view_mode(self, view_mode: ViewMode) -> OperationResult:
        return self.set_field("view_mode", view_mode)

    def set_group_by(self, group_by: GroupBy) -> OperationResult:
        return self.set_field("group_by", group_by)

    def toggle_hide_small_balances(self) -> OperationResult:
        return self._toggle_flag("hide_small_balances")

    def toggle_hide_zero_balances(self) -> OperationResult:
        return self._toggle_flag("hide_zero_balances")

    def toggle_show_only_staked(self) -> OperationResult:
        return self._toggle_flag("show_only_staked")

    def toggle_show_only_active(self) -> OperationResult:
        return self._toggle_flag("show_only_active")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _toggle_flag(self, name: str) -> OperationResult:
        return self.set_field(name, not getattr(self._filters, name))

    def _commit(self, descriptor: FilterDescriptor) -> OperationResult:
        changed = frozenset(descriptor.diff(self._filters))
        self._filters = descriptor

        if changed:
            logger.debug(f"Filters changed: {', '.join(sorted(changed))}")

        for listener in list(self._listeners):
            listener(descriptor, changed)

        return OperationResult.success(changed)
