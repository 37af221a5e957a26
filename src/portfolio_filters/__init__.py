"""Portfolio filter engine: filter state, quick filters and presets."""

from .descriptor import (
    MAX_RANGE_VALUE,
    ChainType,
    FieldKind,
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
from .registry import (
    DEFAULT_FILTERS,
    DISPLAY_FIELDS,
    FIELD_KINDS,
    FILTER_FIELDS,
    FILTERING_FIELDS,
    default_patch,
    default_value,
    inverse_patch,
)
from .derived import (
    DerivedState,
    active_dimensions,
    active_filter_count,
    compute_derived_state,
    has_active_filters,
)
from .exceptions import FilterError, InvalidFilterError, PersistenceError
from .results import OperationResult, PresetResult, Status
from .store import FilterStore
from .quick_filters import QUICK_FILTERS, ChipColor, QuickFilter, QuickFilterToggle
from .presets import DEFAULT_PRESETS_KEY, FilterPreset, PresetManager
from .storage import (
    DuckDBKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    create_store,
)
from .session import FilterSession
from .config import setup_logging, get_logger
from .apply import apply_filters, filter_positions, group_positions, sort_positions

__version__ = "1.0.0"

__all__ = [
    # Descriptor
    "MAX_RANGE_VALUE",
    "ChainType",
    "FieldKind",
    "FilterDescriptor",
    "GroupBy",
    "PositionType",
    "ProtocolType",
    "SortField",
    "SortOrder",
    "TokenType",
    "ValueRange",
    "ViewMode",
    "normalize_patch",
    # Registry
    "DEFAULT_FILTERS",
    "DISPLAY_FIELDS",
    "FIELD_KINDS",
    "FILTER_FIELDS",
    "FILTERING_FIELDS",
    "default_patch",
    "default_value",
    "inverse_patch",
    # Derived state
    "DerivedState",
    "active_dimensions",
    "active_filter_count",
    "compute_derived_state",
    "has_active_filters",
    # Errors and results
    "FilterError",
    "InvalidFilterError",
    "PersistenceError",
    "OperationResult",
    "PresetResult",
    "Status",
    # Engine
    "FilterStore",
    "QUICK_FILTERS",
    "ChipColor",
    "QuickFilter",
    "QuickFilterToggle",
    "DEFAULT_PRESETS_KEY",
    "FilterPreset",
    "PresetManager",
    "FilterSession",
    # Storage
    "DuckDBKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "create_store",
    # Logging
    "setup_logging",
    "get_logger",
    # DataFrame helpers
    "apply_filters",
    "filter_positions",
    "group_positions",
    "sort_positions",
]
