"""Filter descriptor data model.

The descriptor is the complete, always-populated record of every filter,
sort and view setting. Each field is declared once below together with its
default and its kind; the registry, the derived-state calculator and the
serializers all read that declaration.
"""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Set
import math

from .exceptions import InvalidFilterError

# Largest integer a JSON number survives without losing precision
MAX_RANGE_VALUE = 2**53 - 1


class TokenType(str, Enum):
    """Token categories."""
    NATIVE = "native"
    SPL = "spl"
    WRAPPED = "wrapped"
    STABLE = "stable"
    LP = "lp"


class ProtocolType(str, Enum):
    """Supported DeFi protocols."""
    MARINADE = "marinade"
    KAMINO = "kamino"
    ORCA = "orca"
    RAYDIUM = "raydium"
    MARGINFI = "marginfi"
    SOLEND = "solend"
    JUPITER = "jupiter"


class ChainType(str, Enum):
    """Chains a position can live on."""
    SOLANA = "solana"
    ETHEREUM = "ethereum"
    POLYGON = "polygon"
    ARBITRUM = "arbitrum"
    OPTIMISM = "optimism"


class PositionType(str, Enum):
    """Kinds of protocol positions."""
    STAKING = "staking"
    LENDING = "lending"
    LIQUIDITY = "liquidity"
    FARMING = "farming"
    VAULT = "vault"


class SortField(str, Enum):
    """Columns results can be sorted by."""
    VALUE = "value"
    AMOUNT = "amount"
    NAME = "name"
    APY = "apy"
    PROTOCOL = "protocol"
    CHANGE_24H = "change24h"
    ALLOCATION = "allocation"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ViewMode(str, Enum):
    LIST = "list"
    GRID = "grid"
    COMPACT = "compact"


class GroupBy(str, Enum):
    NONE = "none"
    PROTOCOL = "protocol"
    TYPE = "type"
    CHAIN = "chain"


class FieldKind(Enum):
    """How a descriptor field behaves for validation and accounting."""
    TEXT = "text"
    CATEGORY = "category"
    RANGE = "range"
    FLAG = "flag"
    DISPLAY = "display"


@dataclass(frozen=True)
class ValueRange:
    """Closed numeric interval ``[min, max]``."""

    min: float
    max: float

    def __post_init__(self):
        for bound in (self.min, self.max):
            if isinstance(bound, bool) or not isinstance(bound, (int, float)):
                raise InvalidFilterError(f"Range bounds must be numbers, got {bound!r}")
            if math.isnan(bound):
                raise InvalidFilterError("Range bounds must not be NaN")
        if self.min > self.max:
            raise InvalidFilterError(
                f"Range minimum {self.min} is greater than maximum {self.max}"
            )

    def contains(self, value: float) -> bool:
        """Check whether a value falls inside the interval."""
        return self.min <= value <= self.max

    def to_dict(self) -> Dict[str, float]:
        return {"min": self.min, "max": self.max}

    @classmethod
    def parse(cls, value: Any) -> "ValueRange":
        """
        Build a range from a ValueRange, a ``{"min", "max"}`` mapping or a pair.

        Raises:
            InvalidFilterError: If the value cannot describe a range.
        """
        if isinstance(value, ValueRange):
            return value
        if isinstance(value, Mapping):
            if "min" not in value or "max" not in value:
                raise InvalidFilterError(f"Range mapping needs 'min' and 'max': {value!r}")
            return cls(value["min"], value["max"])
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return cls(value[0], value[1])
        raise InvalidFilterError(f"Cannot interpret {value!r} as a range")


def _filter_field(kind: FieldKind, default: Any = None, enum: type = None):
    """Declare a descriptor field with its kind, default and tag enum."""
    metadata = {"kind": kind, "enum": enum}
    if kind is FieldKind.CATEGORY:
        return field(default_factory=frozenset, metadata=metadata)
    return field(default=default, metadata=metadata)


@dataclass(frozen=True)
class FilterDescriptor:
    """Every filter, sort and view setting of the portfolio filter panel.

    Instances are immutable. Raw values passed to the constructor are
    coerced (lists of tag strings become enum frozensets, ``{"min", "max"}``
    mappings become ``ValueRange``); anything that cannot be coerced raises
    ``InvalidFilterError``.
    """

    # Search
    search_query: str = _filter_field(FieldKind.TEXT, "")

    # Multi-select
    token_types: FrozenSet[TokenType] = _filter_field(FieldKind.CATEGORY, enum=TokenType)
    protocols: FrozenSet[ProtocolType] = _filter_field(FieldKind.CATEGORY, enum=ProtocolType)
    chains: FrozenSet[ChainType] = _filter_field(FieldKind.CATEGORY, enum=ChainType)
    position_types: FrozenSet[PositionType] = _filter_field(
        FieldKind.CATEGORY, enum=PositionType
    )

    # Ranges (None = no constraint)
    value_range: Optional[ValueRange] = _filter_field(FieldKind.RANGE, None)
    apy_range: Optional[ValueRange] = _filter_field(FieldKind.RANGE, None)

    # Flags
    hide_small_balances: bool = _filter_field(FieldKind.FLAG, False)
    hide_zero_balances: bool = _filter_field(FieldKind.FLAG, False)
    show_only_staked: bool = _filter_field(FieldKind.FLAG, False)
    show_only_active: bool = _filter_field(FieldKind.FLAG, False)

    # Display preferences
    sort_by: SortField = _filter_field(FieldKind.DISPLAY, SortField.VALUE, SortField)
    sort_order: SortOrder = _filter_field(FieldKind.DISPLAY, SortOrder.DESC, SortOrder)
    view_mode: ViewMode = _filter_field(FieldKind.DISPLAY, ViewMode.LIST, ViewMode)
    group_by: GroupBy = _filter_field(FieldKind.DISPLAY, GroupBy.NONE, GroupBy)

    def __post_init__(self):
        for spec in fields(self):
            value = coerce_field_value(spec.name, getattr(self, spec.name))
            object.__setattr__(self, spec.name, value)

    def merged(self, patch: Mapping[str, Any]) -> "FilterDescriptor":
        """Return a new descriptor with the patch fields overwritten."""
        return replace(self, **normalize_patch(patch))

    def diff(self, other: "FilterDescriptor") -> Set[str]:
        """Names of the fields whose values differ from ``other``."""
        return {
            spec.name
            for spec in fields(self)
            if getattr(self, spec.name) != getattr(other, spec.name)
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe dictionary for storage."""
        return {spec.name: _serialize_value(getattr(self, spec.name)) for spec in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FilterDescriptor":
        """
        Create from a dictionary produced by ``to_dict``.

        Missing keys fall back to their defaults and unknown keys are ignored.

        Raises:
            InvalidFilterError: If a present value is malformed.
        """
        known = {spec.name for spec in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    def to_url_params(self) -> Dict[str, str]:
        """
        Convert non-default fields to URL-friendly parameters.

        Returns:
            Dict of parameter name to string value.
        """
        defaults = FilterDescriptor()
        params = {}

        for name in sorted(self.diff(defaults), key=_FIELD_ORDER.index):
            param = URL_PARAM_NAMES[name]
            value = getattr(self, name)
            kind = field_kind(name)

            if kind is FieldKind.CATEGORY:
                params[param] = ",".join(sorted(tag.value for tag in value))
            elif kind is FieldKind.RANGE:
                params[param] = "" if value is None else f"{value.min}~{value.max}"
            elif kind is FieldKind.FLAG:
                params[param] = "1" if value else "0"
            elif kind is FieldKind.DISPLAY:
                params[param] = value.value
            else:
                params[param] = value

        return params

    @classmethod
    def from_url_params(cls, params: Mapping[str, Any]) -> "FilterDescriptor":
        """
        Create a descriptor from URL parameters.

        Parameters that fail to parse are skipped and keep their default.

        Args:
            params: Dict of URL parameters (values may be lists).

        Returns:
            FilterDescriptor populated from parameters.
        """
        values = {}

        for name, param in URL_PARAM_NAMES.items():
            if param not in params:
                continue
            raw = params[param]
            if isinstance(raw, list):
                raw = raw[0] if raw else ""

            try:
                values[name] = coerce_field_value(name, _parse_url_value(name, str(raw)))
            except (InvalidFilterError, ValueError):
                continue

        return cls(**values)

    def get_summary(self) -> str:
        """Get a human-readable summary of active filters."""
        parts = []

        if self.search_query:
            parts.append(f'Search: "{self.search_query}"')

        for name, label in (
            ("token_types", "Types"),
            ("protocols", "Protocols"),
            ("chains", "Chains"),
            ("position_types", "Positions"),
        ):
            tags = sorted(tag.value for tag in getattr(self, name))
            if not tags:
                continue
            if len(tags) <= 3:
                parts.append(f"{label}: {', '.join(tags)}")
            else:
                parts.append(f"{label}: {len(tags)} selected")

        if self.value_range:
            parts.append(f"Value: {_format_range(self.value_range)}")
        if self.apy_range:
            parts.append(f"APY: {_format_range(self.apy_range, suffix='%')}")

        if self.hide_small_balances:
            parts.append("Hiding small balances")
        if self.hide_zero_balances:
            parts.append("Hiding zero balances")
        if self.show_only_staked:
            parts.append("Staked only")
        if self.show_only_active:
            parts.append("Active only")

        return " | ".join(parts) if parts else "All positions (no filters)"


_FIELD_SPECS = {spec.name: spec for spec in fields(FilterDescriptor)}
_FIELD_ORDER = [spec.name for spec in fields(FilterDescriptor)]

URL_PARAM_NAMES = {
    "search_query": "q",
    "token_types": "tt",
    "protocols": "pr",
    "chains": "ch",
    "position_types": "pt",
    "value_range": "vr",
    "apy_range": "ar",
    "hide_small_balances": "hsb",
    "hide_zero_balances": "hzb",
    "show_only_staked": "sos",
    "show_only_active": "soa",
    "sort_by": "sb",
    "sort_order": "so",
    "view_mode": "vm",
    "group_by": "gb",
}


def field_kind(name: str) -> FieldKind:
    """
    Look up the kind of a descriptor field.

    Raises:
        InvalidFilterError: If the field does not exist.
    """
    spec = _FIELD_SPECS.get(name)
    if spec is None:
        raise InvalidFilterError(f"Unknown filter field '{name}'", field_name=name)
    return spec.metadata["kind"]


def coerce_field_value(name: str, value: Any) -> Any:
    """
    Coerce a raw value into the canonical type of a descriptor field.

    Args:
        name: Descriptor field name.
        value: Raw value (enum, string, list, mapping...).

    Returns:
        The canonical value (frozenset of enums, ValueRange, enum, ...).

    Raises:
        InvalidFilterError: If the field is unknown or the value invalid.
    """
    kind = field_kind(name)
    enum_type = _FIELD_SPECS[name].metadata["enum"]

    try:
        if kind is FieldKind.TEXT:
            if not isinstance(value, str):
                raise InvalidFilterError(f"{name} must be a string, got {value!r}")
            return value

        if kind is FieldKind.CATEGORY:
            if value is None or isinstance(value, (str, bytes, Mapping)):
                raise InvalidFilterError(f"{name} must be a collection of tags, got {value!r}")
            return frozenset(_coerce_tag(enum_type, item) for item in value)

        if kind is FieldKind.RANGE:
            return None if value is None else ValueRange.parse(value)

        if kind is FieldKind.FLAG:
            if not isinstance(value, bool):
                raise InvalidFilterError(f"{name} must be a boolean, got {value!r}")
            return value

        return _coerce_tag(enum_type, value)
    except InvalidFilterError as e:
        if e.field_name is None:
            e.field_name = name
        raise
    except TypeError as e:
        raise InvalidFilterError(f"Invalid value for {name}: {e}", field_name=name)


def normalize_patch(patch: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Validate and coerce every entry of a partial descriptor.

    Raises:
        InvalidFilterError: On the first unknown field or invalid value.
    """
    if not isinstance(patch, Mapping):
        raise InvalidFilterError(f"A patch must be a mapping, got {type(patch).__name__}")
    return {name: coerce_field_value(name, value) for name, value in patch.items()}


def serialize_patch(patch: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a normalized patch to a JSON-safe dictionary."""
    return {name: _serialize_value(value) for name, value in patch.items()}


def _coerce_tag(enum_type: type, value: Any) -> Enum:
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise InvalidFilterError(
            f"'{value}' is not a valid {enum_type.__name__} (expected one of: {allowed})"
        )


def _serialize_value(value: Any) -> Any:
    if isinstance(value, frozenset):
        return sorted(tag.value for tag in value)
    if isinstance(value, ValueRange):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    return value


def _parse_url_value(name: str, raw: str) -> Any:
    kind = field_kind(name)

    if kind is FieldKind.CATEGORY:
        return [tag for tag in raw.split(",") if tag]
    if kind is FieldKind.RANGE:
        if not raw:
            return None
        low, _, high = raw.partition("~")
        return (_parse_number(low), _parse_number(high))
    if kind is FieldKind.FLAG:
        if raw not in ("0", "1"):
            raise ValueError(f"Flag parameter must be 0 or 1, got {raw!r}")
        return raw == "1"
    return raw


def _parse_number(text: str) -> float:
    number = float(text)
    return int(number) if number.is_integer() else number


def _format_range(value_range: ValueRange, suffix: str = "") -> str:
    if value_range.max >= MAX_RANGE_VALUE:
        return f">= {value_range.min:g}{suffix}"
    return f"{value_range.min:g}{suffix} to {value_range.max:g}{suffix}"
