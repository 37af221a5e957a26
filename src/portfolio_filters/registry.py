"""Default/patch registry.

Maps every descriptor field to its reset value. Everything here is derived
from the ``FilterDescriptor`` dataclass declaration, so adding a filter
dimension there is enough for initialization, ``reset_all`` and quick-filter
inverse patches to pick it up.
"""

from dataclasses import fields
from typing import Any, Dict, Iterable, Tuple

from .descriptor import FilterDescriptor, FieldKind, field_kind

DEFAULT_FILTERS = FilterDescriptor()

FILTER_FIELDS: Tuple[str, ...] = tuple(spec.name for spec in fields(FilterDescriptor))

FIELD_KINDS: Dict[str, FieldKind] = {name: field_kind(name) for name in FILTER_FIELDS}

# Sort/view/group settings are display preferences, not filters
DISPLAY_FIELDS: Tuple[str, ...] = tuple(
    name for name in FILTER_FIELDS if FIELD_KINDS[name] is FieldKind.DISPLAY
)
FILTERING_FIELDS: Tuple[str, ...] = tuple(
    name for name in FILTER_FIELDS if FIELD_KINDS[name] is not FieldKind.DISPLAY
)


def default_value(name: str) -> Any:
    """
    Get the reset value of a descriptor field.

    Raises:
        InvalidFilterError: If the field does not exist.
    """
    field_kind(name)
    return getattr(DEFAULT_FILTERS, name)


def default_patch() -> Dict[str, Any]:
    """A patch that sets every field back to its default."""
    return {name: getattr(DEFAULT_FILTERS, name) for name in FILTER_FIELDS}


def inverse_patch(field_names: Iterable[str]) -> Dict[str, Any]:
    """
    Build the patch that resets the given fields to their defaults.

    Args:
        field_names: Names of the fields to reset.

    Returns:
        Patch mapping each named field to its default value.
    """
    return {name: default_value(name) for name in field_names}
