"""Derived filter indicators.

Pure functions over a descriptor. Consumers call them on every read instead
of caching the result next to the descriptor.
"""

from dataclasses import dataclass
from typing import Tuple

from .descriptor import FilterDescriptor
from .registry import DEFAULT_FILTERS, FILTERING_FIELDS


@dataclass(frozen=True)
class DerivedState:
    """Indicators computed from a descriptor."""

    has_active_filters: bool
    active_filter_count: int
    active_dimensions: Tuple[str, ...]
    summary: str


def active_dimensions(descriptor: FilterDescriptor) -> Tuple[str, ...]:
    """
    Names of the filtering dimensions that differ from their default.

    A category with several selected tags is one dimension. Sort, view and
    group settings never count.
    """
    return tuple(
        name
        for name in FILTERING_FIELDS
        if getattr(descriptor, name) != getattr(DEFAULT_FILTERS, name)
    )


def active_filter_count(descriptor: FilterDescriptor) -> int:
    """Number of active filtering dimensions."""
    return len(active_dimensions(descriptor))


def has_active_filters(descriptor: FilterDescriptor) -> bool:
    """Whether any filtering dimension differs from its default."""
    return active_filter_count(descriptor) > 0


def compute_derived_state(descriptor: FilterDescriptor) -> DerivedState:
    """Compute every indicator for a descriptor at once."""
    dimensions = active_dimensions(descriptor)
    return DerivedState(
        has_active_filters=bool(dimensions),
        active_filter_count=len(dimensions),
        active_dimensions=dimensions,
        summary=descriptor.get_summary(),
    )
