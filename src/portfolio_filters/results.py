"""Result objects returned by interactive filter operations."""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .presets import FilterPreset


class Status(Enum):
    """Outcome of an operation."""
    OK = "ok"
    INVALID = "invalid"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class OperationResult:
    """Result of a state mutation.

    ``status`` reports the in-memory outcome. ``persisted`` and ``warning``
    report durability separately: a failed write leaves ``status`` at OK.
    """

    status: Status
    changed_fields: FrozenSet[str] = field(default_factory=frozenset)
    message: Optional[str] = None
    persisted: Optional[bool] = None
    warning: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is Status.OK

    @property
    def changed(self) -> bool:
        return bool(self.changed_fields)

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, changed_fields=frozenset(), **kwargs) -> "OperationResult":
        return cls(Status.OK, frozenset(changed_fields), **kwargs)

    @classmethod
    def invalid(cls, message: str) -> "OperationResult":
        return cls(Status.INVALID, message=message)

    @classmethod
    def not_found(cls, message: str) -> "OperationResult":
        return cls(Status.NOT_FOUND, message=message)


@dataclass(frozen=True)
class PresetResult(OperationResult):
    """Result of a preset operation, carrying the preset involved."""

    preset: Optional["FilterPreset"] = None
