"""Exception types raised inside the filter engine.

Public store, quick-filter and preset operations catch these and report
them through result objects; they only escape from the lower-level helpers
(patch normalization, storage backends).
"""


class FilterError(Exception):
    """Base class for filter engine errors."""

    pass


class InvalidFilterError(FilterError, ValueError):
    """Raised when a field name, value or patch is not acceptable."""

    def __init__(self, message: str, field_name: str = None):
        super().__init__(message)
        self.field_name = field_name


class PersistenceError(FilterError):
    """Raised when a key-value storage backend cannot read or write."""

    def __init__(self, message: str, key: str = None):
        super().__init__(message)
        self.key = key
