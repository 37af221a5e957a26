"""Filter session wiring.

A ``FilterSession`` is the handle a UI mounts: one store, one quick-filter
toggle engine and one preset manager sharing a key-value backend. Sessions
are constructed explicitly; nothing here is a module-level singleton.
"""

from typing import Iterable, Optional
import json

from .config import Config, config
from .config.logging_config import get_logger
from .derived import DerivedState
from .descriptor import FilterDescriptor
from .exceptions import InvalidFilterError, PersistenceError
from .presets import PresetManager
from .quick_filters import QUICK_FILTERS, QuickFilter, QuickFilterToggle
from .results import OperationResult
from .storage import KeyValueStore, create_store
from .store import FilterStore

logger = get_logger("session")


class FilterSession:
    """Owns the filter engine components for one UI session."""

    def __init__(
        self,
        storage: Optional[KeyValueStore] = None,
        catalog: Iterable[QuickFilter] = QUICK_FILTERS,
        settings: Optional[Config] = None,
        persist_filter_state: Optional[bool] = None,
    ):
        """
        Initialize the session.

        Args:
            storage: Key-value backend. Defaults to the configured backend.
            catalog: Quick filter catalog.
            settings: Configuration. Defaults to the global config.
            persist_filter_state: Save the descriptor on every change and
                restore it here. Defaults to the configured flag.
        """
        settings = settings or config
        self.storage = storage if storage is not None else create_store(settings.storage)
        self.state_key = settings.storage.state_key
        self.persist_filter_state = (
            settings.storage.persist_filter_state
            if persist_filter_state is None
            else persist_filter_state
        )
        self.last_persistence_error: Optional[str] = None

        initial = self._restore_state() if self.persist_filter_state else None
        self.store = FilterStore(initial)
        self.quick_filters = QuickFilterToggle(self.store, catalog)
        self.presets = PresetManager(self.store, self.storage, settings.storage.presets_key)

        self._unsubscribe = None
        if self.persist_filter_state:
            self._unsubscribe = self.store.subscribe(self._save_state)

    @property
    def filters(self) -> FilterDescriptor:
        return self.store.filters

    def derived(self) -> DerivedState:
        return self.store.derived()

    def clear_all(self) -> OperationResult:
        """
        Deselect every quick filter and clear every filtering field.

        View mode and grouping are kept. Sort fields return to their
        defaults only when a catalog entry sets them.
        """
        chips = self.quick_filters.clear_all()
        cleared = self.store.clear_filters()
        return OperationResult.success(chips.changed_fields | cleared.changed_fields)

    def close(self) -> None:
        """Detach listeners and release the storage backend."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.quick_filters.close()
        self.presets.close()
        self.storage.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _save_state(self, descriptor: FilterDescriptor, changed) -> None:
        if not changed:
            return
        try:
            self.storage.set(self.state_key, json.dumps(descriptor.to_dict()))
            self.last_persistence_error = None
        except PersistenceError as e:
            logger.warning(f"Failed to persist filter state: {e}")
            self.last_persistence_error = str(e)

    def _restore_state(self) -> Optional[FilterDescriptor]:
        try:
            raw = self.storage.get(self.state_key)
        except PersistenceError as e:
            logger.warning(f"Failed to load filter state: {e}")
            return None

        if not raw:
            return None

        try:
            return FilterDescriptor.from_dict(json.loads(raw))
        except (json.JSONDecodeError, InvalidFilterError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring stored filter state: {e}")
            return None
