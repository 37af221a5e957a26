"""Named filter presets.

A preset is a named snapshot of the filter descriptor, persisted as a JSON
array under one key of a key-value store. Loading a preset replaces the
store's descriptor wholesale.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
import json
import uuid

from .config.logging_config import get_logger
from .descriptor import FilterDescriptor, normalize_patch, serialize_patch
from .exceptions import InvalidFilterError, PersistenceError
from .registry import FILTER_FIELDS, DEFAULT_FILTERS
from .results import PresetResult
from .storage import KeyValueStore, MemoryKeyValueStore
from .store import FilterStore

logger = get_logger("presets")

DEFAULT_PRESETS_KEY = "portfolio_filters.presets"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FilterPreset:
    """A saved filter configuration.

    ``filters`` holds every descriptor field for a full snapshot, or only
    the chosen fields for a partial preset. Either way the preset loads as
    the defaults overlaid with ``filters``.
    """

    id: str
    name: str
    filters: Mapping[str, Any] = field(default_factory=dict, hash=False)
    description: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidFilterError("Preset name must be a non-empty string")
        if self.description is not None and not isinstance(self.description, str):
            raise InvalidFilterError(
                f"Preset description must be a string, got {type(self.description).__name__}"
            )
        object.__setattr__(self, "filters", normalize_patch(self.filters))

    @property
    def is_partial(self) -> bool:
        return set(self.filters) != set(FILTER_FIELDS)

    def snapshot(self) -> FilterDescriptor:
        """The full descriptor this preset loads as."""
        return DEFAULT_FILTERS.merged(self.filters)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "filters": serialize_patch(self.filters),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FilterPreset":
        """
        Create from dictionary.

        Raises:
            InvalidFilterError: If the name, description or filters are malformed.
            KeyError: If ``id`` or ``name`` is missing.
        """
        now = _utcnow()
        return cls(
            id=data["id"],
            name=data["name"],
            filters=data.get("filters", {}),
            description=data.get("description"),
            created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else now,
            updated_at=datetime.fromisoformat(data["updated_at"]) if data.get("updated_at") else now,
        )


class PresetManager:
    """Creates, loads, updates and deletes presets for one filter store.

    The active preset marker is set when a preset is loaded (or saved from
    the current filters) and cleared as soon as the store's descriptor no
    longer equals that preset's snapshot.
    """

    def __init__(
        self,
        store: FilterStore,
        storage: Optional[KeyValueStore] = None,
        storage_key: str = DEFAULT_PRESETS_KEY,
    ):
        """
        Initialize the manager and load persisted presets.

        Args:
            store: Store the presets read from and load into.
            storage: Key-value backend. Defaults to an in-memory store.
            storage_key: Key holding the serialized preset collection.
        """
        self.store = store
        self.storage = storage if storage is not None else MemoryKeyValueStore()
        self.storage_key = storage_key
        self._presets: List[FilterPreset] = self._load()
        self._active_id: Optional[str] = None
        self._unsubscribe = store.subscribe(self._on_filters_changed)

    @property
    def presets(self) -> Tuple[FilterPreset, ...]:
        return tuple(self._presets)

    @property
    def active_preset_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active_preset(self) -> Optional[FilterPreset]:
        return self.get_preset(self._active_id) if self._active_id else None

    def get_preset(self, preset_id: str) -> Optional[FilterPreset]:
        for preset in self._presets:
            if preset.id == preset_id:
                return preset
        return None

    def save_preset(
        self,
        name: str,
        description: Optional[str] = None,
        fields: Optional[Iterable[str]] = None,
    ) -> PresetResult:
        """
        Save the current filters as a new preset.

        Args:
            name: Display name. Must not be blank.
            description: Optional description.
            fields: Save only these fields as a partial preset. Defaults to
                a full snapshot.

        Returns:
            PresetResult with the new preset and the persistence outcome.
        """
        clean_name = name.strip() if isinstance(name, str) else ""
        if not clean_name:
            return PresetResult.invalid("Preset name must not be empty")

        current = self.store.filters
        field_names = FILTER_FIELDS if fields is None else tuple(dict.fromkeys(fields))
        if not field_names:
            return PresetResult.invalid("A partial preset must name at least one field")

        try:
            preset = FilterPreset(
                id=uuid.uuid4().hex,
                name=clean_name,
                filters={name_: getattr(current, name_, None) for name_ in field_names},
                description=description,
            )
        except InvalidFilterError as e:
            return PresetResult.invalid(str(e))

        self._presets.append(preset)
        if preset.snapshot() == current:
            self._active_id = preset.id

        persisted, warning = self._persist()
        logger.info(f"Saved preset '{preset.name}' ({preset.id})")
        return PresetResult.success(preset=preset, persisted=persisted, warning=warning)

    def load_preset(self, preset_id: str) -> PresetResult:
        """
        Replace the current filters with a preset's snapshot.

        Returns:
            PresetResult listing the changed fields, or NOT_FOUND.
        """
        preset = self.get_preset(preset_id)
        if preset is None:
            logger.warning(f"Preset not found: {preset_id}")
            return PresetResult.not_found(f"Preset '{preset_id}' not found")

        # Mark first so the store notification sees a matching snapshot
        self._active_id = preset.id
        result = self.store.replace(preset.snapshot())

        logger.info(f"Loaded preset '{preset.name}' ({preset.id})")
        return PresetResult.success(result.changed_fields, preset=preset)

    def delete_preset(self, preset_id: str) -> PresetResult:
        """
        Delete a preset. The current filters are not reverted.

        Returns:
            PresetResult with the removed preset, or NOT_FOUND.
        """
        preset = self.get_preset(preset_id)
        if preset is None:
            logger.warning(f"Preset not found: {preset_id}")
            return PresetResult.not_found(f"Preset '{preset_id}' not found")

        self._presets.remove(preset)
        if self._active_id == preset_id:
            self._active_id = None

        persisted, warning = self._persist()
        logger.info(f"Deleted preset '{preset.name}' ({preset.id})")
        return PresetResult.success(preset=preset, persisted=persisted, warning=warning)

    def update_preset(
        self,
        preset_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        capture_current: bool = False,
    ) -> PresetResult:
        """
        Rename, re-describe or re-snapshot an existing preset.

        Args:
            preset_id: Preset to update.
            name: New name, if given. Must not be blank.
            description: New description, if given.
            capture_current: Replace the saved filters with the current
                values of the same fields.

        Returns:
            PresetResult with the updated preset, or INVALID / NOT_FOUND.
        """
        preset = self.get_preset(preset_id)
        if preset is None:
            return PresetResult.not_found(f"Preset '{preset_id}' not found")

        changes: Dict[str, Any] = {"updated_at": _utcnow()}
        if name is not None:
            clean_name = name.strip() if isinstance(name, str) else ""
            if not clean_name:
                return PresetResult.invalid("Preset name must not be empty")
            changes["name"] = clean_name
        if description is not None:
            changes["description"] = description
        if capture_current:
            current = self.store.filters
            changes["filters"] = {name_: getattr(current, name_) for name_ in preset.filters}

        try:
            updated = replace(preset, **changes)
        except InvalidFilterError as e:
            return PresetResult.invalid(str(e))
        self._presets[self._presets.index(preset)] = updated

        if capture_current and updated.snapshot() == self.store.filters:
            self._active_id = updated.id
        elif self._active_id == updated.id and updated.snapshot() != self.store.filters:
            self._active_id = None

        persisted, warning = self._persist()
        logger.info(f"Updated preset '{updated.name}' ({updated.id})")
        return PresetResult.success(preset=updated, persisted=persisted, warning=warning)

    def close(self) -> None:
        """Stop tracking the store."""
        self._unsubscribe()

    def _on_filters_changed(self, descriptor: FilterDescriptor, changed) -> None:
        if self._active_id is None:
            return
        active = self.get_preset(self._active_id)
        if active is None or active.snapshot() != descriptor:
            logger.debug(f"Filters diverged from preset {self._active_id}")
            self._active_id = None

    def _load(self) -> List[FilterPreset]:
        try:
            raw = self.storage.get(self.storage_key)
        except PersistenceError as e:
            logger.warning(f"Failed to load filter presets: {e}")
            return []

        if not raw:
            return []

        try:
            records = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Stored filter presets are not valid JSON: {e}")
            return []

        if not isinstance(records, list):
            logger.warning("Stored filter presets are not a list; ignoring")
            return []

        presets = []
        for record in records:
            try:
                presets.append(FilterPreset.from_dict(record))
            except (InvalidFilterError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed preset record: {e}")

        logger.info(f"Loaded {len(presets)} filter presets")
        return presets

    def _persist(self) -> Tuple[bool, Optional[str]]:
        payload = json.dumps([preset.to_dict() for preset in self._presets])
        try:
            self.storage.set(self.storage_key, payload)
        except PersistenceError as e:
            logger.warning(f"Failed to persist filter presets: {e}")
            return False, f"Presets were changed but could not be saved: {e}"
        return True, None
