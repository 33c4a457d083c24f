"""
Observable in-memory registry of tracked file units.

The registry is the single view the presentation layer renders. Units are
kept newest first. Every mutation goes through one of the methods below,
is applied as a whole under the registry lock and is announced to
subscribers only after it has been applied.
"""

import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from common.logging_config import get_logger
from common.types import FileUnit

logger = get_logger(__name__)


class ChangeKind(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    REMOVED = "removed"
    REPLACED = "replaced"
    REKEYED = "rekeyed"


@dataclass(frozen=True)
class RegistryChange:
    """
    Notification sent to subscribers after a mutation.

    Attributes:
        kind: Type of mutation
        unit_ids: Identifiers affected (for REKEYED: old id then new id)
    """
    kind: ChangeKind
    unit_ids: Tuple[str, ...]


Listener = Callable[[RegistryChange], None]


class FileUnitRegistry:
    """Ordered mapping from unit id to FileUnit with change subscriptions."""

    def __init__(self):
        self._lock = threading.RLock()
        self._units: Dict[str, FileUnit] = {}
        self._order: List[str] = []
        self._listeners: List[Listener] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._order)

    def __contains__(self, unit_id: str) -> bool:
        with self._lock:
            return unit_id in self._units

    def get(self, unit_id: str) -> Optional[FileUnit]:
        with self._lock:
            return self._units.get(unit_id)

    def snapshot(self) -> List[FileUnit]:
        """
        Get the current units, newest first.

        Returns:
            List copy that later mutations do not affect
        """
        with self._lock:
            return [self._units[unit_id] for unit_id in self._order]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a change listener.

        Args:
            listener: Called with a RegistryChange after every mutation

        Returns:
            Function that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def insert_batch(self, units: Iterable[FileUnit]) -> None:
        """
        Prepend a batch of units, keeping the batch's own order.

        Raises:
            ValueError: If an id is already registered or repeated in the batch
        """
        units = list(units)
        if not units:
            return
        with self._lock:
            new_ids = [unit.id for unit in units]
            if len(set(new_ids)) != len(new_ids) or any(uid in self._units for uid in new_ids):
                raise ValueError("duplicate unit id in batch")
            for unit in units:
                self._units[unit.id] = unit
            self._order[:0] = new_ids
        self._notify(RegistryChange(ChangeKind.INSERTED, tuple(new_ids)))

    def update(self, unit_id: str, **patch) -> Optional[FileUnit]:
        """
        Merge a partial update into an existing unit.

        A missing id is a no-op, since the unit may have been removed while
        its transfer was still running.

        Args:
            unit_id: Identifier of the unit to update
            **patch: FileUnit fields to overwrite

        Returns:
            Updated unit, or None if the id is not registered
        """
        with self._lock:
            current = self._units.get(unit_id)
            if current is None:
                logger.debug(f"Ignoring update for unknown unit [unit_id={unit_id}]")
                return None
            updated = replace(current, **patch)
            self._units[unit_id] = updated
        self._notify(RegistryChange(ChangeKind.UPDATED, (unit_id,)))
        return updated

    def remove(self, unit_id: str) -> Optional[FileUnit]:
        with self._lock:
            unit = self._units.pop(unit_id, None)
            if unit is None:
                return None
            self._order.remove(unit_id)
        self._notify(RegistryChange(ChangeKind.REMOVED, (unit_id,)))
        return unit

    def replace_all(self, units: Iterable[FileUnit]) -> None:
        """Replace the whole contents; the given order is kept as is."""
        units = list(units)
        with self._lock:
            self._units = {}
            self._order = []
            for unit in units:
                if unit.id in self._units:
                    logger.warning(f"Skipping duplicate unit during replace [unit_id={unit.id}]")
                    continue
                self._units[unit.id] = unit
                self._order.append(unit.id)
            unit_ids = tuple(self._order)
        self._notify(RegistryChange(ChangeKind.REPLACED, unit_ids))

    def rekey(self, old_id: str, new_id: str) -> Optional[FileUnit]:
        """
        Give a unit a new identifier without moving its slot.

        Returns:
            Re-keyed unit, or None if old_id is gone or new_id is taken
        """
        with self._lock:
            current = self._units.get(old_id)
            if current is None:
                return None
            if old_id == new_id:
                return current
            if new_id in self._units:
                logger.warning(f"Cannot rekey unit, id already registered [old={old_id}, new={new_id}]")
                return None
            updated = replace(current, id=new_id)
            del self._units[old_id]
            self._units[new_id] = updated
            self._order[self._order.index(old_id)] = new_id
        self._notify(RegistryChange(ChangeKind.REKEYED, (old_id, new_id)))
        return updated

    def _notify(self, change: RegistryChange) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(change)
            except Exception as e:
                logger.error(f"Registry listener failed on {change.kind.value}: {e}", exc_info=True)
