"""Utility functions for CLI output and unit lookup."""

import sys
from typing import Dict, Optional, TextIO

from cli.constants import GREEN, ID_DISPLAY_LENGTH, PROGRESS_STEP_PERCENT, RED, RESET, YELLOW
from common.types import FileUnit, UnitState
from common.utils import format_file_size
from ingestion.registry import ChangeKind, FileUnitRegistry, RegistryChange

_FAILED = -1

STATE_COLORS = {
    UnitState.STAGED: YELLOW,
    UnitState.UPLOADING: YELLOW,
    UnitState.COMPLETED: GREEN,
    UnitState.FAILED: RED,
}


def short_id(unit_id: str) -> str:
    if len(unit_id) <= ID_DISPLAY_LENGTH:
        return unit_id
    return unit_id[:ID_DISPLAY_LENGTH] + "..."


def format_unit(unit: FileUnit) -> str:
    """
    Format one unit as a list entry.

    Args:
        unit: Unit to format

    Returns:
        Two-line description with id, state, size and locator
    """
    color = STATE_COLORS[unit.state]
    status = unit.state.value
    if unit.state == UnitState.UPLOADING:
        status = f"{status} {unit.progress_percent}%"
    lines = [
        f"  - {unit.name} (ID: {short_id(unit.id)}) {color}[{status}]{RESET}",
        f"    Size: {format_file_size(unit.byte_size)}, Type: {unit.mime_type}",
    ]
    if unit.remote_locator:
        lines.append(f"    URL: {unit.remote_locator}")
    return '\n'.join(lines)


def resolve_unit_ref(registry: FileUnitRegistry, unit_ref: str) -> tuple[Optional[str], Optional[str]]:
    """
    Resolve a full unit id or a unique id prefix.

    Args:
        registry: Registry to search
        unit_ref: Id or prefix typed by the user

    Returns:
        Tuple of (unit_id, error_message); exactly one is None
    """
    unit_ref = unit_ref.rstrip('.')
    if unit_ref in registry:
        return unit_ref, None

    matches = [unit.id for unit in registry.snapshot() if unit.id.startswith(unit_ref)]
    if not matches:
        return None, f"No file with ID '{unit_ref}'"
    if len(matches) > 1:
        return None, f"ID prefix '{unit_ref}' is ambiguous ({len(matches)} files match)"
    return matches[0], None


class ProgressPrinter:
    """
    Registry listener that prints upload progress in steps and terminal states once.
    """

    def __init__(self, registry: FileUnitRegistry, stream: TextIO = sys.stdout):
        self.registry = registry
        self.stream = stream
        self._printed: Dict[str, int] = {}

    def __call__(self, change: RegistryChange) -> None:
        if change.kind == ChangeKind.REKEYED:
            old_id, new_id = change.unit_ids
            if old_id in self._printed:
                self._printed[new_id] = self._printed.pop(old_id)
            return
        if change.kind == ChangeKind.REMOVED:
            for unit_id in change.unit_ids:
                self._printed.pop(unit_id, None)
            return
        if change.kind == ChangeKind.REPLACED:
            kept = set(change.unit_ids)
            self._printed = {uid: step for uid, step in self._printed.items() if uid in kept}
            return
        if change.kind != ChangeKind.UPDATED:
            return

        unit = self.registry.get(change.unit_ids[0])
        if unit is None:
            return

        if unit.state == UnitState.UPLOADING:
            step = unit.progress_percent // PROGRESS_STEP_PERCENT * PROGRESS_STEP_PERCENT
            if step > self._printed.get(unit.id, -1) and step < 100:
                self._printed[unit.id] = step
                self._write(f"Uploading {unit.name}: {YELLOW}{step}%{RESET}")
        elif unit.state == UnitState.COMPLETED and self._printed.get(unit.id) != 100:
            self._printed[unit.id] = 100
            self._write(f"Uploaded {unit.name} ({format_file_size(unit.byte_size)}) {GREEN}done{RESET}")
        elif unit.state == UnitState.FAILED and self._printed.get(unit.id) != _FAILED:
            self._printed[unit.id] = _FAILED
            self._write(f"Upload of {unit.name} {RED}failed{RESET} (ID: {short_id(unit.id)}, use 'retry')")

    def _write(self, line: str) -> None:
        self.stream.write(line + '\n')
        self.stream.flush()
