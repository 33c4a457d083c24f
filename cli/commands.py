"""Command handler functions for CLI operations."""

from pathlib import Path

from cli.models import (
    DeleteCommand,
    ListCommand,
    RetryCommand,
    SyncCommand,
    UploadCommand,
    UseCommand,
    WaitCommand,
    WhoamiCommand,
)
from cli.utils import format_unit, resolve_unit_ref, short_id
from common.config import Config
from common.logging_config import get_logger
from common.types import LocalFile, UnitState
from ingestion.engine import IngestionEngine

logger = get_logger(__name__)


def handle_upload(cmd: UploadCommand, engine: IngestionEngine) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with file_list
        engine: Engine that runs the uploads

    Returns:
        Summary of staged files and any files that could not be read
    """
    logger.info(f"Executing upload command: {len(cmd.file_list)} files")
    results = []
    local_files = []

    for file_path in cmd.file_list:
        path = Path(file_path).expanduser()
        if not path.exists():
            results.append(f"Error: File not found: {file_path}")
            continue
        if not path.is_file():
            results.append(f"Error: Not a file: {file_path}")
            continue
        try:
            local_file = LocalFile.from_path(path)
        except OSError as e:
            results.append(f"Error: Cannot read {file_path}: {e}")
            continue
        if local_file.byte_size == 0:
            results.append(f"Error: File is empty: {file_path}")
            continue
        local_files.append(local_file)

    units = engine.ingest_batch(local_files)
    for unit in units:
        if unit.state == UnitState.FAILED:
            results.append(f"Failed: {unit.name} (ID: {short_id(unit.id)})")
        else:
            results.append(f"Queued: {unit.name} (ID: {short_id(unit.id)})")

    return '\n'.join(results) if results else "No files uploaded."


def handle_list(cmd: ListCommand, engine: IngestionEngine) -> str:
    """
    Handle 'list' command.

    Args:
        cmd: ListCommand
        engine: Engine whose registry is listed

    Returns:
        Formatted list of files
    """
    units = engine.registry.snapshot()
    if not units:
        return "No files."

    output = [f"{len(units)} file(s):"]
    output.extend(format_unit(unit) for unit in units)
    return '\n'.join(output)


def handle_delete(cmd: DeleteCommand, engine: IngestionEngine) -> str:
    """
    Handle 'delete' command.

    Args:
        cmd: DeleteCommand with unit_ref
        engine: Engine that removes the unit

    Returns:
        Success or error message
    """
    unit_id, error = resolve_unit_ref(engine.registry, cmd.unit_ref)
    if error:
        return f"Error: {error}"

    name = engine.registry.get(unit_id).name
    engine.remove_unit(unit_id)
    return f"Deleted: {name} (ID: {short_id(unit_id)})"


def handle_retry(cmd: RetryCommand, engine: IngestionEngine) -> str:
    """
    Handle 'retry' command.

    Args:
        cmd: RetryCommand with unit_ref
        engine: Engine that re-uploads the unit

    Returns:
        Success or error message
    """
    unit_id, error = resolve_unit_ref(engine.registry, cmd.unit_ref)
    if error:
        return f"Error: {error}"

    unit = engine.registry.get(unit_id)
    if unit.state != UnitState.FAILED:
        return f"Error: {unit.name} has not failed (state: {unit.state.value})"
    if not engine.retry_unit(unit_id):
        return f"Error: {unit.name} can no longer be retried, upload it again"
    return f"Retrying: {unit.name} (ID: {short_id(unit_id)})"


async def handle_sync(cmd: SyncCommand, engine: IngestionEngine) -> str:
    """
    Handle 'sync' command.

    Args:
        cmd: SyncCommand
        engine: Engine to reconcile

    Returns:
        Number of records loaded
    """
    if engine.session.current_owner_scope() is None:
        return "Error: No owner set. Run: use <owner-id>"
    count = await engine.reconcile()
    return f"Loaded {count} stored file(s)."


async def handle_wait(cmd: WaitCommand, engine: IngestionEngine) -> str:
    running = engine.in_flight
    if not running:
        return "No uploads running."
    await engine.wait_idle()
    return f"Finished {running} upload(s)."


def handle_whoami(cmd: WhoamiCommand, config: Config) -> str:
    owner = config.get_owner_id()
    return f"Owner: {owner}" if owner else "No owner set. Run: use <owner-id>"


async def handle_use(cmd: UseCommand, engine: IngestionEngine, config: Config) -> str:
    """
    Handle 'use' command.

    Args:
        cmd: UseCommand with owner_id
        engine: Engine to reconcile for the new owner
        config: Configuration where the owner is saved

    Returns:
        Success message with the number of records loaded
    """
    logger.info(f"Switching owner scope [owner={cmd.owner_id}]")
    config.set_owner_id(cmd.owner_id)
    engine.clear_view()
    count = await engine.reconcile(cmd.owner_id)
    return f"Owner set to {cmd.owner_id}. Loaded {count} stored file(s)."
