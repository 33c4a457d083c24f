"""
Ingestion engine: stages local files, uploads them concurrently and keeps the
registry in step with the object store and the metadata store.

All backend failures end at this boundary. They become a unit state in the
registry or a log record, never an exception for the caller.
"""

import asyncio
import functools
from typing import Dict, Iterable, List, Optional, Set

from common.config import Config
from common.exceptions import RecordNotFound, StoreError
from common.logging_config import get_logger
from common.types import FileUnit, LocalFile, MetadataRecord, RecordFields, UnitState
from common.utils import format_file_size, generate_temp_id, is_temp_id
from ingestion.metadata_store import MetadataStore, RestMetadataStore
from ingestion.registry import FileUnitRegistry
from ingestion.session import ConfigSession, SessionProvider
from ingestion.sqlite_store import SqliteMetadataStore
from ingestion.transfer_channel import TransferChannel, TransferOutcome

logger = get_logger(__name__)


def project_record(record: MetadataRecord) -> FileUnit:
    """Build the completed unit shown for a stored metadata record."""
    return FileUnit(
        id=record.record_id,
        name=record.file_name,
        byte_size=record.byte_size,
        mime_type=record.mime_type,
        state=UnitState.COMPLETED,
        progress_percent=100,
        preview_reference=record.remote_locator,
        remote_locator=record.remote_locator,
        created_at=record.created_at,
    )


class IngestionEngine:
    """
    Orchestrates batch intake, per-file transfers, metadata writes,
    startup reconciliation and deletion.

    Must be driven from a running asyncio event loop. Transfers and
    background writes are tasks on that loop; wait_idle() awaits them.
    """

    def __init__(
        self,
        registry: FileUnitRegistry,
        channel: TransferChannel,
        store: MetadataStore,
        session: SessionProvider,
        destination_hint: str,
        upload_deadline: Optional[float] = None,
    ):
        """
        Initialize engine.

        Args:
            registry: Registry the presentation layer observes
            channel: Transfer channel used for every upload
            store: Metadata store adapter
            session: Owner-scope provider
            destination_hint: Upload preset passed to the channel
            upload_deadline: Seconds before a transfer without outcome is failed (None = no limit)
        """
        self.registry = registry
        self.channel = channel
        self.store = store
        self.session = session
        self.destination_hint = destination_hint
        self.upload_deadline = upload_deadline

        self._payloads: Dict[str, LocalFile] = {}
        self._transfers: Dict[str, asyncio.Task] = {}
        self._side_effects: Set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config: Config, registry: Optional[FileUnitRegistry] = None) -> "IngestionEngine":
        """
        Build an engine with the adapters selected in the configuration.

        Args:
            config: Configuration instance
            registry: Optional registry to drive (a new one is created otherwise)

        Returns:
            IngestionEngine instance
        """
        if config.get_store_backend() == 'rest':
            store: MetadataStore = RestMetadataStore(config)
        else:
            store = SqliteMetadataStore(config.get_database_path())

        return cls(
            registry=registry or FileUnitRegistry(),
            channel=TransferChannel(config.get_upload_url()),
            store=store,
            session=ConfigSession(config),
            destination_hint=config.get_upload_preset(),
            upload_deadline=config.get_upload_deadline(),
        )

    @property
    def in_flight(self) -> int:
        return sum(1 for task in self._transfers.values() if not task.done())

    def has_payload(self, unit_id: str) -> bool:
        return unit_id in self._payloads

    def ingest_batch(self, local_files: Iterable[LocalFile]) -> List[FileUnit]:
        """
        Stage a batch of files and start one upload per file.

        Returns as soon as the uploads are scheduled; their progress and
        outcome show up in the registry.

        Args:
            local_files: Files selected by the user

        Returns:
            The new units as currently registered, in batch order; units whose
            upload could not be started are already failed
        """
        local_files = list(local_files)
        if not local_files:
            return []

        units = [
            FileUnit(
                id=generate_temp_id(),
                name=local_file.name,
                byte_size=local_file.byte_size,
                mime_type=local_file.mime_type,
                preview_reference=local_file.preview_reference,
            )
            for local_file in local_files
        ]
        self.registry.insert_batch(units)
        logger.info(f"Staged batch of {len(units)} file(s)")

        for unit, local_file in zip(units, local_files):
            self._payloads[unit.id] = local_file
            self._launch(unit.id)
        return [self.registry.get(unit.id) or unit for unit in units]

    def retry_unit(self, unit_id: str) -> bool:
        """
        Upload a failed unit again with the bytes kept from its intake.

        Args:
            unit_id: Identifier of a failed unit

        Returns:
            True if a new upload was started
        """
        unit = self.registry.get(unit_id)
        if unit is None or unit.state != UnitState.FAILED:
            logger.info(f"Retry ignored, unit is not failed [unit_id={unit_id}]")
            return False
        if unit_id not in self._payloads:
            logger.warning(f"Retry not possible, file bytes no longer available [unit_id={unit_id}]")
            return False

        logger.info(f"Retrying upload [unit_id={unit_id}, file={unit.name}]")
        self.registry.update(unit_id, state=UnitState.STAGED, progress_percent=0)
        self._launch(unit_id)
        return True

    def remove_unit(self, unit_id: str) -> bool:
        """
        Remove a unit from the registry at once and delete its record in the background.

        A failed remote delete is logged; the unit is not put back. Units that
        still carry a temporary id have no record, so nothing is deleted remotely.

        Args:
            unit_id: Identifier of the unit

        Returns:
            True if the unit was in the registry
        """
        unit = self.registry.remove(unit_id)
        self._payloads.pop(unit_id, None)
        if unit is None:
            return False

        logger.info(f"Removed unit [unit_id={unit_id}, file={unit.name}, state={unit.state.value}]")
        if is_temp_id(unit_id):
            return True
        self._dispatch(self._delete_remote(unit_id), f"delete-{unit_id}")
        return True

    async def reconcile(self, owner_scope: Optional[str] = None) -> int:
        """
        Seed the registry from the metadata store.

        Stored records replace the registry contents. Local units that have
        no record yet (staged, uploading, failed, or completed but not
        persisted) are kept ahead of them. If the store cannot be read the
        registry is left untouched.

        Args:
            owner_scope: Owner to load; defaults to the session's owner

        Returns:
            Number of records loaded
        """
        owner = owner_scope if owner_scope is not None else self.session.current_owner_scope()
        if owner is None:
            logger.info("No signed-in owner, skipping reconciliation")
            return 0

        try:
            records = await self.store.list_records(owner)
        except StoreError as e:
            logger.error(f"Reconciliation failed, metadata store unavailable [owner={owner}]: {e}")
            return 0

        records = sorted(records, key=lambda record: record.created_at, reverse=True)
        record_ids = {record.record_id for record in records}
        local_units = [
            unit for unit in self.registry.snapshot()
            if unit.id not in record_ids and is_temp_id(unit.id)
        ]
        self.registry.replace_all(local_units + [project_record(record) for record in records])
        logger.info(f"Reconciled {len(records)} record(s) [owner={owner}, local_units={len(local_units)}]")
        return len(records)

    def clear_view(self) -> None:
        """Drop every unit that is not uploading from the registry, e.g. when the owner changes."""
        kept = [unit for unit in self.registry.snapshot() if unit.state.in_flight]
        kept_ids = {unit.id for unit in kept}
        for unit_id in list(self._payloads):
            if unit_id not in kept_ids:
                del self._payloads[unit_id]
        self.registry.replace_all(kept)

    async def wait_idle(self) -> None:
        """Wait until no transfer or background write is running."""
        while True:
            pending = [task for task in [*self._transfers.values(), *self._side_effects] if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        await self.wait_idle()
        await self.channel.close()
        await self.store.close()

    def _launch(self, unit_id: str) -> None:
        if not self.destination_hint or not self.destination_hint.strip():
            logger.error(f"Upload destination not configured, failing unit [unit_id={unit_id}]")
            self.registry.update(unit_id, state=UnitState.FAILED, progress_percent=0)
            return

        task = asyncio.get_running_loop().create_task(self._run_transfer(unit_id), name=f"transfer-{unit_id}")
        self._transfers[unit_id] = task
        task.add_done_callback(functools.partial(self._transfer_done, unit_id))

    def _transfer_done(self, unit_id: str, task: asyncio.Task) -> None:
        if self._transfers.get(unit_id) is task:
            del self._transfers[unit_id]
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Transfer task crashed [unit_id={unit_id}]", exc_info=task.exception())

    async def _run_transfer(self, unit_id: str) -> None:
        local_file = self._payloads.get(unit_id)
        if local_file is None or self.registry.update(unit_id, state=UnitState.UPLOADING, progress_percent=0) is None:
            logger.debug(f"Unit removed before upload started [unit_id={unit_id}]")
            return

        logger.info(f"Uploading [unit_id={unit_id}, file={local_file.name}, size={format_file_size(local_file.byte_size)}]")
        transfer = self.channel.begin_transfer(
            local_file.data,
            self.destination_hint,
            file_name=local_file.name,
            mime_type=local_file.mime_type,
            on_progress=functools.partial(self._on_progress, unit_id),
        )
        try:
            outcome = await asyncio.wait_for(transfer, timeout=self.upload_deadline)
        except asyncio.TimeoutError:
            logger.warning(f"Upload produced no outcome within {self.upload_deadline}s [unit_id={unit_id}]")
            outcome = TransferOutcome.failed("upload deadline exceeded")
        except Exception as e:
            logger.error(f"Transfer channel raised instead of returning an outcome [unit_id={unit_id}]: {e}", exc_info=True)
            outcome = TransferOutcome.failed(f"unexpected error: {e}")

        self._apply_outcome(unit_id, outcome)

    def _on_progress(self, unit_id: str, percent: int) -> None:
        unit = self.registry.get(unit_id)
        if unit is None or not unit.state.in_flight or percent <= unit.progress_percent:
            return
        self.registry.update(unit_id, progress_percent=min(percent, 100), state=UnitState.UPLOADING)

    def _apply_outcome(self, unit_id: str, outcome: TransferOutcome) -> None:
        if not outcome.success:
            if self.registry.update(unit_id, state=UnitState.FAILED, progress_percent=0) is None:
                self._payloads.pop(unit_id, None)
            logger.warning(f"Unit failed [unit_id={unit_id}, kind={outcome.error_kind.value}, reason={outcome.reason}]")
            return

        self._payloads.pop(unit_id, None)
        unit = self.registry.update(
            unit_id,
            state=UnitState.COMPLETED,
            progress_percent=100,
            remote_locator=outcome.remote_locator,
            remote_public_id=outcome.remote_public_id,
            preview_reference=outcome.remote_locator,
        )
        if unit is None:
            logger.warning(
                f"Unit removed during upload, stored object has no record "
                f"[unit_id={unit_id}, public_id={outcome.remote_public_id}]"
            )
            return

        logger.info(f"Unit completed [unit_id={unit_id}, file={unit.name}]")
        self._dispatch(self._persist(unit), f"persist-{unit_id}")

    async def _persist(self, unit: FileUnit) -> None:
        owner = self.session.current_owner_scope()
        if owner is None:
            logger.warning(f"No signed-in owner, metadata not written [unit_id={unit.id}, file={unit.name}]")
            return

        fields = RecordFields(
            file_name=unit.name,
            remote_locator=unit.remote_locator,
            mime_type=unit.mime_type,
            byte_size=unit.byte_size,
        )
        try:
            record = await self.store.create_record(owner, fields)
        except StoreError as e:
            logger.error(
                f"Persistence failure, unit stays completed without a stored record "
                f"[unit_id={unit.id}, file={unit.name}]: {e}"
            )
            return

        if unit.id not in self.registry:
            logger.info(f"Unit removed while its record was written, deleting record [record_id={record.record_id}]")
            await self._delete_remote(record.record_id)
            return

        if record.record_id in self.registry:
            self.registry.remove(unit.id)
            logger.debug(f"Record already listed by reconciliation, dropping local copy [unit_id={unit.id}, record_id={record.record_id}]")
            return

        if self.registry.rekey(unit.id, record.record_id) is not None:
            self.registry.update(record.record_id, created_at=record.created_at)
            logger.debug(f"Unit persisted [unit_id={unit.id}, record_id={record.record_id}]")

    async def _delete_remote(self, record_id: str) -> None:
        try:
            await self.store.delete_record(record_id)
        except RecordNotFound:
            logger.debug(f"Record already absent [record_id={record_id}]")
        except StoreError as e:
            logger.warning(f"Remote delete failed, store still holds the record [record_id={record_id}]: {e}")

    def _dispatch(self, coro, name: str) -> None:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._side_effects.add(task)
        task.add_done_callback(self._side_effect_done)

    def _side_effect_done(self, task: asyncio.Task) -> None:
        self._side_effects.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background task {task.get_name()} failed", exc_info=task.exception())
