"""Shared pytest fixtures and test doubles for all tests."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from common.config import Config
from common.exceptions import RecordNotFound
from common.types import LocalFile, MetadataRecord, RecordFields
from ingestion.engine import IngestionEngine
from ingestion.metadata_store import MetadataStore
from ingestion.registry import FileUnitRegistry
from ingestion.session import StaticSession
from ingestion.transfer_channel import TransferOutcome

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TransferScript:
    """Progress values to emit, outcomes to return in call order, and an optional gate."""

    def __init__(self, progress=(0, 50, 100), outcomes=None, gate: Optional[asyncio.Event] = None, error=None):
        self.progress = list(progress)
        self.outcomes = list(outcomes or [])
        self.gate = gate
        self.error = error


class ScriptedChannel:
    """
    Transfer channel double that replays a script per file name.

    Files without a script emit 0, 50, 100 and succeed.
    """

    def __init__(self):
        self.scripts: Dict[str, TransferScript] = {}
        self.calls: List[tuple] = []
        self.closed = False

    def script(self, file_name: str, **kwargs) -> TransferScript:
        self.scripts[file_name] = TransferScript(**kwargs)
        return self.scripts[file_name]

    async def begin_transfer(self, file_bytes, destination_hint, *, file_name, mime_type, on_progress=None):
        self.calls.append((file_name, destination_hint, len(file_bytes)))
        script = self.scripts.get(file_name, TransferScript())

        for percent in script.progress:
            if on_progress is not None:
                on_progress(percent)
            await asyncio.sleep(0)

        if script.gate is not None:
            await script.gate.wait()
        if script.error is not None:
            raise script.error
        if script.outcomes:
            return script.outcomes.pop(0)
        return TransferOutcome.succeeded(
            f"https://cdn.example.com/{file_name}",
            f"uploads/{file_name}",
        )

    async def close(self):
        self.closed = True


class InMemoryStore(MetadataStore):
    """
    Metadata store double keeping records in a list, with failure and gating hooks.

    create_gate holds a create before the record exists; commit_gate holds it
    after the record is stored but before the caller gets it back.
    """

    def __init__(self):
        self.records: List[MetadataRecord] = []
        self.created: List[tuple] = []
        self.deleted: List[str] = []
        self.list_calls = 0
        self.list_error: Optional[Exception] = None
        self.create_error: Optional[Exception] = None
        self.delete_error: Optional[Exception] = None
        self.create_gate: Optional[asyncio.Event] = None
        self.commit_gate: Optional[asyncio.Event] = None
        self.delete_gate: Optional[asyncio.Event] = None
        self._sequence = 0

    def add_record(self, record_id: str, file_name: str, created_at: datetime, owner_id: str = "owner-1") -> MetadataRecord:
        record = MetadataRecord(
            record_id=record_id,
            owner_id=owner_id,
            file_name=file_name,
            remote_locator=f"https://cdn.example.com/{file_name}",
            mime_type="text/plain",
            byte_size=42,
            created_at=created_at,
        )
        self.records.append(record)
        return record

    async def list_records(self, owner_scope: str) -> List[MetadataRecord]:
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        owned = [record for record in self.records if record.owner_id == owner_scope]
        return sorted(owned, key=lambda record: record.created_at, reverse=True)

    async def create_record(self, owner_scope: str, fields: RecordFields) -> MetadataRecord:
        self.created.append((owner_scope, fields))
        if self.create_gate is not None:
            await self.create_gate.wait()
        if self.create_error is not None:
            raise self.create_error
        self._sequence += 1
        record = MetadataRecord(
            record_id=f"rec-{self._sequence}",
            owner_id=owner_scope,
            file_name=fields.file_name,
            remote_locator=fields.remote_locator,
            mime_type=fields.mime_type,
            byte_size=fields.byte_size,
            created_at=BASE_TIME + timedelta(minutes=self._sequence),
        )
        self.records.append(record)
        if self.commit_gate is not None:
            await self.commit_gate.wait()
        return record

    async def delete_record(self, record_id: str) -> None:
        self.deleted.append(record_id)
        if self.delete_gate is not None:
            await self.delete_gate.wait()
        if self.delete_error is not None:
            raise self.delete_error
        for record in self.records:
            if record.record_id == record_id:
                self.records.remove(record)
                return
        raise RecordNotFound(record_id)


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .filedock directory
    """
    config_dir = tmp_path / '.filedock'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance.

    Args:
        temp_config_dir: Temporary config directory fixture

    Returns:
        Config instance with temp config file
    """
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def registry():
    return FileUnitRegistry()


@pytest.fixture
def channel():
    return ScriptedChannel()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def session():
    return StaticSession("owner-1")


@pytest.fixture
def engine(registry, channel, store, session):
    """Engine wired to the scripted channel and in-memory store."""
    return IngestionEngine(
        registry=registry,
        channel=channel,
        store=store,
        session=session,
        destination_hint="preset-1",
    )


@pytest.fixture
def sample_files():
    """
    Two in-memory files: an image and a text file.

    Returns:
        List of LocalFile
    """
    return [
        LocalFile(name="a.png", data=b"\x89PNG" + b"\x00" * 1020, mime_type="image/png"),
        LocalFile(name="b.txt", data=b"0123456789", mime_type="text/plain"),
    ]


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file on disk for upload commands.

    Returns:
        Path to sample text file
    """
    file_path = tmp_path / 'test.txt'
    file_path.write_text('Sample content for testing')
    return file_path
