"""Shared data type definitions (FileUnit, MetadataRecord, LocalFile, etc.)."""

import mimetypes
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from common.constants import IMAGE_MIME_PREFIX, UNKNOWN_MIME_TYPE


class UnitState(str, Enum):
    """Lifecycle state of a tracked file unit."""

    STAGED = "staged"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def in_flight(self) -> bool:
        return self in (UnitState.STAGED, UnitState.UPLOADING)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FileUnit:
    """
    One tracked file, either staged locally or loaded from the metadata store.

    remote_locator and remote_public_id are only set once the unit is completed.
    """
    id: str
    name: str
    byte_size: int
    mime_type: str
    state: UnitState = UnitState.STAGED
    progress_percent: int = 0
    preview_reference: Optional[str] = None
    remote_locator: Optional[str] = None
    remote_public_id: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class RecordFields:
    """
    Payload for creating a metadata record.
    """
    file_name: str
    remote_locator: str
    mime_type: str
    byte_size: int


@dataclass(frozen=True)
class MetadataRecord:
    """
    Durable row describing a completed upload, scoped to its owner.
    """
    record_id: str
    owner_id: str
    file_name: str
    remote_locator: str
    mime_type: str
    byte_size: int
    created_at: datetime


@dataclass(frozen=True)
class LocalFile:
    """
    File bytes selected for upload, held in memory until the upload completes.
    """
    name: str
    data: bytes
    mime_type: str = UNKNOWN_MIME_TYPE
    preview_reference: Optional[str] = None

    @property
    def byte_size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path) -> "LocalFile":
        """
        Read a file from disk.

        Images get their local file URI as an ephemeral preview reference.

        Args:
            path: Path to a regular file

        Returns:
            LocalFile with the file's bytes and guessed mime type

        Raises:
            OSError: If the file cannot be read
        """
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        mime_type = mime_type or UNKNOWN_MIME_TYPE
        preview = path.resolve().as_uri() if mime_type.startswith(IMAGE_MIME_PREFIX) else None
        return cls(
            name=path.name,
            data=path.read_bytes(),
            mime_type=mime_type,
            preview_reference=preview,
        )
