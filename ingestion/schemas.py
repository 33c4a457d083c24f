"""Pydantic schemas for the object-storage and metadata-store HTTP boundaries."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from common.constants import UNKNOWN_MIME_TYPE
from common.types import MetadataRecord, RecordFields


class UploadResponse(BaseModel):
    """Success body returned by the object store for one upload."""
    model_config = ConfigDict(extra="ignore")

    secure_url: str = Field(min_length=1)
    public_id: str = Field(min_length=1)


class UploadErrorDetail(BaseModel):
    message: str


class UploadErrorResponse(BaseModel):
    """Error body returned by the object store on a non-2xx status."""
    error: UploadErrorDetail


class FileRow(BaseModel):
    """Row of the remote files table."""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    user_id: str
    file_name: str
    file_url: str
    file_type: Optional[str] = None
    file_size: int = 0
    created_at: datetime

    def to_record(self) -> MetadataRecord:
        return MetadataRecord(
            record_id=self.id,
            owner_id=self.user_id,
            file_name=self.file_name,
            remote_locator=self.file_url,
            mime_type=self.file_type or UNKNOWN_MIME_TYPE,
            byte_size=self.file_size,
            created_at=self.created_at,
        )


class FileRowInsert(BaseModel):
    """Insert payload for the remote files table."""
    user_id: str
    file_name: str
    file_url: str
    file_type: str
    file_size: int

    @classmethod
    def from_fields(cls, owner_id: str, fields: RecordFields) -> "FileRowInsert":
        return cls(
            user_id=owner_id,
            file_name=fields.file_name,
            file_url=fields.remote_locator,
            file_type=fields.mime_type,
            file_size=fields.byte_size,
        )
