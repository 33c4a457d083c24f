"""SQLite-backed metadata store for running without a remote table."""

import asyncio
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Generator, List, Optional

from common.exceptions import RecordNotFound, StoreUnavailable, ValidationRejected
from common.logging_config import get_logger
from common.types import MetadataRecord, RecordFields, utc_now
from common.utils import generate_uuid
from ingestion.metadata_store import MetadataStore

logger = get_logger(__name__)


def _to_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec='microseconds')


def _row_to_record(row: sqlite3.Row) -> MetadataRecord:
    return MetadataRecord(
        record_id=row["record_id"],
        owner_id=row["owner_id"],
        file_name=row["file_name"],
        remote_locator=row["remote_locator"],
        mime_type=row["mime_type"],
        byte_size=row["byte_size"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class SqliteMetadataStore(MetadataStore):
    """
    Metadata store in a local SQLite file.

    Blocking sqlite3 calls run in worker threads so the event loop driving
    uploads is never stalled. Each call opens its own connection.
    """

    def __init__(self, database_path: Path, clock: Callable[[], datetime] = utc_now):
        """
        Initialize store, creating the schema now or on first use if the path is unusable.

        Args:
            database_path: Path to the SQLite file
            clock: Source of creation timestamps
        """
        self.database_path = Path(database_path)
        self._clock = clock
        self._initialized = False
        try:
            self.init_database()
        except (OSError, sqlite3.Error) as e:
            logger.error(f"Metadata database unavailable, will retry on first use [path={self.database_path}]: {e}")

    @contextmanager
    def get_db_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections.
        """
        conn = sqlite3.connect(self.database_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def init_database(self) -> None:
        """
        Initialize database and create tables if they don't exist.
        """
        self.database_path.parent.mkdir(parents=True, exist_ok=True)

        with self.get_db_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS files (
                    record_id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    file_name TEXT NOT NULL,
                    remote_locator TEXT NOT NULL,
                    mime_type TEXT NOT NULL,
                    byte_size INTEGER NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_files_owner_created ON files(owner_id, created_at)
            """)

            conn.commit()
        self._initialized = True
        logger.info(f"Metadata database ready [path={self.database_path}]")

    async def _run(self, operation: Callable, *args):
        try:
            return await asyncio.to_thread(self._call, operation, *args)
        except (OSError, sqlite3.Error) as e:
            logger.error(f"SQLite error in {operation.__name__}: {e}")
            raise StoreUnavailable(f"metadata database error: {e}")

    def _call(self, operation: Callable, *args):
        if not self._initialized:
            self.init_database()
        return operation(*args)

    async def list_records(self, owner_scope: str) -> List[MetadataRecord]:
        return await self._run(self._list_records, owner_scope)

    async def create_record(self, owner_scope: str, fields: RecordFields) -> MetadataRecord:
        if not owner_scope:
            raise ValidationRejected("owner scope is required")
        if not fields.file_name or not fields.remote_locator:
            raise ValidationRejected("file name and remote locator are required")
        if fields.byte_size < 0:
            raise ValidationRejected("byte size must not be negative")
        return await self._run(self._create_record, owner_scope, fields)

    async def delete_record(self, record_id: str) -> None:
        await self._run(self._delete_record, record_id)

    def _list_records(self, owner_scope: str) -> List[MetadataRecord]:
        with self.get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT record_id, owner_id, file_name, remote_locator, mime_type, byte_size, created_at
                FROM files WHERE owner_id = ?
                ORDER BY created_at DESC, record_id DESC
                """,
                (owner_scope,)
            )
            return [_row_to_record(row) for row in cursor.fetchall()]

    def _create_record(self, owner_scope: str, fields: RecordFields) -> MetadataRecord:
        record = MetadataRecord(
            record_id=generate_uuid(),
            owner_id=owner_scope,
            file_name=fields.file_name,
            remote_locator=fields.remote_locator,
            mime_type=fields.mime_type,
            byte_size=fields.byte_size,
            created_at=self._clock(),
        )
        with self.get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO files (record_id, owner_id, file_name, remote_locator, mime_type, byte_size, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.record_id,
                    record.owner_id,
                    record.file_name,
                    record.remote_locator,
                    record.mime_type,
                    record.byte_size,
                    _to_iso(record.created_at),
                )
            )
            conn.commit()
        logger.info(f"Created metadata record [record_id={record.record_id}, file={record.file_name}]")
        return record

    def _delete_record(self, record_id: str) -> None:
        with self.get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM files WHERE record_id = ?", (record_id,))
            conn.commit()
            deleted = cursor.rowcount
        if deleted == 0:
            raise RecordNotFound(record_id)
        logger.info(f"Deleted metadata record [record_id={record_id}]")

    def get_record(self, record_id: str) -> Optional[MetadataRecord]:
        with self.get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT record_id, owner_id, file_name, remote_locator, mime_type, byte_size, created_at
                FROM files WHERE record_id = ?
                """,
                (record_id,)
            )
            row = cursor.fetchone()
            return _row_to_record(row) if row else None
