"""File ingestion and synchronization engine."""

from ingestion.engine import IngestionEngine, project_record
from ingestion.metadata_store import MetadataStore, RestMetadataStore
from ingestion.registry import ChangeKind, FileUnitRegistry, RegistryChange
from ingestion.session import ConfigSession, SessionProvider, StaticSession
from ingestion.sqlite_store import SqliteMetadataStore
from ingestion.transfer_channel import TransferChannel, TransferErrorKind, TransferOutcome

__all__ = [
    "IngestionEngine",
    "project_record",
    "MetadataStore",
    "RestMetadataStore",
    "SqliteMetadataStore",
    "ChangeKind",
    "FileUnitRegistry",
    "RegistryChange",
    "ConfigSession",
    "SessionProvider",
    "StaticSession",
    "TransferChannel",
    "TransferErrorKind",
    "TransferOutcome",
]
