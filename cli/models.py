"""Command request data types for the CLI."""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class UploadCommand:
    """Upload local files."""

    file_list: tuple[str, ...]
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class ListCommand:
    """Show tracked files."""

    command: Literal["list"] = "list"


@dataclass(frozen=True)
class DeleteCommand:
    """Delete a file by unit id (or unique id prefix)."""

    unit_ref: str
    command: Literal["delete"] = "delete"


@dataclass(frozen=True)
class RetryCommand:
    """Upload a failed file again."""

    unit_ref: str
    command: Literal["retry"] = "retry"


@dataclass(frozen=True)
class SyncCommand:
    """Reload the file list from the metadata store."""

    command: Literal["sync"] = "sync"


@dataclass(frozen=True)
class WaitCommand:
    """Wait for running uploads to finish."""

    command: Literal["wait"] = "wait"


@dataclass(frozen=True)
class WhoamiCommand:
    """Show the current owner scope."""

    command: Literal["whoami"] = "whoami"


@dataclass(frozen=True)
class UseCommand:
    """Switch the owner scope."""

    owner_id: str
    command: Literal["use"] = "use"


CommandRequest = (
    UploadCommand
    | ListCommand
    | DeleteCommand
    | RetryCommand
    | SyncCommand
    | WaitCommand
    | WhoamiCommand
    | UseCommand
)
