"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal, Optional


@dataclass(frozen=True)
class UploadCommand:
    """Upload a file in chunks, optionally relaying it to a container."""

    path: str
    container: Optional[str] = None
    relay: bool = True
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class SendCommand:
    """Upload a whole file in one multipart request."""

    path: str
    command: Literal["send"] = "send"


@dataclass(frozen=True)
class ListCommand:
    """List staged files."""

    command: Literal["list"] = "list"


@dataclass(frozen=True)
class BlobsCommand:
    """List blobs in a container."""

    container: Optional[str] = None
    command: Literal["blobs"] = "blobs"


@dataclass(frozen=True)
class CopyCommand:
    """Copy a staged file to a container."""

    file_name: str
    container: Optional[str] = None
    command: Literal["copy"] = "copy"


@dataclass(frozen=True)
class DeleteCommand:
    """Delete a staged file."""

    file_name: str
    command: Literal["delete"] = "delete"


@dataclass(frozen=True)
class FetchCommand:
    """Download a staged file."""

    file_name: str
    output_path: Optional[str] = None
    command: Literal["fetch"] = "fetch"


@dataclass(frozen=True)
class StageCommand:
    """Pull a blob into the relay's staging directory."""

    blob_name: str
    container: Optional[str] = None
    command: Literal["stage"] = "stage"


CommandRequest = (
    UploadCommand
    | SendCommand
    | ListCommand
    | BlobsCommand
    | CopyCommand
    | DeleteCommand
    | FetchCommand
    | StageCommand
)
