"""Pydantic schemas for API requests and responses."""

from relay.schemas.files import (
    FileChunkRequest,
    ChunkWriteResponse,
    CopyToContainerResponse,
    StageBlobResponse,
)
from relay.schemas.common import ErrorResponse

__all__ = [
    "FileChunkRequest",
    "ChunkWriteResponse",
    "CopyToContainerResponse",
    "StageBlobResponse",
    "ErrorResponse",
]
