"""Pydantic schemas for file operation endpoints."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.types import Base64Bytes

from common.types import FileChunk


class FileChunkRequest(BaseModel):
    """Request model for one uploaded chunk; ``data`` travels as base64."""
    model_config = ConfigDict(populate_by_name=True)

    file_name_no_path: str = Field(alias="fileNameNoPath")
    offset: int = Field(ge=0)
    data: Base64Bytes
    first_chunk: bool = Field(alias="firstChunk")
    session_id: Optional[str] = Field(default=None, alias="sessionId")

    def to_chunk(self) -> FileChunk:
        return FileChunk(
            file_name_no_path=self.file_name_no_path,
            offset=self.offset,
            data=self.data,
            first_chunk=self.first_chunk,
            session_id=self.session_id,
        )


class ChunkWriteResponse(BaseModel):
    """Response model for a written chunk."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    file_name: str = Field(serialization_alias="fileName")
    offset: int
    bytes_written: int = Field(serialization_alias="bytesWritten")
    size: int


class CopyToContainerResponse(BaseModel):
    """Response model for relaying a staged file to a container."""
    url: str


class StageBlobResponse(BaseModel):
    """Response model for pulling a blob into the staging directory."""
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(serialization_alias="fileName")
    status: str = "OK"
