"""Shared data type definitions (FileChunk, ChunkWriteResult)."""

import base64
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FileChunk:
    """
    One contiguous byte range of a file, transmitted as a single unit.
    """
    file_name_no_path: str
    offset: int
    data: bytes
    first_chunk: bool
    session_id: Optional[str] = None

    def to_payload(self) -> dict:
        """
        Build the JSON body sent to ``POST /files``.

        Returns:
            Dictionary with camelCase keys and base64-encoded data
        """
        payload = {
            "fileNameNoPath": self.file_name_no_path,
            "offset": self.offset,
            "data": base64.b64encode(self.data).decode("ascii"),
            "firstChunk": self.first_chunk,
        }
        if self.session_id:
            payload["sessionId"] = self.session_id
        return payload


@dataclass(frozen=True)
class ChunkWriteResult:
    """
    Outcome of writing one chunk into a staged file.
    """
    file_name: str
    offset: int
    bytes_written: int
    size: int
