"""Writes uploaded chunks into staged files."""

import asyncio
import logging
from typing import Optional

from common.types import ChunkWriteResult, FileChunk
from relay.exceptions import OffsetMismatchError
from relay.locks import DestinationLocks
from relay.services.blob_relay import BlobRelay
from relay.staging import StagingArea

logger = logging.getLogger(__name__)


class ChunkWriter:
    def __init__(self, staging: StagingArea, locks: DestinationLocks):
        self.staging = staging
        self.locks = locks

    async def write(self, chunk: FileChunk, session_id: Optional[str] = None) -> ChunkWriteResult:
        """
        Write one chunk at its offset in the staged destination file.

        A first chunk must start at offset 0 and replaces any existing file
        of the same name. Every other chunk must start exactly at the current
        end of the staged file; gaps and overlaps are rejected.

        Args:
            chunk: Chunk to write
            session_id: Upload session owning the destination (optional)

        Returns:
            ChunkWriteResult with the resulting staged size

        Raises:
            InvalidFileNameError: If the destination name is unsafe
            DestinationBusyError: If another session holds the destination
            OffsetMismatchError: If the offset is not the expected one
            StorageFullError, StagingIOError: On write failure
        """
        name = chunk.file_name_no_path
        self.staging.resolve(name)
        session_id = session_id or chunk.session_id

        async with self.locks.lock(name):
            if session_id:
                self.locks.claim(name, session_id)

            if chunk.first_chunk:
                expected = 0
            else:
                expected = await asyncio.to_thread(self.staging.get_size, name) or 0

            if chunk.offset != expected:
                logger.warning(
                    f"Rejected chunk for {name}: offset={chunk.offset} expected={expected}"
                )
                raise OffsetMismatchError(name, chunk.offset, expected)

            size = await asyncio.to_thread(
                self.staging.write_at,
                name,
                chunk.offset,
                chunk.data,
                chunk.first_chunk,
            )

        logger.debug(
            f"Wrote chunk {name} offset={chunk.offset} length={len(chunk.data)} size={size}"
        )
        return ChunkWriteResult(
            file_name=name,
            offset=chunk.offset,
            bytes_written=len(chunk.data),
            size=size,
        )

    async def write_whole_file(self, file_name: str, source) -> int:
        """
        Replace a staged file with the contents of a binary stream.

        Args:
            file_name: Destination file name
            source: Readable binary stream

        Returns:
            Number of bytes staged

        Raises:
            DestinationBusyError: If an upload session still owns the name
        """
        self.staging.resolve(file_name)
        async with self.locks.lock(file_name):
            self.locks.ensure_unleased(file_name)
            size = await asyncio.to_thread(self.staging.write_stream, file_name, source)
        logger.info(f"Staged whole file {file_name} ({size} bytes)")
        return size

    async def stage_blob(self, blob_relay: BlobRelay, container_name: str, blob_name: str) -> str:
        """
        Download a blob into the staged file of the same name.

        Args:
            blob_relay: Storage wrapper used for the download
            container_name: Source container
            blob_name: Blob name, also used as the staged file name

        Returns:
            Status reported by the download ("OK")

        Raises:
            InvalidFileNameError: If the blob name is not a valid staged name
            DestinationBusyError: If an upload session still owns the name
        """
        path = self.staging.resolve(blob_name)
        async with self.locks.lock(blob_name):
            self.locks.ensure_unleased(blob_name)
            await asyncio.to_thread(self.staging.ensure_directory)
            status = await blob_relay.download(container_name, blob_name, path)
        logger.info(f"Staged blob {container_name}/{blob_name}")
        return status

    async def delete(self, file_name: str) -> bool:
        """
        Delete a staged file and release its session lease.

        Args:
            file_name: Staged file name

        Returns:
            True once the file is gone (also when it never existed)
        """
        self.staging.resolve(file_name)
        async with self.locks.lock(file_name):
            deleted = await asyncio.to_thread(self.staging.delete, file_name)
            self.locks.release(file_name)
        if deleted:
            logger.info(f"Deleted staged file {file_name}")
        return True
