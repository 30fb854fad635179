"""Sequential chunked upload of a local file to the relay."""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from common.constants import CHUNK_SIZE_BYTES
from common.logging_config import get_logger
from common.types import FileChunk
from cli.relay_client import RelayClient, RelayClientError

logger = get_logger(__name__)


class UploadState(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    RELAYING = "relaying"
    COMPLETED = "completed"
    FAILED = "failed"


class UploadAbortedError(Exception):
    """
    Raised when an upload stops before every chunk was acknowledged.

    Attributes:
        session: Session state at the time of the abort
        cause: Last relay error, if any
    """

    def __init__(self, message: str, session: "UploadSession", cause: Optional[RelayClientError] = None):
        self.session = session
        self.cause = cause
        super().__init__(message)


@dataclass
class UploadSession:
    """
    Progress of one chunked upload, owned by the caller.
    """
    source_path: Path
    destination_name: str
    session_id: str
    total_bytes: int
    chunk_size: int
    uploaded_bytes: int = 0
    chunks_sent: int = 0
    state: UploadState = UploadState.PENDING
    url: Optional[str] = None
    error: Optional[str] = None
    chunk_sizes: list = field(default_factory=list)

    @property
    def first_chunk(self) -> bool:
        return self.chunks_sent == 0

    @property
    def is_complete(self) -> bool:
        return self.uploaded_bytes >= self.total_bytes and self.chunks_sent > 0

    @property
    def percent(self) -> int:
        if self.total_bytes == 0:
            return 100 if self.chunks_sent else 0
        return self.uploaded_bytes * 100 // self.total_bytes

    def next_window(self) -> int:
        """Size of the next chunk: the chunk size, or whatever is left."""
        return min(self.chunk_size, self.total_bytes - self.uploaded_bytes)


ProgressCallback = Callable[[UploadSession], None]


def make_destination_name(source_path: Path, ticks: int) -> str:
    """
    Derive a per-upload destination name: ``<stem>-<ticks><suffix>``.

    Args:
        source_path: Local file being uploaded
        ticks: Timestamp making the name unique per invocation

    Returns:
        Destination file name without directories
    """
    source_path = Path(source_path)
    return f"{source_path.stem}-{ticks}{source_path.suffix}"


def _default_ticks() -> int:
    # 100ns resolution
    return time.time_ns() // 100


class ChunkUploader:
    """
    Uploads a file as sequential chunks, awaiting each acknowledgement
    before reading the next window.
    """

    def __init__(
        self,
        client: RelayClient,
        chunk_size: int = CHUNK_SIZE_BYTES,
        max_consecutive_failures: int = 5,
        retry_base_delay: float = 1.0,
        retry_backoff_multiplier: float = 2,
        progress_callback: Optional[ProgressCallback] = None,
        clock: Callable[[], int] = _default_ticks,
    ):
        """
        Initialize chunk uploader.

        Args:
            client: Relay client used to send chunks
            chunk_size: Bytes per chunk (must be positive)
            max_consecutive_failures: Failed attempts on one chunk before aborting
            retry_base_delay: Delay before the first retry, in seconds
            retry_backoff_multiplier: Factor applied to the delay on each retry
            progress_callback: Called with the session after every acknowledged chunk
            clock: Source of the timestamp used in destination names
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if max_consecutive_failures < 1:
            raise ValueError("max_consecutive_failures must be at least 1")

        self.client = client
        self.chunk_size = chunk_size
        self.max_consecutive_failures = max_consecutive_failures
        self.retry_base_delay = retry_base_delay
        self.retry_backoff_multiplier = retry_backoff_multiplier
        self.progress_callback = progress_callback
        self.clock = clock

    def create_session(self, path: Path) -> UploadSession:
        """
        Build the session state for uploading a file.

        Args:
            path: Local file to upload

        Returns:
            New UploadSession in PENDING state
        """
        path = Path(path)
        return UploadSession(
            source_path=path,
            destination_name=make_destination_name(path, self.clock()),
            session_id=uuid.uuid4().hex,
            total_bytes=path.stat().st_size,
            chunk_size=self.chunk_size,
        )

    async def upload_large_file(
        self,
        path: Path,
        container_name: Optional[str] = None,
        session: Optional[UploadSession] = None,
    ) -> UploadSession:
        """
        Upload a file in chunks and optionally relay it to a cloud container.

        Args:
            path: Local file to upload
            container_name: Container to copy the finished file into (None to skip)
            session: Pre-built session (defaults to create_session(path))

        Returns:
            The completed UploadSession

        Raises:
            FileNotFoundError: If the source file does not exist
            UploadAbortedError: If a chunk could not be delivered or the relay copy failed
        """
        path = Path(path)
        if session is None:
            session = self.create_session(path)

        session.state = UploadState.UPLOADING
        logger.info(
            f"Uploading {path.name} as {session.destination_name} "
            f"({session.total_bytes} bytes, chunk_size={session.chunk_size})"
        )

        with open(path, 'rb') as source:
            while session.uploaded_bytes < session.total_bytes or session.chunks_sent == 0:
                window = session.next_window()
                data = source.read(window)

                if len(data) == 0 and window > 0:
                    self._fail(session, f"Source file shrank: read 0 bytes at offset {session.uploaded_bytes}")

                chunk = FileChunk(
                    file_name_no_path=session.destination_name,
                    offset=session.uploaded_bytes,
                    data=data,
                    first_chunk=session.first_chunk,
                    session_id=session.session_id,
                )
                await self._send_with_retry(chunk, session)

                session.uploaded_bytes += len(data)
                session.chunks_sent += 1
                session.chunk_sizes.append(len(data))
                self._report(session)

        logger.info(
            f"Upload of {session.destination_name} complete: {session.chunks_sent} chunks, "
            f"{session.uploaded_bytes} bytes"
        )

        if container_name:
            await self._relay(session, container_name)

        session.state = UploadState.COMPLETED
        self._report(session)
        return session

    async def _send_with_retry(self, chunk: FileChunk, session: UploadSession) -> None:
        failures = 0
        while True:
            try:
                await self.client.upload_chunk(chunk)
                return
            except RelayClientError as e:
                if e.code == 'OFFSET_MISMATCH' and _already_written(chunk, e):
                    logger.info(
                        f"Chunk at offset {chunk.offset} of {chunk.file_name_no_path} "
                        f"was already written, treating as acknowledged"
                    )
                    return

                failures += 1
                if not e.retryable:
                    self._fail(session, f"Chunk at offset {chunk.offset} rejected: {e.detail}", e)
                if failures >= self.max_consecutive_failures:
                    self._fail(
                        session,
                        f"Chunk at offset {chunk.offset} failed {failures} times in a row: {e.detail}",
                        e,
                    )

                delay = self.retry_base_delay * self.retry_backoff_multiplier ** (failures - 1)
                logger.warning(
                    f"Chunk at offset {chunk.offset} failed ({e.code}), "
                    f"attempt {failures}/{self.max_consecutive_failures}, retrying in {delay}s"
                )
                await asyncio.sleep(delay)

    async def _relay(self, session: UploadSession, container_name: str) -> None:
        session.state = UploadState.RELAYING
        self._report(session)
        try:
            session.url = await self.client.copy_to_container(session.destination_name, container_name)
        except RelayClientError as e:
            self._fail(session, f"Could not copy {session.destination_name} to {container_name}: {e.detail}", e)

        logger.info(f"Relayed {session.destination_name} to {session.url}")
        try:
            await self.client.delete_staged_file(session.destination_name)
        except RelayClientError as e:
            logger.warning(f"Could not delete staged file {session.destination_name}: {e}")

    def _fail(self, session: UploadSession, message: str, cause: Optional[RelayClientError] = None):
        session.state = UploadState.FAILED
        session.error = message
        logger.error(message)
        self._report(session)
        raise UploadAbortedError(message, session, cause)

    def _report(self, session: UploadSession) -> None:
        if self.progress_callback is not None:
            self.progress_callback(session)


def _already_written(chunk: FileChunk, error: RelayClientError) -> bool:
    expected = error.extra.get('expected_offset')
    return expected is not None and expected == chunk.offset + len(chunk.data)
