"""Manages staged files on disk: safe name resolution, byte-range writes, listing."""

import errno
import os
import shutil
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from common.constants import PARTIAL_SUFFIX
from relay.exceptions import (
    InvalidFileNameError,
    StagingIOError,
    StorageFullError,
)


class StagingArea:
    """
    Local directory where uploaded chunks are reassembled into files.

    All names are bare file names; anything that would resolve outside the
    staging root is rejected.
    """

    def __init__(self, root: Path):
        """
        Initialize staging area.

        Args:
            root: Directory holding staged files (created on demand)
        """
        self.root = Path(root)

    def ensure_directory(self) -> None:
        """Ensure staging directory exists."""
        self.root.mkdir(parents=True, exist_ok=True)

    def resolve(self, file_name: str) -> Path:
        """
        Get the path of a staged file, rejecting path traversal.

        Args:
            file_name: Bare file name (no directories)

        Returns:
            Absolute path inside the staging root

        Raises:
            InvalidFileNameError: If the name is empty or not a bare file name
        """
        if not file_name or file_name.strip() != file_name:
            raise InvalidFileNameError(f"Invalid file name: '{file_name}'")
        if file_name in (".", "..") or "\x00" in file_name:
            raise InvalidFileNameError(f"Invalid file name: '{file_name}'")
        if "/" in file_name or "\\" in file_name or os.path.isabs(file_name):
            raise InvalidFileNameError(f"File name must not contain a path: '{file_name}'")

        root = self.root.resolve()
        path = (root / file_name).resolve()
        try:
            path.relative_to(root)
        except ValueError:
            raise InvalidFileNameError(f"File name escapes staging directory: '{file_name}'")
        if path == root:
            raise InvalidFileNameError(f"Invalid file name: '{file_name}'")
        return path

    def exists(self, file_name: str) -> bool:
        """
        Check if a staged file exists.

        Args:
            file_name: Bare file name

        Returns:
            True if the file exists, False otherwise
        """
        return self.resolve(file_name).is_file()

    def get_size(self, file_name: str) -> Optional[int]:
        """
        Get size of a staged file in bytes.

        Args:
            file_name: Bare file name

        Returns:
            Size in bytes, or None if the file doesn't exist
        """
        path = self.resolve(file_name)
        if path.is_file():
            return path.stat().st_size
        return None

    def write_at(self, file_name: str, offset: int, data: bytes, truncate: bool = False) -> int:
        """
        Write bytes into a staged file at the given offset.

        Args:
            file_name: Bare file name
            offset: Byte offset to seek to before writing
            data: Bytes to write
            truncate: Delete any existing file first

        Returns:
            Size of the staged file after the write

        Raises:
            StorageFullError: If the volume is out of space
            StagingIOError: On any other I/O failure
        """
        path = self.resolve(file_name)
        try:
            self.ensure_directory()
            if truncate and path.exists():
                path.unlink()
            mode = "r+b" if path.exists() else "wb"
            with open(path, mode) as f:
                f.seek(offset)
                f.write(data)
            return path.stat().st_size
        except OSError as e:
            raise _translate_os_error(e, file_name)

    def write_stream(self, file_name: str, source: BinaryIO) -> int:
        """
        Replace a staged file with the full contents of a stream.

        Args:
            file_name: Bare file name
            source: Readable binary stream

        Returns:
            Number of bytes written
        """
        path = self.resolve(file_name)
        try:
            self.ensure_directory()
            with open(path, "wb") as f:
                shutil.copyfileobj(source, f)
            return path.stat().st_size
        except OSError as e:
            raise _translate_os_error(e, file_name)

    def read_streaming(self, file_name: str, piece_size: int = 64 * 1024) -> Iterator[bytes]:
        """
        Stream a staged file in pieces.

        Args:
            file_name: Bare file name
            piece_size: Size of each piece in bytes (default 64KB)

        Yields:
            File data pieces
        """
        path = self.resolve(file_name)
        with open(path, "rb") as f:
            while True:
                piece = f.read(piece_size)
                if not piece:
                    break
                yield piece

    def delete(self, file_name: str) -> bool:
        """
        Delete a staged file.

        Args:
            file_name: Bare file name

        Returns:
            True if file was deleted, False if it didn't exist
        """
        path = self.resolve(file_name)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise _translate_os_error(e, file_name)
        return True

    def list_files(self) -> list[str]:
        """
        List names of all staged files.

        Returns:
            Sorted list of file names
        """
        if not self.root.exists():
            return []
        return sorted(
            p.name for p in self.root.iterdir()
            if p.is_file() and not _is_partial_download(p.name)
        )


def _is_partial_download(name: str) -> bool:
    return name.startswith(".") and name.endswith(PARTIAL_SUFFIX)


def _translate_os_error(error: OSError, file_name: str) -> Exception:
    if error.errno == errno.ENOSPC:
        return StorageFullError(f"No space left while writing '{file_name}'")
    return StagingIOError(f"I/O error on staged file '{file_name}': {error.strerror or error}")
