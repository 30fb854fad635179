"""Utility functions for CLI operations."""

import sys

from cli.chunk_uploader import UploadSession, UploadState
from cli.constants import GREEN, RESET


class ProgressPrinter:
    """Progress callback that redraws a single status line on stdout."""

    def __init__(self, display_name: str, stream=None):
        """
        Initialize the progress printer.

        Args:
            display_name: Name shown for the file being uploaded
            stream: Output stream (defaults to sys.stdout)
        """
        self.display_name = display_name
        self.stream = stream or sys.stdout
        self._finished = False

    def __call__(self, session: UploadSession) -> None:
        if self._finished:
            return

        if session.state == UploadState.UPLOADING:
            self.stream.write(
                f"\rUploading {self.display_name}: {format_file_size(session.uploaded_bytes)} / "
                f"{format_file_size(session.total_bytes)} ({GREEN}{session.percent}%{RESET})"
            )
        elif session.state == UploadState.RELAYING:
            self.stream.write(f"\rUpload complete. Sending {self.display_name} to cloud storage...")
        else:
            self._finished = True
            self.stream.write('\n')
        self.stream.flush()


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"
