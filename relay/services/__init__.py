"""Service layer for chunk reassembly and cloud relay."""

from relay.services.blob_relay import BlobRelay
from relay.services.chunk_writer import ChunkWriter
from relay.services.file_catalog import FileCatalog

__all__ = [
    "BlobRelay",
    "ChunkWriter",
    "FileCatalog",
]
