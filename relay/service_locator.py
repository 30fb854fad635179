"""Service locator for relay components."""

from pathlib import Path
from typing import Optional

from relay import config
from relay.locks import DestinationLocks
from relay.services.blob_relay import BlobRelay
from relay.services.chunk_writer import ChunkWriter
from relay.services.file_catalog import FileCatalog
from relay.staging import StagingArea

_staging: Optional[StagingArea] = None
_locks: Optional[DestinationLocks] = None
_chunk_writer: Optional[ChunkWriter] = None
_blob_relay: Optional[BlobRelay] = None
_file_catalog: Optional[FileCatalog] = None


def get_staging() -> StagingArea:
    """Get global staging area, creating it from config on first use"""
    global _staging
    if _staging is None:
        _staging = StagingArea(Path(config.STAGING_DIR))
    return _staging


def get_locks() -> DestinationLocks:
    """Get global destination lock registry"""
    global _locks
    if _locks is None:
        _locks = DestinationLocks(lease_ttl=config.LEASE_TTL_SECONDS)
    return _locks


def get_chunk_writer() -> ChunkWriter:
    """Get global chunk writer instance"""
    global _chunk_writer
    if _chunk_writer is None:
        _chunk_writer = ChunkWriter(get_staging(), get_locks())
    return _chunk_writer


def set_blob_relay(relay: BlobRelay):
    """Set global blob relay instance"""
    global _blob_relay, _file_catalog
    _blob_relay = relay
    _file_catalog = None


def get_blob_relay() -> BlobRelay:
    """Get global blob relay instance"""
    global _blob_relay
    if _blob_relay is None:
        _blob_relay = BlobRelay(
            connection_string=config.STORAGE_CONNECTION_STRING,
            base_url=config.STORAGE_BASE_URL,
            max_transfer_size=config.MAX_TRANSFER_SIZE,
        )
    return _blob_relay


def get_file_catalog() -> FileCatalog:
    """Get global file catalog instance"""
    global _file_catalog
    if _file_catalog is None:
        _file_catalog = FileCatalog(get_staging(), get_blob_relay())
    return _file_catalog


def configure(staging_dir: Path, blob_relay: Optional[BlobRelay] = None, lease_ttl: Optional[float] = None):
    """Replace all components, e.g. to point the relay at another staging directory"""
    global _staging, _locks, _chunk_writer, _blob_relay, _file_catalog
    _staging = StagingArea(Path(staging_dir))
    _locks = DestinationLocks(lease_ttl=lease_ttl if lease_ttl is not None else config.LEASE_TTL_SECONDS)
    _chunk_writer = None
    _blob_relay = blob_relay
    _file_catalog = None


def reset():
    """Drop all component instances"""
    global _staging, _locks, _chunk_writer, _blob_relay, _file_catalog
    _staging = None
    _locks = None
    _chunk_writer = None
    _blob_relay = None
    _file_catalog = None
