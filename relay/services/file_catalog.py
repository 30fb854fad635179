"""Lists staged files and cloud blobs."""

import asyncio
from typing import List

from common.constants import STAGED_URL_PREFIX
from relay.services.blob_relay import BlobRelay
from relay.staging import StagingArea


class FileCatalog:
    def __init__(self, staging: StagingArea, blob_relay: BlobRelay):
        self.staging = staging
        self.blob_relay = blob_relay

    async def list_staged(self) -> List[str]:
        """Relative URLs (``files/<name>``) of every staged file."""
        names = await asyncio.to_thread(self.staging.list_files)
        return [f"{STAGED_URL_PREFIX}/{name}" for name in names]

    async def list_blobs(self, container_name: str) -> List[str]:
        return await self.blob_relay.list(container_name)
