"""Copies staged files to Azure Blob Storage and back."""

import logging
import os
import uuid
from pathlib import Path
from typing import List, Optional

from azure.core.exceptions import (
    AzureError,
    HttpResponseError,
    ResourceExistsError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.storage.blob.aio import BlobServiceClient

from common.constants import PARTIAL_SUFFIX
from relay.exceptions import (
    BlobAlreadyExistsError,
    BlobNotFoundError,
    BlobStorageError,
    ContainerNotFoundError,
    RelayException,
    StagedFileNotFoundError,
    StorageNotConfiguredError,
    StorageUnavailableError,
)

logger = logging.getLogger(__name__)


class BlobRelay:
    """
    Thin wrapper over the async Azure blob client.

    Every failure surfaces as a typed RelayException; nothing is converted
    to an empty result.
    """

    def __init__(
        self,
        connection_string: str = "",
        base_url: str = "",
        max_transfer_size: int = 50 * 1024 * 1024,
        service_client: Optional[BlobServiceClient] = None,
    ):
        """
        Initialize blob relay.

        Args:
            connection_string: Azure storage connection string
            base_url: Public base URL used to build returned blob URLs
            max_transfer_size: Largest single put / block size in bytes
            service_client: Pre-built service client (skips connection string)
        """
        self.connection_string = connection_string
        self.base_url = base_url
        self.max_transfer_size = max_transfer_size
        self._service = service_client

    def _get_service(self) -> BlobServiceClient:
        if self._service is None:
            if not self.connection_string:
                raise StorageNotConfiguredError("Cloud storage connection string is not configured")
            try:
                self._service = BlobServiceClient.from_connection_string(
                    self.connection_string,
                    max_single_put_size=self.max_transfer_size,
                    max_block_size=self.max_transfer_size,
                )
            except ValueError as e:
                raise StorageNotConfiguredError(f"Invalid storage connection string: {e}")
        return self._service

    def blob_url(self, container_name: str, blob_name: str, fallback: str = "") -> str:
        """
        Build the public URL of a blob.

        Args:
            container_name: Container name
            blob_name: Blob name
            fallback: URL reported by the storage client

        Returns:
            ``base_url + container + "/" + blob`` when a base URL is configured
        """
        if self.base_url:
            return f"{self.base_url.rstrip('/')}/{container_name}/{blob_name}"
        return fallback

    async def copy(
        self,
        container_name: str,
        source_path: Path,
        dest_name: str,
        overwrite: bool = True,
    ) -> str:
        """
        Upload a local file into a container.

        Args:
            container_name: Target container
            source_path: Local file to upload
            dest_name: Blob name to create
            overwrite: Delete an existing blob of the same name first

        Returns:
            URL of the uploaded blob

        Raises:
            StagedFileNotFoundError: If the source file is missing
            BlobAlreadyExistsError: If the blob exists and overwrite is False
            ContainerNotFoundError, StorageUnavailableError, BlobStorageError
        """
        source_path = Path(source_path)
        if not source_path.is_file():
            raise StagedFileNotFoundError(f"Staged file not found: {source_path.name}")

        service = self._get_service()
        blob = service.get_container_client(container_name).get_blob_client(dest_name)

        if overwrite:
            try:
                await blob.delete_blob()
                logger.info(f"Deleted existing blob {container_name}/{dest_name}")
            except ResourceNotFoundError:
                pass
            except AzureError as e:
                logger.warning(f"Could not delete existing blob {container_name}/{dest_name}: {e}")

        logger.info(
            f"Uploading {source_path.name} to {container_name}/{dest_name} "
            f"({source_path.stat().st_size} bytes)"
        )
        try:
            with open(source_path, "rb") as data:
                await blob.upload_blob(data, overwrite=overwrite)
        except AzureError as e:
            raise _translate_azure_error(e, container_name, dest_name)

        url = self.blob_url(container_name, dest_name, fallback=blob.url)
        logger.info(f"Uploaded {container_name}/{dest_name} -> {url}")
        return url

    async def download(self, container_name: str, src_name: str, dest_path: Path) -> str:
        """
        Download a blob into a local file.

        Args:
            container_name: Source container
            src_name: Blob name
            dest_path: Local file to write

        Returns:
            "OK" on success

        Raises:
            BlobNotFoundError, ContainerNotFoundError, StorageUnavailableError, BlobStorageError
        """
        service = self._get_service()
        blob = service.get_container_client(container_name).get_blob_client(src_name)

        dest_path = Path(dest_path)
        partial_path = dest_path.with_name(f".{dest_path.name}.{uuid.uuid4().hex}{PARTIAL_SUFFIX}")
        try:
            downloader = await blob.download_blob()
            with open(partial_path, "wb") as f:
                await downloader.readinto(f)
            os.replace(partial_path, dest_path)
        except AzureError as e:
            raise _translate_azure_error(e, container_name, src_name)
        finally:
            partial_path.unlink(missing_ok=True)

        logger.info(f"Downloaded {container_name}/{src_name} to {dest_path}")
        return "OK"

    async def list(self, container_name: str) -> List[str]:
        """
        List URLs of all blobs in a container.

        Args:
            container_name: Container to enumerate

        Returns:
            List of blob URLs (empty when the container is empty)

        Raises:
            ContainerNotFoundError, StorageUnavailableError, BlobStorageError
        """
        service = self._get_service()
        container = service.get_container_client(container_name)

        urls = []
        try:
            async for item in container.list_blobs():
                urls.append(f"{container.url}/{item.name}")
        except AzureError as e:
            raise _translate_azure_error(e, container_name)

        logger.debug(f"Listed {len(urls)} blobs in {container_name}")
        return urls

    async def close(self) -> None:
        """Close the underlying storage client."""
        if self._service is not None:
            await self._service.close()
            self._service = None


def _translate_azure_error(
    error: AzureError,
    container_name: str,
    blob_name: Optional[str] = None,
) -> RelayException:
    target = f"{container_name}/{blob_name}" if blob_name else container_name
    error_code = getattr(error, "error_code", None)

    if isinstance(error, ResourceExistsError):
        return BlobAlreadyExistsError(f"Blob already exists: {target}")
    if isinstance(error, ResourceNotFoundError):
        if error_code == "ContainerNotFound" or blob_name is None:
            return ContainerNotFoundError(f"Container not found: {container_name}")
        return BlobNotFoundError(f"Blob not found: {target}")
    if isinstance(error, (ServiceRequestError, ServiceResponseError)):
        logger.warning(f"Storage service unreachable for {target}: {error}")
        return StorageUnavailableError(f"Cloud storage unreachable: {error}")
    if isinstance(error, HttpResponseError) and (error.status_code or 0) >= 500:
        logger.warning(f"Storage service error for {target}: {error}")
        return StorageUnavailableError(f"Cloud storage service error: {error.status_code}")

    logger.error(f"Storage request failed for {target}: {error}")
    return BlobStorageError(f"Cloud storage request failed for {target}", error_code=error_code)
