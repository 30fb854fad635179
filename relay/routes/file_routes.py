"""File operation API routes."""

from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from relay.exceptions import StagedFileNotFoundError
from relay.schemas.common import ErrorResponse
from relay.schemas.files import (
    ChunkWriteResponse,
    CopyToContainerResponse,
    FileChunkRequest,
    StageBlobResponse,
)
from relay.service_locator import (
    get_blob_relay,
    get_chunk_writer,
    get_file_catalog,
    get_staging,
)
from relay.services.blob_relay import BlobRelay
from relay.services.chunk_writer import ChunkWriter
from relay.services.file_catalog import FileCatalog
from relay.staging import StagingArea

router = APIRouter(prefix="/files", tags=["Files"])


@router.get("", response_model=List[str])
async def list_staged_files(catalog: FileCatalog = Depends(get_file_catalog)):
    """
    List files currently sitting in the staging directory.

    Returns:
        - Relative URLs of the form ``files/<name>``
    """
    return await catalog.list_staged()


@router.post(
    "",
    response_model=ChunkWriteResponse,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        507: {"model": ErrorResponse},
    },
)
async def upload_file_chunk(
    request: FileChunkRequest,
    writer: ChunkWriter = Depends(get_chunk_writer),
):
    """
    Write one chunk of a file into the staging directory.

    Parameters:
        - fileNameNoPath: Destination file name (no directories)
        - offset: Byte offset of this chunk; must equal the bytes already staged
        - data: Chunk bytes, base64 encoded
        - firstChunk: True for the chunk at offset 0; replaces any existing file
        - sessionId: Optional upload session id owning the destination

    Returns:
        - success, fileName, offset, bytesWritten, size

    Raises:
        - 400: Invalid file name
        - 409: Offset mismatch (body carries expected_offset) or destination busy
        - 500: I/O error
        - 507: Staging volume full
    """
    result = await writer.write(request.to_chunk())
    return ChunkWriteResponse(
        file_name=result.file_name,
        offset=result.offset,
        bytes_written=result.bytes_written,
        size=result.size,
    )


@router.get("/{container_name}/blobs", response_model=List[str])
async def list_blob_files(
    container_name: str,
    catalog: FileCatalog = Depends(get_file_catalog),
):
    """
    List URLs of all blobs in a cloud container.

    Raises:
        - 404: Container not found
        - 502: Storage rejected the request
        - 503: Storage unavailable or not configured
    """
    return await catalog.list_blobs(container_name)


@router.get("/{file_name}/delete", response_model=bool)
async def delete_staged_file(
    file_name: str,
    writer: ChunkWriter = Depends(get_chunk_writer),
):
    """
    Delete a staged file. A file that is not there counts as deleted.

    Raises:
        - 400: Invalid file name
        - 500: I/O error
    """
    return await writer.delete(file_name)


@router.get(
    "/{file_name}/{container_name}/copy",
    response_model=CopyToContainerResponse,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def copy_to_container(
    file_name: str,
    container_name: str,
    staging: StagingArea = Depends(get_staging),
    blob_relay: BlobRelay = Depends(get_blob_relay),
):
    """
    Copy a staged file into a cloud container, replacing any blob of the same name.

    Returns:
        - url: Public URL of the blob

    Raises:
        - 400: Invalid file name
        - 404: Staged file or container not found
        - 502: Storage rejected the request
        - 503: Storage unavailable or not configured
    """
    path = staging.resolve(file_name)
    if not path.is_file():
        raise StagedFileNotFoundError(f"Staged file not found: {file_name}")

    url = await blob_relay.copy(container_name, path, file_name, overwrite=True)
    return CopyToContainerResponse(url=url)


@router.get("/{container_name}/blobs/{blob_name}/stage", response_model=StageBlobResponse)
async def stage_blob(
    container_name: str,
    blob_name: str,
    writer: ChunkWriter = Depends(get_chunk_writer),
    blob_relay: BlobRelay = Depends(get_blob_relay),
):
    """
    Download a blob from a cloud container into the staging directory.

    Raises:
        - 400: Blob name is not a valid staged file name
        - 404: Container or blob not found
        - 409: An upload session is still writing the staged file
        - 503: Storage unavailable or not configured
    """
    status = await writer.stage_blob(blob_relay, container_name, blob_name)
    return StageBlobResponse(file_name=blob_name, status=status)


@router.get("/{file_name}")
async def download_staged_file(
    file_name: str,
    staging: StagingArea = Depends(get_staging),
):
    """
    Stream a staged file.

    Raises:
        - 400: Invalid file name
        - 404: Staged file not found
    """
    size = staging.get_size(file_name)
    if size is None:
        raise StagedFileNotFoundError(f"Staged file not found: {file_name}")

    return StreamingResponse(
        staging.read_streaming(file_name),
        media_type="application/octet-stream",
        headers={
            "Content-Disposition": f'attachment; filename="{file_name}"',
            "Content-Length": str(size),
        }
    )
