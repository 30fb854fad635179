"""Whole-file multipart upload route."""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from starlette.datastructures import UploadFile

from common.constants import FORM_FILE_FIELD
from relay.exceptions import InvalidUploadError
from relay.service_locator import get_chunk_writer
from relay.services.chunk_writer import ChunkWriter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Upload"])


@router.post("/uploadFile", status_code=status.HTTP_204_NO_CONTENT)
async def upload_file(
    request: Request,
    writer: ChunkWriter = Depends(get_chunk_writer),
):
    """
    Upload a whole file in one multipart request (field ``fileContent``).

    Returns:
        - 204 on success

    Raises:
        - 400: Not a form request, missing or empty file, invalid file name
        - 409: An upload session is still writing a file of that name
    """
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        raise InvalidUploadError("Request must be a form upload")

    try:
        form = await request.form()
    except Exception as e:
        logger.warning(f"Could not parse upload form: {e}")
        raise InvalidUploadError("Malformed form body")

    upload = form.get(FORM_FILE_FIELD)
    if not isinstance(upload, UploadFile) or not upload.filename:
        raise InvalidUploadError(f"Form field '{FORM_FILE_FIELD}' with a file is required")

    try:
        if not await upload.read(1):
            raise InvalidUploadError("Uploaded file is empty")
        await upload.seek(0)
        await writer.write_whole_file(upload.filename, upload.file)
    finally:
        await upload.close()

    return Response(status_code=status.HTTP_204_NO_CONTENT)
