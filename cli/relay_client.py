"""Async HTTP client for communicating with the relay service."""

import asyncio
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import httpx

from common.constants import FORM_FILE_FIELD
from common.logging_config import get_logger
from common.types import FileChunk
from cli.config import Config

logger = get_logger(__name__)


class RelayClientError(Exception):
    """
    Error reported by the relay (or by the transport on the way there).

    Attributes:
        code: Error code from the relay (e.g. OFFSET_MISMATCH)
        detail: Human readable detail
        status_code: HTTP status, or None for transport failures
        retryable: Whether repeating the same request may succeed
        extra: Remaining fields of the error body (e.g. expected_offset)
    """

    def __init__(
        self,
        code: str,
        detail: str,
        status_code: Optional[int] = None,
        retryable: bool = False,
        extra: Optional[dict] = None,
    ):
        self.code = code
        self.detail = detail
        self.status_code = status_code
        self.retryable = retryable
        self.extra = extra or {}
        super().__init__(f"{code}: {detail}")


class RelayConnectionError(RelayClientError):
    """Raised when the relay cannot be reached or the request timed out."""

    def __init__(self, detail: str):
        super().__init__("CONNECTION_ERROR", detail, retryable=True)


class RelayClient:
    """HTTP client for the relay API with retry logic and typed errors."""

    def __init__(self, config: Config, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize relay client.

        Args:
            config: Configuration instance
            transport: Optional transport override (used by tests)
        """
        self.config = config
        self.session = httpx.AsyncClient(
            base_url=config.get_base_url(),
            timeout=config.get_timeout(),
            transport=transport,
        )
        self.request_id = None
        logger.info(f"Initialized RelayClient [base_url={config.get_base_url()}]")

    async def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on retryable 5xx errors and network failures.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            max_retries: Max retry attempts (uses config default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            RelayConnectionError: If max retries exceeded on network failures
        """
        retry_config = self.config.get_retry_config()
        max_retries = max_retries if max_retries is not None else retry_config['max_retries']
        base_delay = retry_config['retry_base_delay']
        backoff = retry_config['retry_backoff_multiplier']

        last_exception = None

        self.request_id = str(uuid.uuid4())
        kwargs.setdefault('headers', {})
        kwargs['headers']['X-Request-ID'] = self.request_id

        logger.debug(f"Making request: {method} {endpoint} [request_id={self.request_id}]")

        for attempt in range(max_retries + 1):
            delay = base_delay * backoff ** attempt
            try:
                response = await self.session.request(method, endpoint, **kwargs)

                logger.debug(
                    f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                )

                if 400 <= response.status_code < 500:
                    logger.warning(
                        f"Client error: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                    )
                    return response

                if _is_retryable_response(response) and attempt < max_retries:
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    await asyncio.sleep(delay)
                    continue

                return response

            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_exception = e
                if attempt < max_retries:
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error(
                    f"Network error (max retries exceeded): {method} {endpoint} error={e} [request_id={self.request_id}]"
                )

        if isinstance(last_exception, httpx.TimeoutException):
            raise RelayConnectionError("Request timed out. Relay may be overloaded.")
        raise RelayConnectionError("Cannot connect to relay server. Is it running?")

    def _raise_for_error(self, response: httpx.Response) -> None:
        """
        Convert an error response into RelayClientError.

        Args:
            response: HTTP response object

        Raises:
            RelayClientError: If the response status is 4xx or 5xx
        """
        if response.status_code < 400:
            return

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            body = {'detail': response.text or response.reason_phrase}

        detail = body.pop('detail', 'Unknown error')
        if not isinstance(detail, str):
            detail = str(detail)
        code = body.pop('code', 'HTTP_%d' % response.status_code)
        retryable = body.pop('retryable', response.status_code >= 500)

        raise RelayClientError(
            code=code,
            detail=detail,
            status_code=response.status_code,
            retryable=bool(retryable),
            extra=body,
        )

    async def list_staged_files(self) -> list[str]:
        """
        List files sitting in the relay's staging directory.

        Returns:
            Relative URLs (files/<name>)
        """
        response = await self._request_with_retry('GET', '/files')
        self._raise_for_error(response)
        return response.json()

    async def list_blobs(self, container_name: str) -> list[str]:
        """
        List blob URLs in a cloud container.

        Args:
            container_name: Container to list

        Returns:
            Blob URLs (empty list for an empty container)
        """
        response = await self._request_with_retry('GET', f'/files/{_segment(container_name)}/blobs')
        self._raise_for_error(response)
        return response.json()

    async def upload_chunk(self, chunk: FileChunk, max_retries: Optional[int] = 0) -> dict:
        """
        Send one chunk to the relay.

        Args:
            chunk: Chunk to send
            max_retries: Transport-level retries (callers usually retry themselves)

        Returns:
            Acknowledgement body (fileName, offset, bytesWritten, size)
        """
        response = await self._request_with_retry(
            'POST',
            '/files',
            max_retries=max_retries,
            json=chunk.to_payload()
        )
        self._raise_for_error(response)
        return response.json()

    async def delete_staged_file(self, file_name: str) -> bool:
        """
        Delete a staged file on the relay.

        Args:
            file_name: Staged file name

        Returns:
            True once the file is gone
        """
        response = await self._request_with_retry('GET', f'/files/{_segment(file_name)}/delete')
        self._raise_for_error(response)
        return bool(response.json())

    async def copy_to_container(self, file_name: str, container_name: str) -> str:
        """
        Ask the relay to copy a staged file into a cloud container.

        Args:
            file_name: Staged file name
            container_name: Target container

        Returns:
            Public URL of the blob
        """
        response = await self._request_with_retry(
            'GET', f'/files/{_segment(file_name)}/{_segment(container_name)}/copy'
        )
        self._raise_for_error(response)
        return response.json()['url']

    async def stage_blob(self, container_name: str, blob_name: str) -> str:
        """
        Ask the relay to pull a blob into its staging directory.

        Args:
            container_name: Source container
            blob_name: Blob to download

        Returns:
            Name of the staged file
        """
        response = await self._request_with_retry(
            'GET', f'/files/{_segment(container_name)}/blobs/{_segment(blob_name)}/stage'
        )
        self._raise_for_error(response)
        return response.json()['fileName']

    async def upload_whole_file(self, file_path: Path) -> None:
        """
        Upload a file in a single multipart request.

        Args:
            file_path: Local file to send
        """
        file_path = Path(file_path)
        with open(file_path, 'rb') as f:
            response = await self._request_with_retry(
                'POST',
                '/uploadFile',
                max_retries=0,
                files={FORM_FILE_FIELD: (file_path.name, f, 'application/octet-stream')}
            )
        self._raise_for_error(response)

    async def download_staged_file(self, file_name: str, output_path: Path) -> int:
        """
        Download a staged file from the relay.

        Args:
            file_name: Staged file name
            output_path: Local destination file

        Returns:
            Number of bytes written
        """
        written = 0
        try:
            async with self.session.stream('GET', f'/files/{_segment(file_name)}') as response:
                if response.status_code >= 400:
                    await response.aread()
                    self._raise_for_error(response)

                output_path.parent.mkdir(parents=True, exist_ok=True)
                with open(output_path, 'wb') as f:
                    async for piece in response.aiter_bytes(chunk_size=64 * 1024):
                        f.write(piece)
                        written += len(piece)
        except httpx.ConnectError:
            raise RelayConnectionError("Cannot connect to relay server. Is it running?")
        except httpx.TimeoutException:
            raise RelayConnectionError("Request timed out. Relay may be overloaded.")

        return written

    async def close(self) -> None:
        """Close the HTTP session."""
        await self.session.aclose()


def _segment(name: str) -> str:
    """Percent-encode a name for use as a single URL path segment."""
    return quote(name, safe='')


def _is_retryable_response(response: httpx.Response) -> bool:
    if response.status_code < 500:
        return False
    try:
        body = response.json()
    except ValueError:
        return True
    if isinstance(body, dict):
        return bool(body.get('retryable', True))
    return True


ERROR_MESSAGES = {
    'CONNECTION_ERROR': 'Cannot reach the relay server.',
    'INVALID_FILE_NAME': 'Invalid file name.',
    'INVALID_UPLOAD': 'The relay rejected the upload request.',
    'INVALID_CHUNK': 'The relay rejected a malformed chunk.',
    'OFFSET_MISMATCH': 'Relay and client disagree on upload progress.',
    'DESTINATION_BUSY': 'Another upload is writing to the same file. Try again later.',
    'FILE_NOT_FOUND': 'File not found on relay.',
    'STAGING_IO_ERROR': 'Relay could not access its staging directory.',
    'STORAGE_FULL': 'Relay staging storage is full.',
    'STORAGE_NOT_CONFIGURED': 'Cloud storage is not configured on the relay.',
    'CONTAINER_NOT_FOUND': 'Cloud container not found.',
    'BLOB_NOT_FOUND': 'Blob not found in cloud container.',
    'BLOB_ALREADY_EXISTS': 'A blob with that name already exists.',
    'STORAGE_UNAVAILABLE': 'Cloud storage is currently unavailable. Please try again later.',
    'BLOB_STORAGE_ERROR': 'Cloud storage rejected the request.',
}


def format_error(error: RelayClientError) -> str:
    """
    Map relay errors to user-friendly messages.

    Args:
        error: Error raised by RelayClient

    Returns:
        User-friendly error message
    """
    message = ERROR_MESSAGES.get(error.code)
    if message is None:
        return f"{error.detail} (Code: {error.code})"
    if error.detail and error.code != 'CONNECTION_ERROR':
        return f"{message} {error.detail}"
    return message
