"""Command handler functions for CLI operations."""

from pathlib import Path
from typing import Optional

from common.logging_config import get_logger
from cli.chunk_uploader import ChunkUploader, UploadAbortedError
from cli.config import Config
from cli.models import (
    BlobsCommand,
    CopyCommand,
    DeleteCommand,
    FetchCommand,
    ListCommand,
    SendCommand,
    StageCommand,
    UploadCommand,
)
from cli.relay_client import RelayClient, RelayClientError, format_error
from cli.utils import ProgressPrinter, format_file_size

logger = get_logger(__name__)


_config: Optional[Config] = None
_client: Optional[RelayClient] = None


def get_config() -> Config:
    """
    Get or create global Config instance.

    Returns:
        Config loaded from ~/.chunkrelay/config.json
    """
    global _config
    if _config is None:
        _config = Config(Path.home() / '.chunkrelay' / 'config.json')
    return _config


def get_client() -> RelayClient:
    """
    Get or create global RelayClient instance.

    Returns:
        RelayClient instance
    """
    global _client
    if _client is None:
        logger.debug("Creating new RelayClient instance")
        _client = RelayClient(get_config())
    return _client


async def close_client() -> None:
    """Close the global RelayClient, if one was created."""
    global _client
    if _client is not None:
        await _client.close()
        _client = None


def _container_or_default(container: Optional[str], config: Config) -> str:
    return container or config.get_upload_config()['default_container']


async def handle_upload(
    cmd: UploadCommand,
    client: Optional[RelayClient] = None,
    config: Optional[Config] = None,
) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with path, container and relay flag
        client: Optional RelayClient for dependency injection (testing)
        config: Optional Config for dependency injection (testing)

    Returns:
        Success or error message
    """
    config = config or get_config()
    client = client or get_client()
    upload_config = config.get_upload_config()
    retry_config = config.get_retry_config()

    path = Path(cmd.path).expanduser()
    if not path.is_file():
        return f"Error: File not found: {cmd.path}"

    container = None
    if cmd.relay and (cmd.container or upload_config['relay_to_container']):
        container = _container_or_default(cmd.container, config)

    logger.info(f"Executing upload command: path={path} container={container}")
    uploader = ChunkUploader(
        client,
        chunk_size=upload_config['chunk_size'],
        max_consecutive_failures=upload_config['max_consecutive_failures'],
        retry_base_delay=retry_config['retry_base_delay'],
        retry_backoff_multiplier=retry_config['retry_backoff_multiplier'],
        progress_callback=ProgressPrinter(path.name),
    )

    try:
        session = await uploader.upload_large_file(path, container_name=container)
    except UploadAbortedError as e:
        if e.cause is not None:
            return f"Upload failed: {format_error(e.cause)}"
        return f"Upload failed: {e}"

    lines = [
        f"Uploaded: {path.name} as {session.destination_name} "
        f"({format_file_size(session.uploaded_bytes)} in {session.chunks_sent} chunk(s))"
    ]
    if session.url:
        lines.append(f"Cloud URL: {session.url}")
    return '\n'.join(lines)


async def handle_send(cmd: SendCommand, client: Optional[RelayClient] = None) -> str:
    """
    Handle 'send' command.

    Args:
        cmd: SendCommand with path
        client: Optional RelayClient for dependency injection (testing)

    Returns:
        Success or error message
    """
    client = client or get_client()
    path = Path(cmd.path).expanduser()
    if not path.is_file():
        return f"Error: File not found: {cmd.path}"
    if path.stat().st_size == 0:
        return f"Error: File is empty: {cmd.path}"

    try:
        await client.upload_whole_file(path)
    except RelayClientError as e:
        return f"Error: {format_error(e)}"
    return f"Sent: {path.name} ({format_file_size(path.stat().st_size)})"


async def handle_list(cmd: ListCommand, client: Optional[RelayClient] = None) -> str:
    """
    Handle 'list' command.

    Args:
        cmd: ListCommand
        client: Optional RelayClient for dependency injection (testing)

    Returns:
        Formatted list of staged files
    """
    client = client or get_client()
    try:
        files = await client.list_staged_files()
    except RelayClientError as e:
        return f"Error: {format_error(e)}"

    if not files:
        return "No staged files on relay."
    return '\n'.join([f"Found {len(files)} staged file(s):"] + [f"  - {f}" for f in files])


async def handle_blobs(
    cmd: BlobsCommand,
    client: Optional[RelayClient] = None,
    config: Optional[Config] = None,
) -> str:
    """
    Handle 'blobs' command.

    Args:
        cmd: BlobsCommand with optional container
        client: Optional RelayClient for dependency injection (testing)
        config: Optional Config for dependency injection (testing)

    Returns:
        Formatted list of blob URLs
    """
    client = client or get_client()
    container = _container_or_default(cmd.container, config or get_config())
    try:
        urls = await client.list_blobs(container)
    except RelayClientError as e:
        return f"Error: {format_error(e)}"

    if not urls:
        return f"Container '{container}' is empty."
    return '\n'.join([f"Found {len(urls)} blob(s) in '{container}':"] + [f"  - {u}" for u in urls])


async def handle_copy(
    cmd: CopyCommand,
    client: Optional[RelayClient] = None,
    config: Optional[Config] = None,
) -> str:
    """
    Handle 'copy' command.

    Args:
        cmd: CopyCommand with staged file name and optional container
        client: Optional RelayClient for dependency injection (testing)
        config: Optional Config for dependency injection (testing)

    Returns:
        Blob URL or error message
    """
    client = client or get_client()
    container = _container_or_default(cmd.container, config or get_config())
    try:
        url = await client.copy_to_container(cmd.file_name, container)
    except RelayClientError as e:
        return f"Error: {format_error(e)}"
    return f"Copied: {cmd.file_name} -> {url}"


async def handle_delete(cmd: DeleteCommand, client: Optional[RelayClient] = None) -> str:
    """
    Handle 'delete' command.

    Args:
        cmd: DeleteCommand with staged file name
        client: Optional RelayClient for dependency injection (testing)

    Returns:
        Success or error message
    """
    client = client or get_client()
    try:
        await client.delete_staged_file(cmd.file_name)
    except RelayClientError as e:
        return f"Error: {format_error(e)}"
    return f"Deleted: {cmd.file_name}"


async def handle_fetch(cmd: FetchCommand, client: Optional[RelayClient] = None) -> str:
    """
    Handle 'fetch' command.

    Args:
        cmd: FetchCommand with staged file name and optional output path
        client: Optional RelayClient for dependency injection (testing)

    Returns:
        Success or error message
    """
    client = client or get_client()
    output = Path(cmd.output_path).expanduser() if cmd.output_path else Path.cwd() / cmd.file_name
    if output.is_dir():
        output = output / cmd.file_name

    try:
        written = await client.download_staged_file(cmd.file_name, output)
    except RelayClientError as e:
        return f"Error: {format_error(e)}"
    except OSError as e:
        return f"Error writing file: {e}"
    return f"Downloaded: {cmd.file_name} ({format_file_size(written)})\nSaved to: {output.absolute()}"


async def handle_stage(
    cmd: StageCommand,
    client: Optional[RelayClient] = None,
    config: Optional[Config] = None,
) -> str:
    """
    Handle 'stage' command.

    Args:
        cmd: StageCommand with blob name and optional container
        client: Optional RelayClient for dependency injection (testing)
        config: Optional Config for dependency injection (testing)

    Returns:
        Success or error message
    """
    client = client or get_client()
    container = _container_or_default(cmd.container, config or get_config())
    try:
        file_name = await client.stage_blob(container, cmd.blob_name)
    except RelayClientError as e:
        return f"Error: {format_error(e)}"
    return f"Staged: {container}/{cmd.blob_name} as files/{file_name}"
