"""Tests for the sequential chunk uploader."""

import hashlib
import os
from pathlib import Path

import pytest

from cli.chunk_uploader import (
    ChunkUploader,
    UploadAbortedError,
    UploadState,
    make_destination_name,
)
from cli.relay_client import RelayClientError, RelayConnectionError


class RecordingRelay:
    """
    In-memory stand-in for RelayClient that reassembles chunks like the relay.

    ``failures`` is a list of errors raised by successive upload_chunk calls
    before they start succeeding. Chunks at ``lose_ack_offsets`` are stored
    but answered with a connection error, once each.
    """

    def __init__(self, failures=None, copy_error=None, lose_ack_offsets=()):
        self.files = {}
        self.chunks = []
        self.attempts = 0
        self.failures = list(failures or [])
        self.copy_error = copy_error
        self.lose_ack_offsets = set(lose_ack_offsets)
        self.copied = []
        self.deleted = []

    async def upload_chunk(self, chunk, max_retries=0):
        self.attempts += 1
        if self.failures:
            raise self.failures.pop(0)

        current = self.files.get(chunk.file_name_no_path, b'')
        expected = 0 if chunk.first_chunk else len(current)
        if chunk.offset != expected:
            raise RelayClientError(
                'OFFSET_MISMATCH', 'mismatch', status_code=409,
                extra={'expected_offset': expected},
            )

        self.chunks.append(chunk)
        base = b'' if chunk.first_chunk else current
        self.files[chunk.file_name_no_path] = base + chunk.data

        if chunk.offset in self.lose_ack_offsets:
            self.lose_ack_offsets.discard(chunk.offset)
            raise RelayConnectionError('response lost')
        return {'size': len(self.files[chunk.file_name_no_path])}

    async def copy_to_container(self, file_name, container_name):
        if self.copy_error is not None:
            raise self.copy_error
        self.copied.append((file_name, container_name))
        return f'https://cdn.example.com/{container_name}/{file_name}'

    async def delete_staged_file(self, file_name):
        self.deleted.append(file_name)
        self.files.pop(file_name, None)
        return True


def make_uploader(client, **kwargs):
    kwargs.setdefault('retry_base_delay', 0)
    kwargs.setdefault('clock', lambda: 638000000000000000)
    return ChunkUploader(client, **kwargs)


@pytest.fixture
def make_file(tmp_path):
    def _make(size, name='payload.bin'):
        path = tmp_path / name
        path.write_bytes(os.urandom(size))
        return path
    return _make


def test_make_destination_name():
    assert make_destination_name(Path('/tmp/report.pdf'), 123) == 'report-123.pdf'
    assert make_destination_name(Path('README'), 7) == 'README-7'


def test_invalid_arguments():
    with pytest.raises(ValueError):
        ChunkUploader(RecordingRelay(), chunk_size=0)
    with pytest.raises(ValueError):
        ChunkUploader(RecordingRelay(), max_consecutive_failures=0)


@pytest.mark.asyncio
async def test_chunk_sizes_cover_file_exactly(make_file):
    """1,000,000 bytes at 400,000 per chunk is 400k, 400k, 200k."""
    path = make_file(1_000_000)
    relay = RecordingRelay()

    session = await make_uploader(relay, chunk_size=400_000).upload_large_file(path)

    assert session.chunk_sizes == [400_000, 400_000, 200_000]
    assert [c.offset for c in relay.chunks] == [0, 400_000, 800_000]
    assert [c.first_chunk for c in relay.chunks] == [True, False, False]
    stored = relay.files[session.destination_name]
    assert hashlib.sha256(stored).digest() == hashlib.sha256(path.read_bytes()).digest()
    assert session.state == UploadState.COMPLETED


@pytest.mark.asyncio
async def test_exact_multiple_sends_no_extra_chunk(make_file):
    path = make_file(800_000)
    relay = RecordingRelay()

    session = await make_uploader(relay, chunk_size=400_000).upload_large_file(path)

    assert session.chunk_sizes == [400_000, 400_000]
    assert session.uploaded_bytes == 800_000


@pytest.mark.asyncio
async def test_small_file_single_first_chunk(make_file):
    path = make_file(10)
    relay = RecordingRelay()

    session = await make_uploader(relay, chunk_size=400_000).upload_large_file(path)

    assert len(relay.chunks) == 1
    assert relay.chunks[0].first_chunk is True
    assert relay.chunks[0].data == path.read_bytes()
    assert session.percent == 100


@pytest.mark.asyncio
async def test_empty_file_sends_one_empty_chunk(make_file):
    path = make_file(0)
    relay = RecordingRelay()

    session = await make_uploader(relay).upload_large_file(path)

    assert session.chunk_sizes == [0]
    assert relay.chunks[0].first_chunk is True
    assert relay.files[session.destination_name] == b''
    assert session.is_complete


@pytest.mark.asyncio
async def test_chunks_carry_session_and_destination(make_file):
    path = make_file(25, name='photo.jpg')
    relay = RecordingRelay()

    session = await make_uploader(relay, chunk_size=10).upload_large_file(path)

    assert session.destination_name == 'photo-638000000000000000.jpg'
    assert {c.file_name_no_path for c in relay.chunks} == {session.destination_name}
    assert {c.session_id for c in relay.chunks} == {session.session_id}


@pytest.mark.asyncio
async def test_progress_reported_after_each_chunk(make_file):
    path = make_file(25)
    seen = []

    uploader = make_uploader(
        RecordingRelay(),
        chunk_size=10,
        progress_callback=lambda s: seen.append((s.state, s.uploaded_bytes)),
    )
    await uploader.upload_large_file(path)

    uploading = [b for state, b in seen if state == UploadState.UPLOADING]
    assert uploading == [10, 20, 25]
    assert seen[-1][0] == UploadState.COMPLETED


@pytest.mark.asyncio
async def test_transient_failures_are_retried(make_file):
    path = make_file(25)
    relay = RecordingRelay(failures=[
        RelayConnectionError('refused'),
        RelayClientError('STORAGE_UNAVAILABLE', 'busy', status_code=503, retryable=True),
    ])

    session = await make_uploader(relay, chunk_size=10).upload_large_file(path)

    assert relay.attempts == 5
    assert relay.files[session.destination_name] == path.read_bytes()


@pytest.mark.asyncio
async def test_abort_after_consecutive_failures(make_file):
    path = make_file(25)
    relay = RecordingRelay(failures=[RelayConnectionError('refused')] * 10)

    with pytest.raises(UploadAbortedError) as exc_info:
        await make_uploader(relay, chunk_size=10, max_consecutive_failures=3).upload_large_file(path)

    assert relay.attempts == 3
    session = exc_info.value.session
    assert session.state == UploadState.FAILED
    assert session.uploaded_bytes == 0
    assert exc_info.value.cause.code == 'CONNECTION_ERROR'


@pytest.mark.asyncio
async def test_non_retryable_error_aborts_immediately(make_file):
    path = make_file(25)
    relay = RecordingRelay(failures=[
        RelayClientError('STORAGE_FULL', 'no space', status_code=507, retryable=False),
    ])

    with pytest.raises(UploadAbortedError) as exc_info:
        await make_uploader(relay, chunk_size=10).upload_large_file(path)

    assert relay.attempts == 1
    assert exc_info.value.cause.code == 'STORAGE_FULL'


@pytest.mark.asyncio
async def test_lost_acknowledgement_does_not_duplicate(make_file):
    """A chunk written but not acknowledged is recognised on retry."""
    path = make_file(25)
    relay = RecordingRelay(lose_ack_offsets=[10])

    session = await make_uploader(relay, chunk_size=10).upload_large_file(path)

    assert relay.attempts == 4
    assert relay.files[session.destination_name] == path.read_bytes()
    assert session.chunk_sizes == [10, 10, 5]


@pytest.mark.asyncio
async def test_relay_copies_then_deletes_staged_file(make_file):
    path = make_file(25)
    relay = RecordingRelay()

    session = await make_uploader(relay, chunk_size=10).upload_large_file(path, container_name='uploads')

    assert relay.copied == [(session.destination_name, 'uploads')]
    assert relay.deleted == [session.destination_name]
    assert session.url == f'https://cdn.example.com/uploads/{session.destination_name}'
    assert session.state == UploadState.COMPLETED


@pytest.mark.asyncio
async def test_copy_failure_aborts_and_keeps_staged_file(make_file):
    path = make_file(25)
    relay = RecordingRelay(copy_error=RelayClientError(
        'CONTAINER_NOT_FOUND', 'Container not found: nowhere', status_code=404,
    ))

    with pytest.raises(UploadAbortedError) as exc_info:
        await make_uploader(relay, chunk_size=10).upload_large_file(path, container_name='nowhere')

    assert relay.deleted == []
    assert exc_info.value.session.state == UploadState.FAILED
    assert exc_info.value.session.uploaded_bytes == 25


@pytest.mark.asyncio
async def test_end_to_end_through_relay_app(make_file, asgi_relay_client, staging, fake_blob_service):
    """Full path: chunks over HTTP, reassembled, copied to storage, staging cleaned."""
    path = make_file(1_000_000)

    session = await make_uploader(asgi_relay_client, chunk_size=400_000).upload_large_file(
        path, container_name='uploads'
    )

    blob = fake_blob_service.containers['uploads'].blobs[session.destination_name]
    assert hashlib.sha256(blob).hexdigest() == hashlib.sha256(path.read_bytes()).hexdigest()
    assert session.url == f'https://cdn.example.com/uploads/{session.destination_name}'
    assert staging.list_files() == []


@pytest.mark.asyncio
async def test_end_to_end_reupload_replaces_staged_file(tmp_path, asgi_relay_client, staging):
    """Uploading a shorter file under the same name leaves no stale tail."""
    path = tmp_path / 'data.bin'
    uploader = make_uploader(asgi_relay_client, chunk_size=100)

    path.write_bytes(b'a' * 350)
    first = await uploader.upload_large_file(path)
    path.write_bytes(b'b' * 120)
    second = uploader.create_session(path)
    second.session_id = first.session_id
    await uploader.upload_large_file(path, session=second)

    assert first.destination_name == second.destination_name
    assert (staging.root / second.destination_name).read_bytes() == b'b' * 120


@pytest.mark.asyncio
async def test_end_to_end_name_with_url_metacharacters(make_file, asgi_relay_client, staging, fake_blob_service):
    """A file named with '#', '?', '%' and spaces is relayed and cleaned up."""
    path = make_file(1000, name='Q#1 50%? report.bin')

    session = await make_uploader(asgi_relay_client, chunk_size=300).upload_large_file(
        path, container_name='uploads'
    )

    assert session.destination_name == 'Q#1 50%? report-638000000000000000.bin'
    assert session.state == UploadState.COMPLETED
    blob = fake_blob_service.containers['uploads'].blobs[session.destination_name]
    assert blob == path.read_bytes()
    assert staging.list_files() == []
