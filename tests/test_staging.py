"""Tests for the staging area."""

import errno

import pytest

from relay.exceptions import InvalidFileNameError, StagingIOError, StorageFullError
from relay.staging import StagingArea


@pytest.mark.parametrize('name', [
    '',
    ' padded.txt',
    '.',
    '..',
    '../escape.txt',
    'nested/file.txt',
    'nested\\file.txt',
    '/etc/passwd',
    'nul\x00byte',
])
def test_resolve_rejects_unsafe_names(staging, name):
    """Names that are not bare file names are rejected."""
    with pytest.raises(InvalidFileNameError) as exc_info:
        staging.resolve(name)
    assert exc_info.value.code == 'INVALID_FILE_NAME'
    assert exc_info.value.status_code == 400


def test_resolve_stays_inside_root(staging):
    """A bare name resolves directly under the staging root."""
    path = staging.resolve('report.pdf')
    assert path.parent == staging.root.resolve()
    assert path.name == 'report.pdf'


def test_get_size_missing_file(staging):
    """Missing files have no size and do not exist."""
    assert staging.get_size('missing.bin') is None
    assert not staging.exists('missing.bin')


def test_write_at_creates_directory_and_file(staging):
    """First write creates the staging root on demand."""
    assert not staging.root.exists()

    size = staging.write_at('a.bin', 0, b'hello')

    assert size == 5
    assert staging.root.is_dir()
    assert (staging.root / 'a.bin').read_bytes() == b'hello'


def test_write_at_appends_at_offset(staging):
    """Writing at the current end extends the file."""
    staging.write_at('a.bin', 0, b'hello')
    size = staging.write_at('a.bin', 5, b' world')

    assert size == 11
    assert (staging.root / 'a.bin').read_bytes() == b'hello world'


def test_write_at_truncate_replaces_existing(staging):
    """Truncating write discards the previous content entirely."""
    staging.write_at('a.bin', 0, b'a much longer previous upload')
    size = staging.write_at('a.bin', 0, b'new', truncate=True)

    assert size == 3
    assert (staging.root / 'a.bin').read_bytes() == b'new'


def test_write_stream_and_read_streaming(staging, tmp_path):
    """Whole-file writes can be read back in pieces."""
    source = tmp_path / 'source.bin'
    source.write_bytes(b'x' * 1000)

    with open(source, 'rb') as f:
        assert staging.write_stream('copy.bin', f) == 1000

    pieces = list(staging.read_streaming('copy.bin', piece_size=300))
    assert [len(p) for p in pieces] == [300, 300, 300, 100]
    assert b''.join(pieces) == b'x' * 1000


def test_delete(staging):
    """Delete reports whether a file was actually removed."""
    staging.write_at('a.bin', 0, b'data')

    assert staging.delete('a.bin') is True
    assert staging.delete('a.bin') is False
    assert not staging.exists('a.bin')


def test_list_files_sorted(staging):
    """Listing returns file names only, sorted."""
    assert staging.list_files() == []

    for name in ['b.txt', 'a.txt', 'c.txt']:
        staging.write_at(name, 0, b'1')
    (staging.root / 'subdir').mkdir()

    assert staging.list_files() == ['a.txt', 'b.txt', 'c.txt']


def test_list_files_hides_partial_downloads(staging):
    staging.write_at('photo.jpg', 0, b'1')
    (staging.root / '.photo.jpg.0f3a.part').write_bytes(b'half')
    staging.write_at('notes.part', 0, b'1')

    assert staging.list_files() == ['notes.part', 'photo.jpg']


def test_write_into_unusable_root_raises_io_error(tmp_path):
    """A staging root that is a regular file surfaces as STAGING_IO_ERROR."""
    blocker = tmp_path / 'not-a-dir'
    blocker.write_text('file in the way')
    staging = StagingArea(blocker)

    with pytest.raises(StagingIOError) as exc_info:
        staging.write_at('a.bin', 0, b'data')
    assert exc_info.value.retryable is True


def test_disk_full_maps_to_storage_full(staging, monkeypatch):
    """ENOSPC is reported as STORAGE_FULL, not a generic I/O error."""
    def full_disk(*args, **kwargs):
        raise OSError(errno.ENOSPC, 'No space left on device')

    monkeypatch.setattr('relay.staging.open', full_disk, raising=False)

    with pytest.raises(StorageFullError) as exc_info:
        staging.write_at('a.bin', 0, b'data')
    assert exc_info.value.status_code == 507
