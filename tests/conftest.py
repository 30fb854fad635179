"""Shared pytest fixtures for all tests."""

import pytest
import pytest_asyncio
import httpx
from types import SimpleNamespace

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from fastapi.testclient import TestClient

from cli.config import Config
from cli.relay_client import RelayClient
from relay import service_locator
from relay.locks import DestinationLocks
from relay.main import app
from relay.services.blob_relay import BlobRelay
from relay.services.chunk_writer import ChunkWriter
from relay.staging import StagingArea

FAKE_ACCOUNT_URL = "https://fakeaccount.blob.core.windows.net"
PUBLIC_BASE_URL = "https://cdn.example.com/"


class FakeDownloader:
    """
    Stands in for StorageStreamDownloader.

    With ``failure`` set, half the bytes are written before it is raised.
    """

    def __init__(self, data: bytes, failure=None):
        self._data = data
        self._failure = failure

    async def readinto(self, stream):
        if self._failure is not None:
            stream.write(self._data[:len(self._data) // 2])
            raise self._failure
        stream.write(self._data)
        return len(self._data)


class FakeBlobClient:
    def __init__(self, container: "FakeContainerClient", name: str):
        self.container = container
        self.name = name

    @property
    def url(self):
        return f"{self.container.url}/{self.name}"

    async def delete_blob(self):
        self.container.check()
        if self.name not in self.container.blobs:
            error = ResourceNotFoundError(f"Blob {self.name} not found")
            error.error_code = "BlobNotFound"
            raise error
        del self.container.blobs[self.name]

    async def upload_blob(self, data, overwrite=False):
        self.container.check()
        if self.name in self.container.blobs and not overwrite:
            error = ResourceExistsError(f"Blob {self.name} already exists")
            error.error_code = "BlobAlreadyExists"
            raise error
        self.container.blobs[self.name] = data.read()

    async def download_blob(self):
        self.container.check()
        if self.name not in self.container.blobs:
            error = ResourceNotFoundError(f"Blob {self.name} not found")
            error.error_code = "BlobNotFound"
            raise error
        return FakeDownloader(self.container.blobs[self.name], self.container.download_failure)


class FakeContainerClient:
    """
    In-memory container mimicking the async ContainerClient surface used by BlobRelay.

    Set ``failure`` to an AzureError to make every call raise it, or
    ``download_failure`` to break downloads partway through the stream.
    """

    def __init__(self, account_url: str, name: str, exists: bool = True):
        self.name = name
        self.url = f"{account_url}/{name}"
        self.exists = exists
        self.blobs = {}
        self.failure = None
        self.download_failure = None

    def check(self):
        if self.failure is not None:
            raise self.failure
        if not self.exists:
            error = ResourceNotFoundError(f"Container {self.name} not found")
            error.error_code = "ContainerNotFound"
            raise error

    def get_blob_client(self, blob: str) -> FakeBlobClient:
        return FakeBlobClient(self, blob)

    def list_blobs(self):
        return self._iter_blobs()

    async def _iter_blobs(self):
        self.check()
        for name in sorted(self.blobs):
            yield SimpleNamespace(name=name)


class FakeBlobServiceClient:
    def __init__(self, account_url: str = FAKE_ACCOUNT_URL):
        self.url = account_url
        self.containers = {}
        self.closed = False

    def add_container(self, name: str) -> FakeContainerClient:
        container = FakeContainerClient(self.url, name)
        self.containers[name] = container
        return container

    def get_container_client(self, name: str) -> FakeContainerClient:
        if name not in self.containers:
            self.containers[name] = FakeContainerClient(self.url, name, exists=False)
        return self.containers[name]

    async def close(self):
        self.closed = True


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .chunkrelay directory
    """
    config_dir = tmp_path / '.chunkrelay'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance with retry delays disabled.

    Args:
        temp_config_dir: Temporary config directory fixture

    Returns:
        Config instance with temp config file
    """
    config = Config(temp_config_dir / 'config.json')
    config.data['retry_base_delay'] = 0
    return config


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file for testing file uploads.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to sample text file
    """
    file_path = tmp_path / 'test.txt'
    file_path.write_text('Sample content for testing')
    return file_path


@pytest.fixture
def fake_blob_service():
    """Fake storage account with an empty 'uploads' container."""
    service = FakeBlobServiceClient()
    service.add_container('uploads')
    return service


@pytest.fixture
def blob_relay(fake_blob_service):
    """BlobRelay backed by the fake storage account."""
    return BlobRelay(base_url=PUBLIC_BASE_URL, service_client=fake_blob_service)


@pytest.fixture
def staging(tmp_path):
    """Staging area rooted in a temporary directory."""
    return StagingArea(tmp_path / 'Files')


@pytest.fixture
def chunk_writer(staging):
    """ChunkWriter over the temporary staging area."""
    return ChunkWriter(staging, DestinationLocks(lease_ttl=300))


@pytest.fixture
def relay_app(staging, blob_relay):
    """
    Relay application wired to the temporary staging area and fake storage.
    """
    service_locator.configure(staging.root, blob_relay=blob_relay)
    yield app
    service_locator.reset()


@pytest.fixture
def relay_client(relay_app):
    """Create FastAPI test client (runs startup and shutdown)."""
    with TestClient(relay_app) as client:
        yield client


@pytest_asyncio.fixture
async def asgi_relay_client(relay_app, temp_config):
    """RelayClient talking to the in-process relay app over ASGI."""
    client = RelayClient(temp_config, transport=httpx.ASGITransport(app=relay_app))
    yield client
    await client.close()
