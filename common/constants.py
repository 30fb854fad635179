"""Project-wide constants (chunk size, default ports, timeouts)."""

CHUNK_SIZE_BYTES: int = 400_000  # default upload window
MAX_TRANSFER_SIZE_BYTES: int = 50 * 1024 * 1024  # 50 MiB cloud transfer unit

DEFAULT_RELAY_PORT: int = 8000
DEFAULT_STAGING_DIR: str = "Files"
DEFAULT_CONTAINER_NAME: str = "uploads"

CLIENT_TIMEOUT_SECONDS: float = 300.0
SESSION_LEASE_TTL_SECONDS: float = 300.0

STAGED_URL_PREFIX: str = "files"
FORM_FILE_FIELD: str = "fileContent"
PARTIAL_SUFFIX: str = ".part"  # in-progress blob downloads in staging
