"""Configuration settings for the relay server."""

import os
from common.constants import (
    DEFAULT_RELAY_PORT,
    DEFAULT_STAGING_DIR,
    MAX_TRANSFER_SIZE_BYTES,
    SESSION_LEASE_TTL_SECONDS,
)


STAGING_DIR = os.environ.get("RELAY_STAGING_DIR", DEFAULT_STAGING_DIR)

RELAY_HOST = os.environ.get("RELAY_HOST", "0.0.0.0")

RELAY_PORT = int(os.environ.get("RELAY_PORT", str(DEFAULT_RELAY_PORT)))

STORAGE_CONNECTION_STRING = os.environ.get(
    "StorageConnectionString", os.environ.get("STORAGE_CONNECTION_STRING", "")
)

STORAGE_BASE_URL = os.environ.get(
    "StorageBaseUrl", os.environ.get("STORAGE_BASE_URL", "")
)

MAX_TRANSFER_SIZE = int(os.environ.get("RELAY_MAX_TRANSFER_SIZE", str(MAX_TRANSFER_SIZE_BYTES)))

LEASE_TTL_SECONDS = float(os.environ.get("RELAY_LEASE_TTL", str(SESSION_LEASE_TTL_SECONDS)))
