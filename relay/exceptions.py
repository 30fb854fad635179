"""Custom exception classes for the relay server."""

from typing import Optional


class RelayException(Exception):
    """
    Base exception class for all relay errors.

    Subclasses set ``code``, ``status_code`` and ``retryable``; the HTTP
    layer renders them as ``{"detail", "code", "retryable"}``.
    """
    code = "INTERNAL_ERROR"
    status_code = 500
    retryable = False

    def extra(self) -> dict:
        """Additional fields to include in the error response body."""
        return {}


class InvalidFileNameError(RelayException):
    """
    Raised when a destination name is empty or escapes the staging directory.
    """
    code = "INVALID_FILE_NAME"
    status_code = 400


class InvalidUploadError(RelayException):
    """
    Raised when a whole-file upload is not a form or carries no file.
    """
    code = "INVALID_UPLOAD"
    status_code = 400


class OffsetMismatchError(RelayException):
    """
    Raised when a chunk offset does not equal the bytes already staged.
    """
    code = "OFFSET_MISMATCH"
    status_code = 409

    def __init__(self, file_name: str, offset: int, expected_offset: int):
        self.file_name = file_name
        self.offset = offset
        self.expected_offset = expected_offset
        super().__init__(
            f"Chunk for '{file_name}' starts at offset {offset}, expected {expected_offset}"
        )

    def extra(self) -> dict:
        return {"expected_offset": self.expected_offset}


class DestinationBusyError(RelayException):
    """
    Raised when another upload session holds the destination name.
    """
    code = "DESTINATION_BUSY"
    status_code = 409
    retryable = True


class StagedFileNotFoundError(RelayException):
    """
    Raised when a requested staged file does not exist.
    """
    code = "FILE_NOT_FOUND"
    status_code = 404


class StagingIOError(RelayException):
    """
    Raised when reading or writing the staging directory fails.
    """
    code = "STAGING_IO_ERROR"
    status_code = 500
    retryable = True


class StorageFullError(RelayException):
    """
    Raised when the staging volume has no space left.
    """
    code = "STORAGE_FULL"
    status_code = 507


class StorageNotConfiguredError(RelayException):
    """
    Raised when no storage connection string is configured.
    """
    code = "STORAGE_NOT_CONFIGURED"
    status_code = 503


class ContainerNotFoundError(RelayException):
    """
    Raised when the cloud container does not exist.
    """
    code = "CONTAINER_NOT_FOUND"
    status_code = 404


class BlobNotFoundError(RelayException):
    """
    Raised when the requested blob does not exist.
    """
    code = "BLOB_NOT_FOUND"
    status_code = 404


class BlobAlreadyExistsError(RelayException):
    """
    Raised when copying without overwrite onto an existing blob.
    """
    code = "BLOB_ALREADY_EXISTS"
    status_code = 409


class StorageUnavailableError(RelayException):
    """
    Raised when the cloud storage service cannot be reached.
    """
    code = "STORAGE_UNAVAILABLE"
    status_code = 503
    retryable = True


class BlobStorageError(RelayException):
    """
    Raised when the cloud storage service rejects a request (auth, quota).
    """
    code = "BLOB_STORAGE_ERROR"
    status_code = 502

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.error_code = error_code
        super().__init__(message)

    def extra(self) -> dict:
        if self.error_code:
            return {"storage_error_code": self.error_code}
        return {}
