"""Error categories surfaced by the document store.

Each error carries a stable ``code`` so clients can tell a safe retry
(validation, not found) from a condition that needs an operator
(inconsistent state, persistence failure with a failed cleanup).
"""
from typing import Optional


class DocumentStoreError(Exception):
    """Base class for every error the document store reports."""

    code = "document_store_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DocumentStoreError):
    """Bad input. Raised before anything is written."""

    code = "validation_error"
    status_code = 400


class UploadTooLargeError(ValidationError):
    code = "upload_too_large"
    status_code = 413

    def __init__(self, limit: int):
        super().__init__(f"File exceeds the maximum upload size of {limit} bytes")
        self.limit = limit


class InvalidBlobNameError(ValidationError):
    code = "invalid_blob_name"

    def __init__(self, stored_name: str):
        super().__init__(f"Refusing unsafe stored name: {stored_name!r}")
        self.stored_name = stored_name


class StorageWriteError(DocumentStoreError):
    code = "storage_write_error"


class StorageReadError(DocumentStoreError):
    code = "storage_read_error"


class StorageDeleteError(DocumentStoreError):
    code = "storage_delete_error"


class NotFoundError(DocumentStoreError):
    code = "not_found"
    status_code = 404


class BlobNotFoundError(NotFoundError):
    """The blob store has no file under the requested name."""

    def __init__(self, stored_name: str):
        super().__init__(f"Blob not found: {stored_name}")
        self.stored_name = stored_name


class InconsistentStateError(DocumentStoreError):
    """A record exists but its blob is gone."""

    code = "inconsistent_state"
    status_code = 409


class PersistenceError(DocumentStoreError):
    code = "persistence_error"

    def __init__(
        self,
        message: str,
        compensation_failed: bool = False,
        orphan_stored_name: Optional[str] = None,
    ):
        super().__init__(message)
        self.compensation_failed = compensation_failed
        self.orphan_stored_name = orphan_stored_name
