"""Document service: keeps the blob store and the registry in step."""
import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from typing import AsyncIterator, List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import sessionmaker

from docstore.core.config import StorageConfig, settings
from docstore.core.errors import (
    BlobNotFoundError,
    DocumentStoreError,
    InconsistentStateError,
    InvalidBlobNameError,
    NotFoundError,
    PersistenceError,
    UploadTooLargeError,
    ValidationError,
)
from docstore.schemas.document import ConsistencyReport, DocumentRecord
from docstore.services.blob_store import BlobReader, BlobStore
from docstore.services.registry import DocumentRegistry
from docstore.utils.filenames import StoredNames

logger = logging.getLogger(__name__)


class UploadState(str, Enum):
    RECEIVED = "RECEIVED"
    VALIDATING = "VALIDATING"
    STORING_BLOB = "STORING_BLOB"
    RECORDING_METADATA = "RECORDING_METADATA"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


class DocumentService:
    """
    Upload, list, download and delete documents.

    Ordering rules:
        - a record is written only after its blob is complete
        - a failed record write removes the blob it was describing
        - a record is removed only after its blob is removed or confirmed gone
    """

    def __init__(self, config: StorageConfig, session_factory: sessionmaker):
        self.config = config
        self.blobs = BlobStore(config.upload_dir, chunk_size=config.chunk_size)
        self.registry = DocumentRegistry(session_factory)

    def _transition(self, state: UploadState, filename: str) -> UploadState:
        logger.debug("Upload %r -> %s", filename, state.value)
        return state

    def validate_upload(
        self,
        original_filename: Optional[str],
        content_type: Optional[str],
        declared_size: Optional[int] = None,
    ) -> None:
        """Reject an upload up front. Touches no storage."""
        if not original_filename:
            raise ValidationError("A file with a filename is required")

        media_type = (content_type or "").split(";")[0].strip().lower()
        if media_type not in self.config.allowed_content_types:
            allowed = ", ".join(self.config.allowed_content_types)
            raise ValidationError(f"Unsupported content type {media_type or 'unknown'!r}. Allowed: {allowed}")

        if not StoredNames.has_allowed_extension(original_filename, self.config.allowed_extensions):
            allowed = ", ".join(self.config.allowed_extensions)
            raise ValidationError(f"Unsupported file extension for {original_filename!r}. Allowed: {allowed}")

        if declared_size is not None and declared_size > self.config.max_upload_bytes:
            raise UploadTooLargeError(self.config.max_upload_bytes)

    async def upload(
        self,
        chunks: AsyncIterator[bytes],
        original_filename: Optional[str],
        content_type: Optional[str],
        declared_size: Optional[int] = None,
    ) -> DocumentRecord:
        state = self._transition(UploadState.RECEIVED, original_filename)
        try:
            state = self._transition(UploadState.VALIDATING, original_filename)
            self.validate_upload(original_filename, content_type, declared_size)

            state = self._transition(UploadState.STORING_BLOB, original_filename)
            stored_name, size_bytes = await self.blobs.put(
                chunks, original_filename, max_bytes=self.config.max_upload_bytes
            )

            state = self._transition(UploadState.RECORDING_METADATA, original_filename)
            created_at = datetime.now(timezone.utc)
            try:
                document_id = await run_in_threadpool(
                    self.registry.create, original_filename, stored_name, size_bytes, created_at
                )
            except PersistenceError as e:
                raise await self._compensate(stored_name, e)
            except Exception as e:
                error = PersistenceError(f"Unexpected failure recording {stored_name}: {e}")
                raise await self._compensate(stored_name, error) from e

            self._transition(UploadState.COMPLETE, original_filename)
        except DocumentStoreError as e:
            self._transition(UploadState.FAILED, original_filename)
            logger.warning("Upload of %r failed while %s: %s", original_filename, state.value, e.message)
            raise
        except asyncio.CancelledError:
            self._transition(UploadState.FAILED, original_filename)
            if state is UploadState.RECORDING_METADATA:
                # the insert may still commit in its worker thread, so the blob is kept;
                # if it does not, the audit lists it as an orphan
                logger.warning("Upload of %r cancelled while recording %s", original_filename, stored_name)
            else:
                logger.warning("Upload of %r cancelled while %s", original_filename, state.value)
            raise
        except Exception:
            self._transition(UploadState.FAILED, original_filename)
            logger.exception("Upload of %r failed unexpectedly while %s", original_filename, state.value)
            raise

        logger.info("Uploaded %r as document %s (%s, %d bytes)", original_filename, document_id, stored_name, size_bytes)
        return DocumentRecord(
            id=document_id,
            original_filename=original_filename,
            stored_name=stored_name,
            size_bytes=size_bytes,
            created_at=created_at,
        )

    async def _compensate(self, stored_name: str, error: PersistenceError) -> PersistenceError:
        """Remove a blob whose record could not be written."""
        try:
            await self.blobs.delete(stored_name)
        except DocumentStoreError as cleanup_error:
            logger.error(
                "Orphan blob %s left behind: record write failed (%s) and cleanup failed (%s)",
                stored_name, error.message, cleanup_error.message,
            )
            return PersistenceError(
                f"{error.message}; cleanup of blob {stored_name} also failed: {cleanup_error.message}",
                compensation_failed=True,
                orphan_stored_name=stored_name,
            )
        logger.info("Removed blob %s after failed record write", stored_name)
        return error

    async def list_documents(self) -> List[DocumentRecord]:
        return await run_in_threadpool(self.registry.list)

    async def get_document(self, document_id: int) -> DocumentRecord:
        record = await run_in_threadpool(self.registry.get, document_id)
        if record is None:
            raise NotFoundError(f"Document {document_id} not found")
        return record

    async def download(self, document_id: int) -> Tuple[DocumentRecord, BlobReader]:
        record = await self.get_document(document_id)
        try:
            reader = await self.blobs.get(record.stored_name)
        except BlobNotFoundError as e:
            logger.error("Document %s has no blob %s", document_id, record.stored_name)
            raise InconsistentStateError(
                f"Document {document_id} is registered but its file is missing"
            ) from e
        except InvalidBlobNameError as e:
            logger.error("Document %s points at unsafe stored name %r", document_id, record.stored_name)
            raise InconsistentStateError(
                f"Document {document_id} references an invalid stored file name"
            ) from e
        return record, reader

    async def delete(self, document_id: int) -> None:
        record = await self.get_document(document_id)

        # StorageDeleteError propagates here and the record stays for a retry
        try:
            removed = await self.blobs.delete(record.stored_name)
        except InvalidBlobNameError as e:
            logger.error("Document %s points at unsafe stored name %r", document_id, record.stored_name)
            raise InconsistentStateError(
                f"Document {document_id} references an invalid stored file name; left in place for an operator"
            ) from e

        if not await run_in_threadpool(self.registry.delete, document_id):
            raise NotFoundError(f"Document {document_id} not found")
        logger.info(
            "Deleted document %s (%s%s)",
            document_id, record.stored_name, "" if removed else ", blob was already absent",
        )

    async def audit(self) -> ConsistencyReport:
        """Compare the registry with the blob directory without changing either."""
        records = await self.list_documents()
        names_on_disk = set(await self.blobs.list_names())

        missing = []
        for record in records:
            if not (StoredNames.is_safe(record.stored_name) and record.stored_name in names_on_disk):
                missing.append(record.id)

        referenced = {record.stored_name for record in records}
        orphans = sorted(names_on_disk - referenced)

        report = ConsistencyReport(missing_blobs=sorted(missing), orphan_blobs=orphans)
        if not report.consistent:
            logger.warning(
                "Consistency audit: %d record(s) without blob, %d orphan blob(s)",
                len(report.missing_blobs), len(report.orphan_blobs),
            )
        return report


@lru_cache
def get_document_service() -> DocumentService:
    """FastAPI dependency returning the process-wide service."""
    from docstore.db.sessions import SessionLocal

    return DocumentService(settings.storage_config(), SessionLocal)
