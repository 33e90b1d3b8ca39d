"""Document routes."""
from typing import AsyncIterator, List
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import StreamingResponse

from docstore.schemas.document import (
    ConsistencyReport,
    DeleteResponse,
    DocumentSummary,
    UploadResponse,
)
from docstore.services.document_service import DocumentService, get_document_service


router = APIRouter(prefix="/api/documents", tags=["Documents"])


async def _iter_upload(upload_file: UploadFile, chunk_size: int) -> AsyncIterator[bytes]:
    while True:
        chunk = await upload_file.read(chunk_size)
        if not chunk:
            break
        yield chunk


def _content_disposition(filename: str) -> str:
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    service: DocumentService = Depends(get_document_service),
):
    """
    Upload a PDF document.

    Only ``application/pdf`` files up to the configured size are accepted.
    The file is streamed to disk before its record is written.

    Args:
        file: Multipart file field
        service: Document service

    Returns:
        UploadResponse with the new document id

    Raises:
        ValidationError 400: Wrong content type or extension
        UploadTooLargeError 413: File over the size limit
        StorageWriteError / PersistenceError 500: Disk or database failure
    """
    record = await service.upload(
        _iter_upload(file, service.config.chunk_size),
        original_filename=file.filename,
        content_type=file.content_type,
        declared_size=file.size,
    )
    return UploadResponse(id=record.id)


@router.get("", response_model=List[DocumentSummary])
async def list_documents(service: DocumentService = Depends(get_document_service)):
    """
    List all documents, most recent first.

    Returns:
        List of DocumentSummary; stored names are not exposed
    """
    records = await service.list_documents()
    return [DocumentSummary.model_validate(record) for record in records]


@router.get("/consistency", response_model=ConsistencyReport)
async def check_consistency(service: DocumentService = Depends(get_document_service)):
    """Report records without files and files without records."""
    return await service.audit()


@router.get("/{document_id}", response_model=DocumentSummary)
async def get_document(document_id: int, service: DocumentService = Depends(get_document_service)):
    """
    Get metadata for one document.

    Raises:
        NotFoundError 404: No document with this id
    """
    record = await service.get_document(document_id)
    return DocumentSummary.model_validate(record)


@router.get("/{document_id}/download")
async def download_document(document_id: int, service: DocumentService = Depends(get_document_service)):
    """
    Stream the stored file back under its original filename.

    Args:
        document_id: Document id
        service: Document service

    Returns:
        StreamingResponse with ``Content-Disposition: attachment``

    Raises:
        NotFoundError 404: No document with this id
        InconsistentStateError 409: Record present but its file is missing
        StorageReadError 500: File exists but cannot be read
    """
    record, reader = await service.download(document_id)
    return StreamingResponse(
        reader.iter_chunks(),
        media_type="application/pdf",
        headers={
            "Content-Disposition": _content_disposition(record.original_filename),
            "Content-Length": str(reader.size),
        },
    )


@router.delete("/{document_id}", response_model=DeleteResponse)
async def delete_document(document_id: int, service: DocumentService = Depends(get_document_service)):
    """
    Delete a document and its stored file.

    The file is removed first; if that fails the record is kept so the
    delete can be retried.

    Raises:
        NotFoundError 404: No document with this id
        InconsistentStateError 409: Record points at an invalid stored name
        StorageDeleteError 500: File could not be removed
    """
    await service.delete(document_id)
    return DeleteResponse()
