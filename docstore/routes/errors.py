"""Render document store errors as JSON responses."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from docstore.core.errors import DocumentStoreError, PersistenceError

logger = logging.getLogger(__name__)


async def document_store_error_handler(request: Request, exc: DocumentStoreError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)

    body = {"error": exc.code, "detail": exc.message}
    if isinstance(exc, PersistenceError) and exc.compensation_failed:
        body["compensation_failed"] = True
    return JSONResponse(status_code=exc.status_code, content=body)


def add_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DocumentStoreError, document_store_error_handler)
