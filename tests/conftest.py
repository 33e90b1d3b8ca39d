"""Shared fixtures: a throwaway upload directory and SQLite database per test."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from docstore.core.config import StorageConfig
from docstore.db.base import Base
from docstore.db.sessions import make_engine, make_session_factory
from docstore.routes import documents
from docstore.routes.errors import add_error_handlers
from docstore.services.document_service import DocumentService, get_document_service

import docstore.models  # noqa: F401

MAX_UPLOAD_BYTES = 4096


async def chunks_of(data: bytes, size: int = 256):
    """Feed bytes to the store the way an upload body arrives."""
    for start in range(0, len(data), size):
        yield data[start:start + size]


def pdf_bytes(size: int) -> bytes:
    header = b"%PDF-1.4\n"
    body = bytes(i % 251 for i in range(max(size - len(header), 0)))
    return (header + body)[:size]


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def storage_config(upload_dir):
    return StorageConfig(upload_dir=upload_dir, max_upload_bytes=MAX_UPLOAD_BYTES, chunk_size=512)


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def service(storage_config, session_factory):
    return DocumentService(storage_config, session_factory)


@pytest.fixture
def app(service):
    """App with the document routes and the service dependency overridden."""
    app = FastAPI()
    app.include_router(documents.router)
    add_error_handlers(app)
    app.dependency_overrides[get_document_service] = lambda: service
    return app


@pytest.fixture
def client(app):
    return TestClient(app)
