"""Document registry backed by the ``documents`` table."""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from docstore.core.errors import PersistenceError
from docstore.models.document import Document
from docstore.schemas.document import DocumentRecord

logger = logging.getLogger(__name__)


class DocumentRegistry:
    """
    Create, list, look up and delete document records.

    Each call runs in its own session, so a registry instance can be shared
    across concurrent requests. Row-level consistency comes from the database.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def _session(self) -> Session:
        return self.session_factory()

    def create(
        self,
        original_filename: str,
        stored_name: str,
        size_bytes: int,
        created_at: datetime,
    ) -> int:
        db = self._session()
        try:
            document = Document(
                original_filename=original_filename,
                stored_name=stored_name,
                size_bytes=size_bytes,
                created_at=created_at,
            )
            db.add(document)
            db.commit()
            return document.id
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Could not record document {stored_name}: {e}") from e
        finally:
            db.close()

    def list(self) -> List[DocumentRecord]:
        """Newest first; a fresh snapshot on every call."""
        db = self._session()
        try:
            rows = db.execute(
                select(Document).order_by(Document.created_at.desc(), Document.id.desc())
            ).scalars().all()
            return [DocumentRecord.model_validate(row) for row in rows]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not list documents: {e}") from e
        finally:
            db.close()

    def get(self, document_id: int) -> Optional[DocumentRecord]:
        db = self._session()
        try:
            row = db.get(Document, document_id)
            return DocumentRecord.model_validate(row) if row is not None else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load document {document_id}: {e}") from e
        finally:
            db.close()

    def delete(self, document_id: int) -> bool:
        """Return True if this call removed the row, False if it was not there."""
        db = self._session()
        try:
            result = db.execute(delete(Document).where(Document.id == document_id))
            db.commit()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Could not delete document {document_id}: {e}") from e
        finally:
            db.close()
