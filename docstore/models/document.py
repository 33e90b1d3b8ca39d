"""Document model."""
from sqlalchemy import Column, Integer, String, DateTime
from docstore.db.base import Base


class Document(Base):
    """One uploaded PDF. Rows are inserted and deleted, never updated."""

    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    original_filename = Column(String(255), nullable=False)
    stored_name = Column(String(255), nullable=False, unique=True)
    size_bytes = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
