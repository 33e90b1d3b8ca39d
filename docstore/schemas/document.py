"""Document schemas shared by the services and the HTTP layer."""
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class DocumentRecord(BaseModel):
    """Metadata describing one stored blob."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    original_filename: str
    stored_name: str
    size_bytes: int = Field(ge=0)
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive datetimes
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class DocumentSummary(BaseModel):
    """Public view of a record; the stored name stays internal."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    original_filename: str
    size_bytes: int
    created_at: datetime


class UploadResponse(BaseModel):
    message: str = "Uploaded successfully"
    id: int


class DeleteResponse(BaseModel):
    deleted: bool = True


class ConsistencyReport(BaseModel):
    missing_blobs: list[int] = Field(default_factory=list)
    orphan_blobs: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def consistent(self) -> bool:
        return not self.missing_blobs and not self.orphan_blobs
