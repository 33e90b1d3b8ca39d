"""Application configuration with environment variables."""
from pathlib import Path
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings


class StorageConfig(BaseModel):
    """Storage settings handed to the document service at construction."""

    model_config = ConfigDict(frozen=True)

    upload_dir: Path
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    allowed_content_types: tuple[str, ...] = ("application/pdf",)
    allowed_extensions: tuple[str, ...] = (".pdf",)
    chunk_size: int = Field(default=64 * 1024, gt=0)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite:///./data.db"

    # Uploads
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024  # 10 MB
    ALLOWED_CONTENT_TYPES: list[str] = ["application/pdf"]
    ALLOWED_EXTENSIONS: list[str] = [".pdf"]
    UPLOAD_CHUNK_SIZE: int = 64 * 1024

    # Application
    APP_NAME: str = "Docstore API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = True

    def storage_config(self) -> StorageConfig:
        return StorageConfig(
            upload_dir=Path(self.UPLOAD_DIR),
            max_upload_bytes=self.MAX_UPLOAD_BYTES,
            allowed_content_types=tuple(t.lower() for t in self.ALLOWED_CONTENT_TYPES),
            allowed_extensions=tuple(e.lower() for e in self.ALLOWED_EXTENSIONS),
            chunk_size=self.UPLOAD_CHUNK_SIZE,
        )


# Create global settings instance
settings = Settings()
