"""
Configuration and settings for the template backend and import pipeline.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings shared by the API and the import scripts."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")

    # Database (Supabase Postgres expected)
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")

    # S3-compatible storage (Supabase Storage S3 endpoint)
    storage_endpoint: Optional[str] = Field(default=None, alias="STORAGE_ENDPOINT")
    storage_region: Optional[str] = Field(default=None, alias="STORAGE_REGION")
    storage_bucket: str = Field(default="templates", alias="STORAGE_BUCKET")
    storage_addressing_style: str = Field(
        default="path", alias="STORAGE_ADDRESSING_STYLE"
    )
    storage_prefix: str = Field(default="templates", alias="STORAGE_PREFIX")
    aws_access_key_id: Optional[str] = Field(default=None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: Optional[str] = Field(
        default=None, alias="AWS_SECRET_ACCESS_KEY"
    )

    # Typesense
    typesense_host: Optional[str] = Field(default=None, alias="TYPESENSE_HOST")
    typesense_api_key: Optional[str] = Field(default=None, alias="TYPESENSE_API_KEY")
    typesense_port: Optional[int] = Field(default=None, alias="TYPESENSE_PORT")
    typesense_protocol: Optional[str] = Field(default=None, alias="TYPESENSE_PROTOCOL")
    typesense_collection: str = Field(default="templates", alias="TYPESENSE_COLLECTION")
    typesense_timeout_seconds: float = Field(
        default=10.0, alias="TYPESENSE_TIMEOUT_SECONDS"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, alias="NYAYAMITRA_USE_IN_MEMORY_BACKENDS"
    )

    # Bulk template import
    import_source_folders: List[str] = Field(
        default_factory=list, alias="IMPORT_SOURCE_FOLDERS"
    )
    import_progress_file: str = Field(
        default="./import-progress.json", alias="IMPORT_PROGRESS_FILE"
    )
    import_error_log_file: str = Field(
        default="./import-errors.json", alias="IMPORT_ERROR_LOG_FILE"
    )
    import_batch_size: int = Field(default=10, ge=1, alias="IMPORT_BATCH_SIZE")
    dry_run: bool = Field(default=False, alias="DRY_RUN")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
