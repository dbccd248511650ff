"""Application settings for the event catalog service."""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Event catalog settings loaded from the environment (and an optional .env)."""

    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    api_prefix: str = Field(default="/api", alias="API_PREFIX")
    env: str = Field(default="dev", alias="ENV")  # dev|prod|test

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")  # json|console

    # Catalog document
    catalog_backend: str = Field(default="file", alias="CATALOG_BACKEND")  # file|memory
    catalog_path: str = Field(default="data/events.json", alias="CATALOG_PATH")

    # Fixed station offset, no DST
    local_utc_offset: str = Field(default="+05:30", alias="LOCAL_UTC_OFFSET")

    # Blob store (any S3-compatible endpoint: R2, MinIO, S3)
    blob_bucket: str = Field(default="cloudsound-events", alias="BLOB_BUCKET")
    blob_endpoint_url: Optional[str] = Field(default=None, alias="BLOB_ENDPOINT_URL")
    blob_region: str = Field(default="auto", alias="BLOB_REGION")
    blob_access_key_id: Optional[str] = Field(default=None, alias="BLOB_ACCESS_KEY_ID")
    blob_secret_access_key: Optional[str] = Field(default=None, alias="BLOB_SECRET_ACCESS_KEY")
    blob_public_base_url: Optional[str] = Field(default=None, alias="BLOB_PUBLIC_BASE_URL")
    presign_expires_seconds: int = Field(default=900, alias="PRESIGN_EXPIRES_SECONDS", gt=0)

    operation_timeout_seconds: float = Field(default=30.0, alias="OPERATION_TIMEOUT_SECONDS", gt=0)
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")  # Comma-separated origins

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()


app_settings = get_settings()
