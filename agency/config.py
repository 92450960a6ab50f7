"""
Configuration and settings for the agency backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings, built once and shared by every collaborator."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True
    )

    api_prefix: str = Field(default="/api")

    # Document store (any SQLAlchemy URL)
    database_url: Optional[str] = Field(default=None)

    # File storage. Public URLs follow the hosted storage layout:
    # {storage_endpoint}/storage/buckets/{bucket}/files/{file}/view?project={project}
    storage_endpoint: str = Field(default="https://fra.cloud.appwrite.io/v1")
    storage_project_id: str = Field(default="tbp-agency")
    storage_bucket_id: Optional[str] = Field(default=None)
    s3_endpoint_url: Optional[str] = Field(default=None)
    s3_region: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Public site
    site_name: str = Field(default="Trusted Business Partners")
    default_description: str = Field(
        default=(
            "Professional business services in Albania - Website Design, "
            "Development, Branding, and Digital Marketing"
        )
    )
    site_url: str = Field(default="")

    # Admin session gate
    admin_email: str = Field(default="admin@example.com")
    admin_password: Optional[str] = Field(default=None)
    session_ttl_seconds: int = Field(default=60 * 60 * 12)

    # Overlay fan-out and settings paging
    meta_write_workers: int = Field(default=8)
    settings_limit: int = Field(default=500)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    @property
    def bucket_id(self) -> str:
        return self.storage_bucket_id or "media"

    def file_url(
        self,
        file_id: str,
        *,
        preview: bool = False,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> str:
        """Public view/preview URL for a stored file id ('' for no file)."""
        if not file_id:
            return ""
        mode = "preview" if preview else "view"
        url = (
            f"{self.storage_endpoint.rstrip('/')}/storage/buckets/{self.bucket_id}"
            f"/files/{file_id}/{mode}?project={self.storage_project_id}"
        )
        if preview and width:
            url += f"&width={width}"
        if preview and height:
            url += f"&height={height}"
        return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
