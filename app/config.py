"""Configuration management for the VidTube API."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="VT_", extra="ignore")

    # Security keys
    access_token_secret: str
    access_token_ttl_seconds: int = 86400  # 1 day

    # Database
    database_url: str = "sqlite+aiosqlite:///./dev.db"

    # CORS
    frontend_origin: str = "http://localhost:5173"

    # Uploads staged on local disk before being pushed to the media host
    upload_tmp_dir: str = Field(default="./public/temp")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024)  # 10 MB

    # Media host configuration
    media_backend: str = Field(
        default="local", pattern="^(local|cloudinary)$"
    )  # local or cloudinary
    media_local_path: str = Field(default="./media")
    media_url_base: str = Field(
        default="http://localhost:8000"
    )  # Base URL for locally served media
    media_timeout_seconds: float = Field(default=30.0)

    # Cloudinary (only needed if media_backend=cloudinary)
    cloudinary_cloud_name: str = Field(default="")
    cloudinary_api_key: str = Field(default="")
    cloudinary_api_secret: str = Field(default="")

    # Channel profile responses historically carried no data payload
    channel_profile_include_data: bool = False

    # Environment
    env: str = Field(default="dev", pattern="^(dev|prod)$")


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore[call-arg]
    return _settings
