"""Application configuration using pydantic-settings."""
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="KEEPSAKE_",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./keepsake.db"
    create_schema: bool = True

    # Content extractor and video downloader bounds (seconds)
    fetch_timeout: float = 10.0
    download_timeout: float = 30.0

    # Media storage - created lazily on first download
    media_dir: Path = Path("./videos")
    media_url_path: str = "/videos"

    # Video hosts - comma-separated list of domains (stored as string, parsed via property)
    video_hosts_str: str = Field(
        default="youtube.com,youtu.be",
        validation_alias="KEEPSAKE_VIDEO_HOSTS",
    )

    # CORS - comma-separated list of allowed origins
    cors_origins_str: str = Field(
        default="",
        validation_alias="KEEPSAKE_CORS_ORIGINS",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    @property
    def video_hosts(self) -> list[str]:
        """Parse comma-separated video host domains into a lowercase list."""
        return [
            host.strip().lower()
            for host in self.video_hosts_str.split(",")
            if host.strip()
        ]

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
