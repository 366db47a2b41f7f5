# blverse/core/config.py
import logging
import os
from pathlib import Path
from typing import List, Literal

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parents[2]


def is_running_tests() -> bool:
    """PYTEST_CURRENT_TEST is set by pytest for the duration of each test."""
    return os.getenv("PYTEST_CURRENT_TEST") is not None


# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = _PROJECT_ROOT / ".env"
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


DEFAULT_MEDIA_TYPES: List[str] = [
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
    "audio/mpeg",
    "audio/mp3",
    "audio/webm",
    "audio/ogg",
    "audio/wav",
]


class Settings(BaseSettings):
    """Runtime configuration for the BLverse realtime core."""

    environment: str = Field(
        default="development",
        description="Deployment environment; anything but 'development' hides upstream error detail",
    )
    database_url: str = Field(
        default="sqlite:///./blverse.db",
        description="SQLAlchemy database URL",
    )

    # Auth
    secret_key: SecretStr = Field(
        default=SecretStr("dev-only-secret-change-me-0123456789abcdef"),
        description="Secret key for JWT tokens",
    )
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 720  # 12 hours

    # Realtime
    sse_heartbeat_interval: int = Field(default=30, description="SSE heartbeat interval in seconds")
    sse_queue_size: int = Field(
        default=100, description="Buffered events per open stream before writes are treated as failed"
    )

    # Message listing
    message_history_default_limit: int = Field(default=50, ge=1)
    message_history_max_limit: int = Field(default=100, ge=1)
    message_search_default_limit: int = Field(default=50, ge=1)
    message_search_max_limit: int = Field(default=200, ge=1)

    # Notifications
    notification_list_default_limit: int = Field(default=30, ge=1)
    notification_list_max_limit: int = Field(default=100, ge=1)
    profile_view_dedup_hours: int = Field(
        default=24, description="Window in which repeated profile views by the same actor are ignored"
    )

    # Media
    media_storage_backend: Literal["local", "r2"] = Field(
        default="local", description="Where message media is stored: local|r2"
    )
    media_max_bytes: int = Field(default=25 * 1024 * 1024, description="Upload size limit in bytes")
    media_allowed_types: List[str] = Field(default_factory=lambda: list(DEFAULT_MEDIA_TYPES))
    media_local_dir: str = Field(
        default=str(_PROJECT_ROOT / "var" / "media"),
        description="Directory used by the local media store",
    )
    media_public_base_url: str = Field(
        default="/api/v1/messages/media",
        description="Base URL prefixed to stored media keys",
    )
    r2_account_id: str = Field(default="", description="Cloudflare R2 account id")
    r2_bucket_name: str = Field(default="", description="Cloudflare R2 bucket")
    r2_access_key_id: str = Field(default="", description="Cloudflare R2 access key id")
    r2_secret_access_key: SecretStr = Field(default=SecretStr(""), description="Cloudflare R2 secret")
    r2_upload_timeout_seconds: int = 30

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment")
    @classmethod
    def _normalize_environment(cls, value: str) -> str:
        return (value or "development").strip().lower()

    def is_development(self) -> bool:
        return self.environment == "development"


settings = Settings()
