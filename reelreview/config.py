"""
Configuration for ReelReview
============================

Environment variables (case-insensitive, `.env` supported):
- DATABASE_URL: SQLAlchemy URL (default: sqlite:///./dev.db)
- JWT_SECRET_KEY: Secret for first-party access/refresh tokens
- PROVIDER_JWT_SECRET: Shared secret of the external identity provider
- DEV_MODE: Enable dev users + cookie login (default: false)
- STORAGE_BACKEND: local|firebase (default: local)
- TEMPORARY_STORAGE_LIMIT_BYTES: Temporary video quota (default: 1 GiB)
- GOOGLE_SERVICE_ACCOUNT_EMAIL / GOOGLE_PRIVATE_KEY: Drive archive credentials
- REDIS_URL: RQ queue for archive jobs (empty = run jobs inline)
"""

from typing import List, Optional
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TEMPORARY_STORAGE_LIMIT = 1024 * 1024 * 1024  # 1 GiB


class Settings(BaseSettings):
    """Application settings from environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./dev.db"

    # First-party tokens (credential login)
    jwt_secret_key: str = "dev-secret-key-change-in-production-0123456789"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 24
    jwt_refresh_token_expire_days: int = 30

    # External identity provider tokens
    provider_jwt_secret: Optional[str] = None
    provider_jwt_audience: str = "authenticated"

    # Dev mode (mock users, cookie login)
    dev_mode: bool = False
    dev_password: str = "123password"

    # Temporary (Firebase) storage
    storage_backend: str = "local"
    local_storage_path: str = "./storage"
    local_storage_base_url: str = "http://localhost:8000/files"
    temporary_storage_limit_bytes: int = DEFAULT_TEMPORARY_STORAGE_LIMIT
    firebase_project_id: Optional[str] = None
    firebase_client_email: Optional[str] = None
    firebase_private_key: Optional[str] = None
    firebase_storage_bucket: Optional[str] = None
    attachments_prefix: str = "attachments"

    # Permanent (Google Drive) storage
    google_service_account_email: Optional[str] = None
    google_private_key: Optional[str] = None
    google_drive_folder_id: Optional[str] = None
    google_shared_drive_id: Optional[str] = None

    # Jobs
    redis_url: Optional[str] = None
    auto_archive_enabled: bool = True

    # HTTP
    cors_allow_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    enforce_https: bool = False
    proxy_timeout: int = 30

    # Frame capture
    ffmpeg_binary: str = "ffmpeg"
    frame_timeout: int = 30

    # Service info
    service_version: str = "1.0.0"

    @property
    def cors_origins(self) -> List[str]:
        origins: List[str] = []
        for item in self.cors_allow_origins.split(","):
            origin = item.strip().strip('"').strip("'").rstrip("/")
            if origin:
                origins.append(origin)
        return origins

    @property
    def google_drive_configured(self) -> bool:
        return bool(self.google_service_account_email and self.google_private_key)

    @property
    def firebase_configured(self) -> bool:
        return bool(
            self.firebase_project_id
            and self.firebase_client_email
            and self.firebase_private_key
            and self.firebase_storage_bucket
        )

    def validate_integrations(self) -> List[str]:
        """Validate integration configuration, return list of warnings"""
        warnings = []

        if self.storage_backend == "firebase" and not self.firebase_configured:
            warnings.append("STORAGE_BACKEND=firebase but Firebase admin credentials are incomplete")

        if not self.google_drive_configured:
            warnings.append("Google Drive credentials not set - archiving is disabled")

        if not self.provider_jwt_secret:
            warnings.append("PROVIDER_JWT_SECRET not set - identity provider tokens are rejected")

        if self.dev_mode:
            warnings.append("DEV_MODE=true - dev users and cookie login are enabled")

        if self.jwt_secret_key.startswith("dev-secret-key"):
            warnings.append("JWT_SECRET_KEY uses the development default")

        return warnings


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
