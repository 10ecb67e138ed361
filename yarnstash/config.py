"""Configuration management for Yarnstash."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Config:
    """Application configuration."""

    # Application
    PORT: int = int(os.getenv("PORT", "7675"))
    DEBUG: bool = _env_flag("DEBUG", "false")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./yarnstash.db")
    AUTO_MIGRATE: bool = _env_flag("AUTO_MIGRATE", "true")

    # Identity provider
    IDENTITY_SECRET: str = os.getenv(
        "IDENTITY_SECRET", "dev-identity-secret-change-in-production"
    )
    IDENTITY_ALGORITHM: str = os.getenv("IDENTITY_ALGORITHM", "HS256")
    SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "session_token")
    DEV_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 1 week

    # Blob storage
    MEDIA_ROOT: Path = Path(os.getenv("MEDIA_ROOT", "./media"))
    BLOB_SIGNING_SECRET: str = os.getenv("BLOB_SIGNING_SECRET", "")
    BLOB_URL_TTL_SECONDS: int = int(os.getenv("BLOB_URL_TTL_SECONDS", "3600"))
    MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", str(25 * 1024 * 1024)))

    # Listing
    MAX_PAGE_SIZE: int = 200

    @property
    def blob_signing_secret(self) -> str:
        """Secret used to sign presigned blob URLs."""
        return self.BLOB_SIGNING_SECRET or self.IDENTITY_SECRET

    def ensure_media_dirs(self) -> None:
        """Ensure media directories exist."""
        self.MEDIA_ROOT.mkdir(parents=True, exist_ok=True)
        (self.MEDIA_ROOT / "yarns").mkdir(exist_ok=True)
        (self.MEDIA_ROOT / "projects").mkdir(exist_ok=True)


config = Config()
