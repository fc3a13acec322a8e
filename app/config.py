"""Configuration settings for Channel Accounts."""

import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Server
    PORT: int = int(os.getenv("PORT", "8000"))
    CORS_ORIGIN: str = os.getenv("CORS_ORIGIN", "http://localhost:3000")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./channel_accounts.db")

    # JWT - access and refresh tokens are signed with different secrets
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_SECRET: str = os.getenv("ACCESS_TOKEN_SECRET", secrets.token_urlsafe(32))
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15"))
    REFRESH_TOKEN_SECRET: str = os.getenv("REFRESH_TOKEN_SECRET", secrets.token_urlsafe(32))
    REFRESH_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_MINUTES", "10080"))

    # Passwords
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "10"))

    # Asset store (Cloudinary)
    CLOUDINARY_CLOUD_NAME: str = os.getenv("CLOUDINARY_CLOUD_NAME", "")
    CLOUDINARY_API_KEY: str = os.getenv("CLOUDINARY_API_KEY", "")
    CLOUDINARY_API_SECRET: str = os.getenv("CLOUDINARY_API_SECRET", "")
    ASSET_FOLDER: str = os.getenv("ASSET_FOLDER", "channel-accounts")

    # Upload staging
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads/tmp")
    MAX_UPLOAD_SIZE_MB: int = int(os.getenv("MAX_UPLOAD_SIZE_MB", "10"))

    # Cookies
    COOKIE_SECURE: bool = os.getenv("COOKIE_SECURE", "true").lower() == "true"

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if not os.getenv("ACCESS_TOKEN_SECRET"):
            errors.append("ACCESS_TOKEN_SECRET is not set - using auto-generated key (not persistent across restarts)")
        if not os.getenv("REFRESH_TOKEN_SECRET"):
            errors.append("REFRESH_TOKEN_SECRET is not set - using auto-generated key (not persistent across restarts)")
        if self.ACCESS_TOKEN_SECRET == self.REFRESH_TOKEN_SECRET:
            errors.append("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")
        if not (self.CLOUDINARY_CLOUD_NAME and self.CLOUDINARY_API_KEY and self.CLOUDINARY_API_SECRET):
            errors.append("Cloudinary credentials are incomplete - media uploads will fail")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
