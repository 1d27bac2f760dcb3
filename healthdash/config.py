"""
Application configuration
"""
import os
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings"""

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", os.getenv("NODE_ENV", "development"))
    VERSION: str = "1.0.0"

    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL", "")
    DATABASE_SSLMODE: Optional[str] = os.getenv("DATABASE_SSLMODE")

    # Auth
    JWT_SECRET: str = os.getenv("JWT_SECRET", "")
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_DAYS: int = int(
        os.getenv("JWT_EXPIRES_DAYS", "1" if ENVIRONMENT == "production" else "7")
    )
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))
    # Requests per client address to /api/auth, in "limits" notation
    AUTH_RATE_LIMIT: str = os.getenv("AUTH_RATE_LIMIT", "100 per 15 minutes")

    # Uploads
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
    MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    SEED_DATA: bool = _env_bool("SEED_DATA", True)

    # CORS settings
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "")
    CORS_ORIGINS: list = [
        origin for origin in [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:5174",
            FRONTEND_URL,
        ] if origin
    ]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    CORS_ALLOW_HEADERS: list = ["Content-Type", "Authorization", "Accept"]

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT != "production"


settings = Settings()
