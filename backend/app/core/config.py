"""Application configuration.

Environment variables override all defaults.
SECRET_KEY must be set in production; startup fails fast if it is missing there.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

_BACKEND_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


class Settings:
    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./clinic.db")

    # JWT
    SECRET_KEY: str = os.getenv("SECRET_KEY", None)
    if not SECRET_KEY:
        if os.getenv("ENVIRONMENT", "development") == "production":
            raise ValueError(
                "SECRET_KEY must be set in production environment. "
                "Generate with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
            )
        import warnings
        warnings.warn(
            "SECRET_KEY not set in environment. Using development default. "
            "Set SECRET_KEY in .env before deploying.",
            RuntimeWarning,
        )
        SECRET_KEY = "development-only-weak-default-change-in-production"

    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
    # Staff sessions last a working day
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))
    AUTH_COOKIE_NAME: str = "clinic_token"

    # CORS / hosts
    CORS_ORIGINS: List[str] = _split_csv(
        os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
    )
    ALLOWED_HOSTS: List[str] = _split_csv(os.getenv("ALLOWED_HOSTS", "*"))

    # Inventory
    RESTOCK_HISTORY_LIMIT: int = int(os.getenv("RESTOCK_HISTORY_LIMIT", "100"))
    NOTIFICATION_LIMIT: int = int(os.getenv("NOTIFICATION_LIMIT", "50"))
    EXPIRY_WINDOW_DAYS: int = int(os.getenv("EXPIRY_WINDOW_DAYS", "90"))
    AUDIT_LIST_LIMIT: int = int(os.getenv("AUDIT_LIST_LIMIT", "200"))

    # Bootstrap admin (password generated on first start when unset)
    DEFAULT_ADMIN_USERNAME: str = os.getenv("DEFAULT_ADMIN_USERNAME", "admin")
    DEFAULT_ADMIN_PASSWORD: str = os.getenv("DEFAULT_ADMIN_PASSWORD", "")

    MIN_PASSWORD_LENGTH: int = 8

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    SECURE_COOKIES: bool = ENVIRONMENT == "production"
    DEBUG: bool = ENVIRONMENT == "development"


settings = Settings()
