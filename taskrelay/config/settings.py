# taskrelay/config/settings.py
# Environment-driven configuration for the API, the database and the realtime layer

import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """Application settings read once from the environment"""

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./taskrelay.db")
    DB_SSLMODE = os.getenv("DB_SSLMODE")  # e.g. "require" on hosted PostgreSQL

    # Identity tokens (issued elsewhere, verified here)
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    ALGORITHM = os.getenv("ALGORITHM", "HS256")

    # CORS
    CORS_ORIGINS = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:3000,http://localhost:3001,http://127.0.0.1:3000",
        )
    )

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Server
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", "8000"))
    RELOAD = os.getenv("RELOAD", "true").lower() == "true"

    @classmethod
    def is_sqlite(cls) -> bool:
        """Check if the configured database is SQLite"""
        return cls.DATABASE_URL.startswith("sqlite")

    @classmethod
    def is_in_memory_sqlite(cls) -> bool:
        """Check if the configured database is an in-memory SQLite database"""
        return cls.DATABASE_URL in ("sqlite://", "sqlite:///:memory:")


settings = Settings()
