"""Application settings loaded from the environment"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv(dotenv_path=".env")

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./data/tasks.db"


def normalize_database_url(url: str) -> str:
    """
    Convert a database URL to the async driver SQLAlchemy should use.

    Handles both plain and driver-qualified URLs:
    - postgresql://        -> postgresql+psycopg://
    - postgresql+asyncpg:// -> postgresql+psycopg://
    - sqlite://            -> sqlite+aiosqlite://
    """
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql+psycopg://"):
        return url
    if url.startswith("postgresql+asyncpg://"):
        # Legacy support: convert asyncpg URLs to psycopg
        return url.replace("postgresql+asyncpg://", "postgresql+psycopg://", 1)
    if url.startswith("sqlite+aiosqlite://"):
        return url
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    raise ValueError(f"Unsupported database URL format: {url}")


class Settings(BaseModel):
    """Runtime configuration for the task backend"""
    database_url: str = DEFAULT_DATABASE_URL

    # Connection pool configuration
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 3600
    echo: bool = False

    # Seconds a SQLite writer waits for the database lock
    sqlite_busy_timeout: float = 30.0
    # Upper bound for a single store call when the caller gives none
    store_timeout_seconds: Optional[float] = 10.0

    # Create missing tables when the application starts
    auto_migrate: bool = True

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (and `.env` if present)."""
        store_timeout = os.getenv("STORE_TIMEOUT_SECONDS", "10")
        return cls(
            database_url=normalize_database_url(os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)),
            pool_size=int(os.getenv("DB_POOL_SIZE", "5")),  # Default 5 connections
            max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "10")),  # Default 10 overflow
            pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),  # Default 30 seconds
            pool_recycle=int(os.getenv("DB_POOL_RECYCLE", "3600")),  # Default 1 hour
            echo=os.getenv("DB_ECHO", "false").lower() == "true",
            sqlite_busy_timeout=float(os.getenv("SQLITE_BUSY_TIMEOUT", "30")),
            # 0 or empty disables the default bound
            store_timeout_seconds=float(store_timeout) if store_timeout and float(store_timeout) > 0 else None,
            auto_migrate=os.getenv("DB_AUTO_MIGRATE", "true").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")
