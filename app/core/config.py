# app/core/config.py
from __future__ import annotations

"""
# MoviesNow CMS — Centralized Configuration (Pydantic v2)

Single `settings` object with strongly-typed, environment-driven config.

## Goals
- Safe defaults for local/dev; explicit where prod needs secrets.
- CSV → list helpers for role lists and CORS.
- Store ceilings (batch op count, transaction retries) live here so every
  service agrees on them.

## Usage
    from app.core.config import settings
"""

import logging
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)
load_dotenv()  # harmless in prod; convenient in dev


# ─────────────────────────────────────────────────────────────
# Small helpers
# ─────────────────────────────────────────────────────────────
def _split_csv(v: str | None) -> list[str]:
    """Split a comma-separated string into a trimmed list (empty-safe)."""
    if not v:
        return []
    return [s.strip() for s in str(v).split(",") if s and s.strip()]


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────
class Settings(BaseSettings):
    """
    Global application settings sourced from environment.

    Store:
        - `DOCSTORE_BACKEND` selects the in-memory or SQL document store.
        - `DOCSTORE_MAX_BATCH_OPS` is the store's per-commit ceiling;
          `PROPAGATION_MAX_BATCH_OPS` is what the slider fan-out actually
          queues per commit (kept below the store ceiling).

    Workflow:
        - `PRIVILEGED_ROLES` (CSV) may approve/reject series.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # don't crash on unknown keys
    )

    # ── App meta ──────────────────────────────────────────────
    PROJECT_NAME: str = "MoviesNow CMS"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENV: Literal["development", "staging", "production"] = "development"
    ENABLE_DOCS: bool = True

    # ── Security / JWT ────────────────────────────────────────
    JWT_SECRET_KEY: SecretStr = Field(...)
    JWT_ALGORITHM: Literal["HS256", "HS384", "HS512"] = "HS256"
    JWT_ISSUER: Optional[str] = None
    JWT_AUDIENCE: Optional[str] = None

    # ── Redis (public read cache) ─────────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_USE_TLS: bool = False
    PUBLIC_SERIES_CACHE_TTL_SECONDS: int = Field(60, ge=0, le=24 * 60 * 60)

    # ── Database (PostgreSQL) ─────────────────────────────────
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = Field(...)
    POSTGRES_DB: str = "moviesnow_cms"

    # ── Document store ────────────────────────────────────────
    DOCSTORE_BACKEND: Literal["memory", "sql"] = "memory"
    DOCSTORE_MAX_BATCH_OPS: int = Field(500, ge=1, le=10_000)
    TRANSACTION_MAX_ATTEMPTS: int = Field(5, ge=1, le=50)

    # ── Propagation / triggers ────────────────────────────────
    PROPAGATION_MAX_BATCH_OPS: int = Field(450, ge=1, le=10_000)
    TRIGGER_MAX_ATTEMPTS: int = Field(3, ge=1, le=20)

    # ── Slugs ─────────────────────────────────────────────────
    SLUG_MAX_LENGTH: int = Field(60, ge=8, le=255)
    SLUG_MAX_SUFFIX_ATTEMPTS: int = Field(50, ge=1, le=1000)

    # ── Workflow roles ────────────────────────────────────────
    PRIVILEGED_ROLES: str = "super_admin"

    # ── CORS ──────────────────────────────────────────────────
    FRONTEND_ORIGINS: Optional[str] = None  # CSV

    # ── Validators / normalizers ──────────────────────────────
    @field_validator("PRIVILEGED_ROLES", mode="before")
    @classmethod
    def _normalize_roles_csv(cls, v):
        return ",".join(s.lower() for s in _split_csv(str(v or "")))

    @field_validator("FRONTEND_ORIGINS", mode="before")
    @classmethod
    def _normalize_frontend_csv(cls, v):
        return None if v is None else ",".join(_split_csv(str(v)))

    @field_validator("PROPAGATION_MAX_BATCH_OPS")
    @classmethod
    def _propagation_below_store_ceiling(cls, v: int, info) -> int:
        store_cap = (info.data or {}).get("DOCSTORE_MAX_BATCH_OPS")
        if store_cap is not None and v > store_cap:
            log.warning(
                "PROPAGATION_MAX_BATCH_OPS=%s exceeds DOCSTORE_MAX_BATCH_OPS=%s; clamping", v, store_cap
            )
            return int(store_cap)
        return v

    # ── Derived / convenience properties ─────────────────────
    @property
    def DATABASE_URL(self) -> str:
        """Sync DSN (Alembic offline mode)."""
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def ASYNC_DATABASE_URL(self) -> str:
        """Async SQLAlchemy DSN."""
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

    @property
    def privileged_roles_list(self) -> List[str]:
        return _split_csv(self.PRIVILEGED_ROLES)

    @property
    def frontend_origins_list(self) -> List[str]:
        return _split_csv(self.FRONTEND_ORIGINS or "")


# Singleton instance
settings = Settings()
