"""
Vidora Core Settings — content service configuration.

Values are read from the environment (prefix ``VIDORA_``) or a local ``.env``.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8",
        env_prefix="VIDORA_", case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "Vidora"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api/v1"
    cors_origins: List[str] = ["*"]

    # ── PostgreSQL ───────────────────────────────────────────────────────
    db_host: str = "postgres"
    db_port: int = 5432
    db_user: str = "vidora"
    db_password: str = "vidora_secret"
    db_name: str = "vidora"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_echo: bool = False

    # Full URL wins over the parts above (tests point this at sqlite+aiosqlite)
    database_url_override: Optional[str] = None

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # ── Media Store ──────────────────────────────────────────────────────
    media_root: str = "/app/data/media"
    media_base_url: str = "http://localhost:8000/media"
    ffprobe_binary: str = "ffprobe"
    ffprobe_timeout_seconds: int = 30
    upload_temp_dir: str = "/tmp/vidora"

    # ── Pagination / Search ──────────────────────────────────────────────
    max_page_size: int = 10
    search_case_sensitive: bool = False

    # ── Cascade ──────────────────────────────────────────────────────────
    # Upper bound on concurrently running fan-out steps (one session each).
    # Keep at or below db_pool_size.
    cascade_max_concurrency: int = 4


@lru_cache()
def get_settings() -> Settings:
    return Settings()
