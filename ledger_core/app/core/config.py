from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Ledger Core API"
    database_url: str = "sqlite:///ledger_core.db"
    log_level: str = "INFO"
    lock_timeout_seconds: float = 5.0
    description_max_length: int = 200
    # Only applied to server databases; SQLite keeps its default pool.
    pool_size: int = 10
    pool_recycle_seconds: int = 300

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LEDGER_",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
