"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - get_settings() is cached (lru_cache) — single instance per process
    - Settings only seed LockingConfig; per-type overrides are passed in code

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - OPTILOCK_ env prefix: the library is embedded in host applications
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="OPTILOCK_", case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///optilock.db"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres URLs come as postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Locking
    default_version_column: str = "lock_version"
    locking_enabled_by_default: bool = True

    @field_validator("default_version_column")
    @classmethod
    def non_blank_column(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("default_version_column must not be blank")
        return v.strip()

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
