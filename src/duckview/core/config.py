"""Configuration management.

Uses pydantic-settings for type-safe configuration from environment variables.
"""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    All settings can be overridden via environment variables.
    Prefix: DUCKVIEW_
    """

    model_config = SettingsConfigDict(
        env_prefix="DUCKVIEW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Pagination
    default_page_size: int = Field(
        default=20,
        description="Page size used until the user picks another one",
    )
    page_sizes: tuple[int, ...] = Field(
        default=(20, 50, 100),
        description="Page sizes the user can choose from",
    )

    # DuckDB
    duckdb_memory_limit: str = Field(
        default="2GB",
        description="Memory limit for DuckDB",
    )
    duckdb_threads: int = Field(
        default=4,
        description="Number of threads for DuckDB",
    )
    query_timeout_seconds: float | None = Field(
        default=None,
        description="Interrupt queries that run longer than this (None = no deadline)",
    )

    # Display
    max_cell_width: int = Field(
        default=80,
        description="Truncate cell text longer than this many characters",
    )
    blob_preview_chars: int = Field(
        default=25,
        description="Number of base64 characters shown for BLOB values",
    )

    # Logging
    log_level: str = Field(default="WARNING")
    log_format: str = Field(default="console")  # 'json' or 'console'

    @model_validator(mode="after")
    def _check_page_sizes(self) -> "Settings":
        if not self.page_sizes or any(size < 1 for size in self.page_sizes):
            raise ValueError("page_sizes must be a non-empty set of positive integers")
        if self.default_page_size not in self.page_sizes:
            raise ValueError(
                f"default_page_size {self.default_page_size} is not one of {self.page_sizes}"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
