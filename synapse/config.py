"""
Configuration settings for the Synapse study orchestration service.

Uses Pydantic Settings for environment variable management with .env file support.
All variables are prefixed with SYNAPSE_ (e.g. SYNAPSE_LOG_LEVEL=DEBUG).
"""
from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path
from typing import Literal

from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SYNAPSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    data_dir: Path = Field(
        default=Path.home() / ".synapse",
        description="Directory holding the local state database",
    )
    state_db_name: str = Field(
        default="state.db",
        description="SQLite file name inside data_dir",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # API Server
    # ========================================
    api_host: str = Field(
        default="127.0.0.1",
        description="API server host",
    )
    api_port: int = Field(
        default=8200,
        description="API server port",
    )

    # ========================================
    # SM-2 Settings (spaced repetition)
    # ========================================
    sm2_initial_efactor: float = Field(
        default=2.5,
        description="Ease factor given to new items",
    )
    sm2_minimum_efactor: float = Field(
        default=1.3,
        description="Lower bound of the ease factor",
    )
    sm2_first_interval: int = Field(
        default=1,
        description="Days until the review after the first success",
    )
    sm2_second_interval: int = Field(
        default=6,
        description="Days until the review after the second success",
    )
    sm2_maximum_interval: int = Field(
        default=36500,
        description="Longest interval (days) an item can be scheduled out",
    )

    # ========================================
    # Queues & Insights
    # ========================================
    daily_review_limit: int = Field(
        default=10,
        description="Default number of items in the daily review queue",
    )
    weak_node_limit: int = Field(
        default=5,
        description="Default number of weak concepts reported",
    )

    # ========================================
    # Activity Log Retention
    # ========================================
    activity_window_days: int = Field(
        default=60,
        description="Activity events older than this are pruned",
    )
    activity_max_entries: int = Field(
        default=3000,
        description="Maximum activity events kept per graph",
    )

    # ========================================
    # Graph Import
    # ========================================
    cycle_policy: Literal["reject", "break"] = Field(
        default="break",
        description="Reject graphs with prerequisite cycles, or break them deterministically",
    )

    @property
    def state_db_path(self) -> Path:
        """Full path to the SQLite state database."""
        return self.data_dir / self.state_db_name


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings | None = None, level: str | None = None) -> None:
    """
    Route loguru output according to settings.

    Args:
        settings: Settings to read log level and file from (defaults to cached settings)
        level: Explicit level overriding settings.log_level
    """
    settings = settings or get_settings()
    level = level or settings.log_level

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )

    if settings.log_file:
        logger.add(
            settings.log_file,
            level=level,
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
        )
