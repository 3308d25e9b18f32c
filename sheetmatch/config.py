"""
Configuration module.
=====================

Loads service settings from environment variables and an optional ``.env`` file.
Matching heuristics are not configured here; they live next to the code that
uses them (``sheets/config.py`` and ``matching/config.py``).
"""

from typing import Optional

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """
    Service settings, populated from the environment.

    Attributes:
        SHEETMATCH_DB_PATH: SQLite file holding extracted rows and processing status
        SHEETMATCH_STORAGE_ROOT: local object storage root; each bucket is a subdirectory
        SHEETMATCH_SCHEMA_PATH: YAML file describing target tables and their columns
        SHEETMATCH_LOG_LEVEL: level for the ``sheetmatch`` logger tree
        SHEETMATCH_MAX_WORKERS: tables processed concurrently within one import
        SHEETMATCH_PREVIEW_ROW_LIMIT: sample rows returned per table in preview mode
        SHEETMATCH_HEADER_SCAN_ROWS: rows inspected by header detection
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    SHEETMATCH_DB_PATH: str = "sheetmatch.db"
    SHEETMATCH_STORAGE_ROOT: str = "storage"
    SHEETMATCH_SCHEMA_PATH: Optional[str] = None
    SHEETMATCH_LOG_LEVEL: str = "INFO"
    SHEETMATCH_MAX_WORKERS: int = 1
    SHEETMATCH_PREVIEW_ROW_LIMIT: int = 40
    SHEETMATCH_HEADER_SCAN_ROWS: int = 25

    @field_validator("SHEETMATCH_MAX_WORKERS", "SHEETMATCH_PREVIEW_ROW_LIMIT", "SHEETMATCH_HEADER_SCAN_ROWS")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be a positive integer")
        return v

    @field_validator("SHEETMATCH_LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = (v or "").strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v!r}")
        return level


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the cached settings singleton, creating it on first call."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next ``get_settings()`` re-reads the environment."""
    global _settings_instance
    _settings_instance = None
