"""Application configuration objects."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings used to configure the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(
        default="NexData",
        description="Human friendly name shown in the navigation bar.",
    )
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Deployment environment flag used for logging and debug mode.",
    )
    storage_path: Path = Field(
        default=Path("nexdata_records.json"),
        description="JSON file holding the whole record collection.",
    )
    secret_key: str = Field(
        default="nexdata-secret-key",
        description="Flask secret used to sign flash notifications.",
    )
    openai_api_key: str = Field(
        default="",
        description="Credential for the extraction service. Empty disables AI entry.",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="Model used to turn free-form text into records.",
    )
    log_level: str = Field(default="INFO", description="Root log level for the package.")
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=5000, ge=1, le=65535)

    @field_validator("storage_path")
    @classmethod
    def _validate_storage_path(cls, value: Path) -> Path:
        if value.suffix.lower() != ".json":
            raise ValueError("storage_path should point at a .json file")
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level '{value}'")
        return level


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of :class:`Settings`."""

    return Settings()


__all__ = ["Settings", "get_settings"]
