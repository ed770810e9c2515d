"""Configuration settings for the SPED extractor."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Flat settings read from environment variables or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="SPED_LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="SPED_LOG_FORMAT"
    )

    # Input handling
    encoding: str = Field(
        default="latin-1",
        validation_alias="SPED_ENCODING",
        description="Text encoding used by the CLI when reading files",
    )
    sample_lines: int = Field(
        default=100,
        ge=1,
        validation_alias="SPED_SAMPLE_LINES",
        description="Lines scanned when classifying a file by content",
    )
    # Statutory tables override
    tables_path: Path | None = Field(
        default=None,
        validation_alias="SPED_TABLES_PATH",
        description="YAML file replacing the bundled statutory tables",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
