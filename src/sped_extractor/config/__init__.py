"""Configuration module for the SPED extractor."""

from sped_extractor.config.logging import configure_logging
from sped_extractor.config.settings import Settings, get_settings
from sped_extractor.config.tables import (
    CreditRatio,
    StatutoryTables,
    load_statutory_tables,
)

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "CreditRatio",
    "StatutoryTables",
    "load_statutory_tables",
]
