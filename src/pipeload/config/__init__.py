"""
Configuration management with typed Pydantic models.

Provides explicit, per-run import settings and
environment-aware configuration loading.
"""

from pipeload.config.loader import load_config
from pipeload.config.settings import (
    DatabaseConfig,
    ImportSettings,
    LoadConfig,
    LoggingConfig,
    PostInstallConfig,
    SourceConfig,
    SpecificationConfig,
    TableMode,
)

__all__ = [
    "DatabaseConfig",
    "ImportSettings",
    "LoadConfig",
    "LoggingConfig",
    "PostInstallConfig",
    "SourceConfig",
    "SpecificationConfig",
    "TableMode",
    "load_config",
]
