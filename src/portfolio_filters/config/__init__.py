"""Configuration module for the filter engine."""

from .settings import config, Config, StorageConfig, FilterConfig, AppConfig, STORAGE_BACKENDS
from .logging_config import setup_logging, get_logger

__all__ = [
    # Settings
    "config",
    "Config",
    "StorageConfig",
    "FilterConfig",
    "AppConfig",
    "STORAGE_BACKENDS",
    # Logging
    "setup_logging",
    "get_logger",
]
