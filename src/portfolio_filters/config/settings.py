"""Engine settings and configuration."""

from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

STORAGE_BACKENDS = ("memory", "json", "duckdb")

# Default file per file-backed storage backend, under data/
DEFAULT_STORAGE_FILES = {
    "json": "filters.json",
    "duckdb": "filters.duckdb",
}


def _env_flag(name: str, default: str = "false") -> bool:
    """Read a boolean flag from the environment."""
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class StorageConfig:
    """Key-value storage settings for presets and session state."""

    backend: str = field(
        default_factory=lambda: os.getenv("PORTFOLIO_FILTERS_STORAGE", "memory").lower()
    )
    path: Optional[Path] = field(
        default_factory=lambda: (
            Path(os.environ["PORTFOLIO_FILTERS_STORAGE_PATH"])
            if os.getenv("PORTFOLIO_FILTERS_STORAGE_PATH")
            else None
        )
    )
    presets_key: str = field(
        default_factory=lambda: os.getenv(
            "PORTFOLIO_FILTERS_PRESETS_KEY", "portfolio_filters.presets"
        )
    )
    state_key: str = field(
        default_factory=lambda: os.getenv(
            "PORTFOLIO_FILTERS_STATE_KEY", "portfolio_filters.state"
        )
    )
    persist_filter_state: bool = field(
        default_factory=lambda: _env_flag("PORTFOLIO_FILTERS_PERSIST_STATE")
    )

    def __post_init__(self):
        if self.backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"Unknown storage backend '{self.backend}', "
                f"expected one of {', '.join(STORAGE_BACKENDS)}"
            )
        if self.path is None and self.backend in DEFAULT_STORAGE_FILES:
            self.path = PROJECT_ROOT / "data" / DEFAULT_STORAGE_FILES[self.backend]
        elif self.path is not None:
            self.path = Path(self.path)


@dataclass
class FilterConfig:
    """Thresholds used when applying filters to position data."""

    small_balance_threshold: float = field(
        default_factory=lambda: float(os.getenv("PORTFOLIO_FILTERS_SMALL_BALANCE", "10"))
    )


@dataclass
class AppConfig:
    """Logging settings read by ``setup_logging``."""

    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: Optional[Path] = field(
        default_factory=lambda: Path(os.environ["LOG_FILE"]) if os.getenv("LOG_FILE") else None
    )


@dataclass
class Config:
    """Main configuration container."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)
    app: AppConfig = field(default_factory=AppConfig)


# Global config instance
config = Config()
