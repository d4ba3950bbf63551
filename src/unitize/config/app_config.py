"""Application configuration loader.

Loads centralized configuration from data/config/app_config_v1.yaml,
falling back to built-in defaults when the file is absent.

Usage:
    from unitize.config.app_config import load_app_config, get_data_dir

    config = load_app_config()
    data_dir = get_data_dir()
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/app_config_v1.yaml")

# Environment override for the storage directory
DATA_DIR_ENV = "UNITIZE_DATA_DIR"


@dataclass
class StorageConfig:
    """Where and how JSON documents are persisted."""

    data_dir: str = "data/store"
    atomic_writes: bool = True


@dataclass
class ApiConfig:
    """HTTP API settings."""

    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    default_page_size: int = 20


@dataclass
class ReviewConfig:
    """Review scheduling limits."""

    max_interval_days: int = 365
    due_cards_limit: int = 20


@dataclass
class AppConfig:
    """Application-wide configuration."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    review: ReviewConfig = field(default_factory=ReviewConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "storage": {
            "data_dir": "data/store",
            "atomic_writes": True,
        },
        "api": {
            "cors_origins": ["*"],
            "default_page_size": 20,
        },
        "review": {
            "max_interval_days": 365,
            "due_cards_limit": 20,
        },
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    storage_data = data.get("storage") or {}
    storage = StorageConfig(
        data_dir=storage_data.get("data_dir", "data/store"),
        atomic_writes=bool(storage_data.get("atomic_writes", True)),
    )

    api_data = data.get("api") or {}
    api = ApiConfig(
        cors_origins=list(api_data.get("cors_origins", ["*"])),
        default_page_size=int(api_data.get("default_page_size", 20)),
    )

    review_data = data.get("review") or {}
    review = ReviewConfig(
        max_interval_days=int(review_data.get("max_interval_days", 365)),
        due_cards_limit=int(review_data.get("due_cards_limit", 20)),
    )

    return AppConfig(storage=storage, api=api, review=review)


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config, using defaults when no file exists.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    data: dict[str, Any]

    if CONFIG_FILE.exists():
        logger.debug("loading_app_config", source=str(CONFIG_FILE))
        data = yaml.safe_load(CONFIG_FILE.read_text(encoding="utf-8")) or {}
    else:
        logger.debug("using_default_config")
        data = _get_defaults()

    config = _parse_config(data)

    env_data_dir = os.environ.get(DATA_DIR_ENV)
    if env_data_dir:
        config.storage.data_dir = env_data_dir

    _cached_config = config
    return _cached_config


def get_data_dir() -> Path:
    """Directory holding the JSON documents."""
    return Path(load_app_config().storage.data_dir)


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
