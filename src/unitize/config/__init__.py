"""Configuration package for unitize."""

from unitize.config.app_config import (
    ApiConfig,
    AppConfig,
    ReviewConfig,
    StorageConfig,
    clear_config_cache,
    get_data_dir,
    load_app_config,
)

__all__ = [
    "ApiConfig",
    "AppConfig",
    "ReviewConfig",
    "StorageConfig",
    "clear_config_cache",
    "get_data_dir",
    "load_app_config",
]
