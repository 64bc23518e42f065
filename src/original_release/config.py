from __future__ import annotations

import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

from original_release.cache import CACHE_FILE_NAME

_TRUE_VALUES = ("true", "1", "yes")


class ResolverConfig(BaseModel):
    """Resolver behaviour flags."""

    prefer_original_release: bool = Field(default=True)
    # Process items from library added/updated events
    enable_automatic_processing: bool = Field(default=True)


class CacheConfig(BaseModel):
    """Processed-items cache configuration."""

    path: Path = Field(default=Path(CACHE_FILE_NAME))
    enabled: bool = Field(default=True)


class BatchConfig(BaseModel):
    """Batch run configuration."""

    workers: int = Field(default=4, ge=1)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="WARNING")  # DEBUG, INFO, WARNING, ERROR
    format: str = Field(default="%(message)s")
    hash_paths: bool = Field(default=False)


class Config(BaseModel):
    """
    Main configuration for original-release.

    Loads from TOML file with optional environment variable overrides.
    """

    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """
        Load configuration from TOML file with environment variable overrides.

        Environment variables take precedence and follow the pattern:
        ORIGINAL_RELEASE_<SECTION>_<KEY> (e.g., ORIGINAL_RELEASE_CACHE_PATH)

        All values are gathered into a single dictionary first, then validated
        by Pydantic to ensure consistent type checking and coercion.
        """
        config_dict: dict[str, object] = {}

        if config_path and config_path.exists():
            config_dict = tomllib.loads(config_path.read_text())

        config_dict = cls._merge_env_overrides(config_dict)
        return cls.model_validate(config_dict)

    @classmethod
    def _merge_env_overrides(cls, config_dict: dict[str, object]) -> dict[str, object]:
        """
        Merge environment variable overrides into config dictionary.

        Returns a new dictionary with env vars applied, ready for Pydantic validation.
        """
        env_prefix = "ORIGINAL_RELEASE_"

        resolver = cls._section(config_dict, "resolver")
        if prefer := os.getenv(f"{env_prefix}RESOLVER_PREFER_ORIGINAL_RELEASE"):
            resolver["prefer_original_release"] = prefer.lower() in _TRUE_VALUES
        if automatic := os.getenv(f"{env_prefix}RESOLVER_ENABLE_AUTOMATIC_PROCESSING"):
            resolver["enable_automatic_processing"] = automatic.lower() in _TRUE_VALUES

        cache = cls._section(config_dict, "cache")
        if cache_path := os.getenv(f"{env_prefix}CACHE_PATH"):
            cache["path"] = cache_path
        if cache_enabled := os.getenv(f"{env_prefix}CACHE_ENABLED"):
            cache["enabled"] = cache_enabled.lower() in _TRUE_VALUES

        batch = cls._section(config_dict, "batch")
        if workers := os.getenv(f"{env_prefix}BATCH_WORKERS"):
            batch["workers"] = workers

        logging_cfg = cls._section(config_dict, "logging")
        if log_level := os.getenv(f"{env_prefix}LOGGING_LEVEL"):
            logging_cfg["level"] = log_level
        if log_format := os.getenv(f"{env_prefix}LOGGING_FORMAT"):
            logging_cfg["format"] = log_format
        if hash_paths := os.getenv(f"{env_prefix}LOGGING_HASH_PATHS"):
            logging_cfg["hash_paths"] = hash_paths.lower() in _TRUE_VALUES

        return config_dict

    @staticmethod
    def _section(config_dict: dict[str, object], name: str) -> dict[str, object]:
        section = config_dict.setdefault(name, {})
        if not isinstance(section, dict):
            section = {}
            config_dict[name] = section
        return section
