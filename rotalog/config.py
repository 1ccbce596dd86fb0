"""Configuration module — frozen dataclass loaded from YAML and environment variables."""

import logging
import os
from dataclasses import dataclass, fields, replace

import yaml

from rotalog.errors import ConfigError

logger = logging.getLogger(__name__)

NAMING_SCHEMES = ("timestamp", "index")
COMPRESSION_ALGORITHMS = ("gzip", "bz2", "xz")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class WriterConfig:
    base_path: str = "./logs/application.log"
    max_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    max_backups: int = 5  # 0 keeps every backup
    compress: bool = False
    compression_algorithm: str = "gzip"
    compression_level: int = 6
    naming: str = "timestamp"
    max_age_days: int = 0  # 0 disables age-based purge
    rotation_interval_seconds: int = 0  # 0 disables time-based rotation
    background_retention: bool = False

    def __post_init__(self):
        if not self.base_path:
            raise ConfigError("base_path is required")
        if self.max_size_bytes <= 0:
            raise ConfigError(f"max_size_bytes must be > 0, got {self.max_size_bytes}")
        if self.max_backups < 0:
            raise ConfigError(f"max_backups must be >= 0, got {self.max_backups}")
        if self.naming not in NAMING_SCHEMES:
            raise ConfigError(f"Unsupported naming scheme: {self.naming}")
        if self.compression_algorithm not in COMPRESSION_ALGORITHMS:
            raise ConfigError(f"Unsupported compression algorithm: {self.compression_algorithm}")
        if not 0 <= self.compression_level <= 9:
            raise ConfigError(f"compression_level must be 0-9, got {self.compression_level}")
        if self.max_age_days < 0 or self.rotation_interval_seconds < 0:
            raise ConfigError("max_age_days and rotation_interval_seconds must be >= 0")


def load_yaml_config(path: str | None) -> dict:
    """Load writer options from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data


def _from_mapping(base: WriterConfig, data: dict) -> WriterConfig:
    known = {f.name for f in fields(WriterConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
    try:
        return replace(base, **data)
    except TypeError as e:
        raise ConfigError(f"Invalid config value type: {e}") from e


def load_config(path: str | None = None, environ=None) -> WriterConfig:
    """Build WriterConfig from defaults, an optional YAML file, then env vars.

    Later sources win. The YAML path may also come from ``ROTALOG_CONFIG``.
    """
    env = os.environ if environ is None else environ
    config = _from_mapping(WriterConfig(), load_yaml_config(path or env.get("ROTALOG_CONFIG")))

    overrides = {}
    if "LOG_BASE_PATH" in env:
        overrides["base_path"] = env["LOG_BASE_PATH"]

    # MAX_FILE_SIZE_BYTES takes precedence over MAX_FILE_SIZE_MB
    raw_bytes = env.get("MAX_FILE_SIZE_BYTES")
    raw_mb = env.get("MAX_FILE_SIZE_MB")
    try:
        if raw_bytes is not None:
            overrides["max_size_bytes"] = int(raw_bytes)
        elif raw_mb is not None:
            overrides["max_size_bytes"] = int(float(raw_mb) * 1024 * 1024)

        for key, name in (
            ("MAX_BACKUPS", "max_backups"),
            ("COMPRESSION_LEVEL", "compression_level"),
            ("MAX_AGE_DAYS", "max_age_days"),
            ("ROTATION_INTERVAL_SECONDS", "rotation_interval_seconds"),
        ):
            if key in env:
                overrides[name] = int(env[key])
    except ValueError as e:
        raise ConfigError(f"Invalid numeric config value: {e}") from e

    if "COMPRESSION_ENABLED" in env:
        overrides["compress"] = _parse_bool(env["COMPRESSION_ENABLED"])
    if "BACKGROUND_RETENTION" in env:
        overrides["background_retention"] = _parse_bool(env["BACKGROUND_RETENTION"])
    if "COMPRESSION_ALGORITHM" in env:
        overrides["compression_algorithm"] = env["COMPRESSION_ALGORITHM"].strip().lower()
    if "BACKUP_NAMING" in env:
        overrides["naming"] = env["BACKUP_NAMING"].strip().lower()

    return replace(config, **overrides)
