"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- CuboxConfig: Cubox server, credentials and HTTP settings
- SyncConfig: Timer interval and sync state settings
- VaultConfig: Vault location, daily note naming and entry rendering
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml


KNOWN_DOMAINS = ("cubox.cc", "cubox.pro")
DEFAULT_LINK_TEMPLATE = "[{{title}}]({{url}})"


@dataclass
class CuboxConfig:
    """Configuration for the Cubox API.

    Attributes:
        domain: Cubox server region ("cubox.cc" international, "cubox.pro"), empty if unset
        api_key: Inline API key, or the full API link copied from Cubox
        api_key_env: Environment variable consulted when api_key is empty
        timeout_seconds: HTTP request timeout
        retries: Number of retry attempts for failed requests
        trust_env: Whether to respect system proxy settings
        page_limit: Number of cards requested per page
    """

    domain: str = ""
    api_key: str = ""
    api_key_env: str = "CUBOX_API_KEY"
    timeout_seconds: float = 20.0
    retries: int = 2
    trust_env: bool = True
    page_limit: int = 500


@dataclass
class SyncConfig:
    """Configuration for sync scheduling and state.

    Attributes:
        interval_minutes: Minutes between automatic passes; 0 disables the timer
        recent_ids_capacity: Size of the recent-id dedup window
        state_path: JSON file holding the sync cursor
    """

    interval_minutes: float = 5
    recent_ids_capacity: int = 200
    state_path: str = ".cubox_sync.json"


@dataclass
class VaultConfig:
    """Configuration for the destination vault.

    Attributes:
        root: Vault directory on disk
        daily_folder: Folder of daily notes, relative to the vault root
        daily_format: strftime pattern for the daily note file name
        link_template: Template for link cards using {{title}} and {{url}}
        image_folder: Folder for downloaded images, relative to the vault root
        image_width: Display width for image embeds; 0 leaves it unset
    """

    root: str = "."
    daily_folder: str = ""
    daily_format: str = "%Y-%m-%d"
    link_template: str = DEFAULT_LINK_TEMPLATE
    image_folder: str = "Cubox"
    image_width: int = 0


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the main log file
        directory: Directory for the log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "cubox-sync.jsonl"
    directory: str = "logs"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    cubox: CuboxConfig = field(default_factory=CuboxConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    vault: VaultConfig = field(default_factory=VaultConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


DEFAULT_CONFIG = AppConfig()


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults.

    Relative paths in the file are resolved against the file's directory.
    """
    if not path:
        return _fromdict(_asdict(DEFAULT_CONFIG))

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    cfg = _merge_config(DEFAULT_CONFIG, raw)
    _resolve_paths(cfg, Path(path).expanduser().resolve().parent)
    return cfg


def _resolve_paths(cfg: AppConfig, base: Path) -> None:
    """Anchor relative file locations at the config file's directory."""
    cfg.sync.state_path = _anchor(cfg.sync.state_path, base)
    cfg.vault.root = _anchor(cfg.vault.root, base)
    cfg.logging.directory = _anchor(cfg.logging.directory, base)


def _anchor(value: str, base: Path) -> str:
    path = Path(value).expanduser()
    return str(path if path.is_absolute() else base / path)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = _asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update({k: v for k, v in value.items() if k in data[key]})
    cfg = _fromdict(data)
    cfg.cubox.api_key = normalize_api_key(cfg.cubox.api_key)
    get_domain(cfg.cubox)
    return cfg


def _asdict(cfg: AppConfig) -> dict[str, Any]:
    """Convert AppConfig to nested dictionary."""
    return {
        "cubox": {
            "domain": cfg.cubox.domain,
            "api_key": cfg.cubox.api_key,
            "api_key_env": cfg.cubox.api_key_env,
            "timeout_seconds": cfg.cubox.timeout_seconds,
            "retries": cfg.cubox.retries,
            "trust_env": cfg.cubox.trust_env,
            "page_limit": cfg.cubox.page_limit,
        },
        "sync": {
            "interval_minutes": cfg.sync.interval_minutes,
            "recent_ids_capacity": cfg.sync.recent_ids_capacity,
            "state_path": cfg.sync.state_path,
        },
        "vault": {
            "root": cfg.vault.root,
            "daily_folder": cfg.vault.daily_folder,
            "daily_format": cfg.vault.daily_format,
            "link_template": cfg.vault.link_template,
            "image_folder": cfg.vault.image_folder,
            "image_width": cfg.vault.image_width,
        },
        "logging": {
            "level": cfg.logging.level,
            "console": cfg.logging.console,
            "file": cfg.logging.file,
            "format": cfg.logging.format,
            "filename": cfg.logging.filename,
            "directory": cfg.logging.directory,
        },
    }


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        cubox=CuboxConfig(**data["cubox"]),
        sync=SyncConfig(**data["sync"]),
        vault=VaultConfig(**data["vault"]),
        logging=LoggingConfig(**data["logging"]),
    )


def normalize_api_key(value: str | None) -> str:
    """Accept either a raw API key or the full API link Cubox shows.

    For a link such as ``https://cubox.pro/c/api/save/abc123`` the trailing
    path segment is the key.

    Raises:
        ValueError: If a link is given but has no path segment
    """
    api_key = (value or "").strip()
    if "://" not in api_key:
        return api_key
    parts = [part for part in urlparse(api_key).path.split("/") if part]
    if not parts:
        raise ValueError("API key not found in URL.")
    return parts[-1]


def get_api_key(cfg: CuboxConfig) -> str | None:
    """Get API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    if cfg.api_key_env:
        env_value = os.getenv(cfg.api_key_env)
        if env_value:
            return normalize_api_key(env_value) or None
    return None


def get_domain(cfg: CuboxConfig) -> str | None:
    """Return the configured domain, or None when unset.

    Raises:
        ValueError: If the domain is not a known Cubox region
    """
    domain = (cfg.domain or "").strip()
    if not domain:
        return None
    if domain not in KNOWN_DOMAINS:
        raise ValueError(
            f"Unsupported Cubox domain {domain!r}. Use one of: {', '.join(KNOWN_DOMAINS)}."
        )
    return domain
