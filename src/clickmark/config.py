"""Configuration loading from environment variables and clickmark.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_CONFIG_FILENAME = "clickmark.toml"


@dataclass
class DirectoryConfig:
    """Where the remote directory lives and how to reach it."""

    base_url: str = ""
    token: str = ""
    timeout: int = 30


@dataclass
class StoreConfig:
    """Limits and policies of the entry store."""

    capacity: int = 200
    max_url_length: int = 2083
    never_clicked_first: bool = True


@dataclass
class ClickmarkConfig:
    """Top-level clickmark configuration."""

    directory: DirectoryConfig = field(default_factory=DirectoryConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    principal: str = ""
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> ClickmarkConfig:
    """Load configuration from environment variables and optional clickmark.toml.

    Priority: environment variables > clickmark.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        for candidate in [
            Path.cwd() / _CONFIG_FILENAME,
            Path.home() / ".clickmark" / _CONFIG_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    directory_data = file_data.get("directory", {})
    store_data = file_data.get("store", {})

    return ClickmarkConfig(
        directory=DirectoryConfig(
            base_url=os.getenv("CLICKMARK_BASE_URL", directory_data.get("base_url", "")),
            token=os.getenv("CLICKMARK_TOKEN", directory_data.get("token", "")),
            timeout=int(os.getenv("CLICKMARK_TIMEOUT", directory_data.get("timeout", 30))),
        ),
        store=StoreConfig(
            capacity=int(os.getenv("CLICKMARK_CAPACITY", store_data.get("capacity", 200))),
            max_url_length=int(store_data.get("max_url_length", 2083)),
            never_clicked_first=bool(store_data.get("never_clicked_first", True)),
        ),
        principal=os.getenv("CLICKMARK_PRINCIPAL", file_data.get("principal", "")),
        log_level=os.getenv("CLICKMARK_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
