"""Workbench configuration using pydantic-settings."""

from pathlib import Path
from typing import Any
from urllib.parse import urljoin

import yaml
from pydantic import model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from .catalog import Mode


CONFIG_DIR = Path.home() / ".discogs-workbench"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

DEFAULT_MANIFEST_PATH = "/data/web_demo_pack_v1/demo_manifest.json"


class Settings(BaseSettings):
    """
    Workbench settings.

    Sources, highest priority first:
    1. Explicit keyword arguments (CLI options)
    2. Environment variables (e.g., DISCOGS_WORKBENCH_MODE=showcase)
    3. .env file in the working directory
    4. Config file (~/.discogs-workbench/config.yaml)
    5. Defaults
    """

    model_config = SettingsConfigDict(
        env_prefix="DISCOGS_WORKBENCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    mode: Mode = Mode.EXPLORE
    debug: bool = False

    # Where the dataset pack is published (the "page origin")
    site_url: str = "http://localhost:4321"
    manifest_path: str = DEFAULT_MANIFEST_PATH

    # Timeouts (seconds)
    boot_timeout_seconds: float = 15.0
    load_timeout_seconds: float = 20.0
    http_timeout_seconds: float = 30.0

    max_display_rows: int = 100

    # Palette: clicking a row loads and runs instead of only loading
    run_on_click: bool = False

    # Local state; vfs_dir defaults to a subdir of data_dir
    data_dir: Path = CONFIG_DIR
    vfs_dir: Path | None = None
    log_file: Path | None = None

    # DuckDB settings; threads=None lets the selected bundle decide
    duckdb_threads: int | None = None
    duckdb_memory_limit: str = "1GB"

    # Pack server
    public_dir: Path = Path("./public")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=CONFIG_FILE),
        )

    @model_validator(mode="after")
    def set_default_paths(self) -> "Settings":
        """Derive vfs_dir from data_dir if not explicitly provided."""
        if self.vfs_dir is None:
            self.vfs_dir = self.data_dir / "vfs"
        return self

    @property
    def manifest_url(self) -> str:
        """Absolute manifest URL resolved against the site URL."""
        return urljoin(self.site_url, self.manifest_path)


def get_settings(**overrides: Any) -> Settings:
    """Load settings, dropping overrides that were not given."""
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def _normalize_key(key: str) -> str:
    return key.lower().replace("-", "_")


def set_config_value(key: str, value: str) -> Path:
    """Write a single key into the YAML config file.

    Raises ValueError for keys that are not settings fields.
    """
    key_normalized = _normalize_key(key)
    if key_normalized not in Settings.model_fields:
        raise ValueError(f"Unknown config key: {key}")

    # Reject values that would make every later load invalid
    Settings(**{key_normalized: value})

    data: dict[str, Any] = {}
    if CONFIG_FILE.exists():
        with open(CONFIG_FILE) as f:
            data = yaml.safe_load(f) or {}

    data[key_normalized] = value
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    with open(CONFIG_FILE, "w") as f:
        yaml.dump(data, f, default_flow_style=False)

    return CONFIG_FILE
