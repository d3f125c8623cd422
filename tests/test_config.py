"""Tests for configuration loading."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from discogs_workbench import config
from discogs_workbench.catalog import Mode
from discogs_workbench.config import Settings, get_settings, set_config_value


def write_config(data: dict) -> None:
    config.CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    config.CONFIG_FILE.write_text(yaml.dump(data))


class TestSettings:
    """Tests for Settings sources and derived values."""

    def test_defaults(self):
        settings = Settings()

        assert settings.mode == Mode.EXPLORE
        assert settings.site_url == "http://localhost:4321"
        assert settings.boot_timeout_seconds == 15.0
        assert settings.load_timeout_seconds == 20.0
        assert settings.max_display_rows == 100
        assert settings.run_on_click is False
        assert settings.manifest_url == "http://localhost:4321/data/web_demo_pack_v1/demo_manifest.json"

    def test_env_variables(self, monkeypatch):
        monkeypatch.setenv("DISCOGS_WORKBENCH_MODE", "showcase")
        monkeypatch.setenv("DISCOGS_WORKBENCH_MAX_DISPLAY_ROWS", "25")

        settings = Settings()

        assert settings.mode == Mode.SHOWCASE
        assert settings.max_display_rows == 25

    def test_yaml_file(self):
        write_config({"site_url": "https://demo.example.org", "run_on_click": True})

        settings = Settings()

        assert settings.site_url == "https://demo.example.org"
        assert settings.run_on_click is True

    def test_env_overrides_yaml(self, monkeypatch):
        write_config({"mode": "showcase"})
        monkeypatch.setenv("DISCOGS_WORKBENCH_MODE", "explore")

        assert Settings().mode == Mode.EXPLORE

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("DISCOGS_WORKBENCH_DEBUG=true\n")

        assert Settings().debug is True

    def test_overrides_win_and_none_is_ignored(self, monkeypatch):
        monkeypatch.setenv("DISCOGS_WORKBENCH_SITE_URL", "http://from-env")

        assert get_settings(site_url="http://from-cli").site_url == "http://from-cli"
        assert get_settings(site_url=None).site_url == "http://from-env"

    def test_manifest_url_keeps_origin_only(self):
        settings = Settings(site_url="http://host:8080/some/page/")
        assert settings.manifest_url == "http://host:8080/data/web_demo_pack_v1/demo_manifest.json"

    def test_vfs_dir_derived_from_data_dir(self, tmp_path):
        settings = Settings(data_dir=tmp_path / "state")
        assert settings.vfs_dir == tmp_path / "state" / "vfs"

    def test_explicit_vfs_dir(self, tmp_path):
        settings = Settings(data_dir=tmp_path / "state", vfs_dir=tmp_path / "cache")
        assert settings.vfs_dir == tmp_path / "cache"

    def test_invalid_mode(self):
        with pytest.raises(ValidationError):
            Settings(mode="presentation")


class TestSetConfigValue:
    """Tests for writing the config file."""

    def test_creates_file(self):
        path = set_config_value("mode", "showcase")

        assert path == config.CONFIG_FILE
        assert yaml.safe_load(path.read_text()) == {"mode": "showcase"}
        assert Settings().mode == Mode.SHOWCASE

    def test_preserves_other_keys(self):
        write_config({"site_url": "http://keep-me"})

        set_config_value("max-display-rows", "50")

        data = yaml.safe_load(config.CONFIG_FILE.read_text())
        assert data == {"site_url": "http://keep-me", "max_display_rows": "50"}
        assert Settings().max_display_rows == 50

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown config key: colour"):
            set_config_value("colour", "blue")
        assert not config.CONFIG_FILE.exists()

    def test_invalid_value_not_written(self):
        with pytest.raises(ValidationError):
            set_config_value("boot_timeout_seconds", "soon")
        assert not Path(config.CONFIG_FILE).exists()
