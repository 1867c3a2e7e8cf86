"""Tests for configuration loading."""

import pytest

from pydantic import ValidationError

from src.utils.config import Settings, load_config, save_config


class TestLoadConfig:
    """Tests for YAML configuration."""

    def test_defaults_when_file_missing(self, tmp_path):
        settings = load_config(tmp_path / "missing.yaml")

        assert settings.database.path == "soundbase.db"
        assert settings.database.url == "sqlite+aiosqlite:///soundbase.db"
        assert settings.recommendations.limit == 10
        assert settings.analytics.top_songs_days == 7
        assert settings.web.port == 8080

    def test_yaml_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "database:\n  path: /data/catalog.db\n"
            "recommendations:\n  limit: 25\n"
            "logging:\n  level: DEBUG\n  file: ~/soundbase.log\n"
        )

        settings = load_config(path)

        assert settings.database.url == "sqlite+aiosqlite:////data/catalog.db"
        assert settings.recommendations.limit == 25
        assert settings.logging.level == "DEBUG"
        assert settings.logging.file_path is not None
        assert "~" not in str(settings.logging.file_path)

    def test_env_var_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CATALOG_DIR", "/srv/music")
        path = tmp_path / "config.yaml"
        path.write_text("database:\n  path: ${CATALOG_DIR}/catalog.db\n")

        settings = load_config(path)

        assert settings.database.path == "/srv/music/catalog.db"

    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SOUNDBASE_WEB__PORT", "9000")

        settings = load_config(tmp_path / "missing.yaml")

        assert settings.web.port == 9000

    def test_invalid_limit(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("recommendations:\n  limit: 0\n")

        with pytest.raises(ValidationError):
            load_config(path)

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "config.yaml"
        settings = Settings()
        settings.recommendations.limit = 5
        settings.database.path = "other.db"

        save_config(settings, path)
        reloaded = load_config(path)

        assert reloaded.recommendations.limit == 5
        assert reloaded.database.path == "other.db"
