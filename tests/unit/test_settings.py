"""Unit tests for settings sources."""

from __future__ import annotations

import pytest

from fso_tables import config
from fso_tables.errors import ConfigurationError
from fso_tables.settings import (
    ChainedSettings,
    EnvironmentSettings,
    StaticSettings,
    YamlSettings,
    default_settings,
)

KEY = config.SERVER_PATH_SETTING


class TestStaticSettings:
    @pytest.mark.unit
    def test_get_and_update(self):
        settings = StaticSettings({KEY: "/a"})
        assert settings.get(KEY) == "/a"
        settings.update(KEY, "/b")
        assert settings.get(KEY) == "/b"
        assert settings.get("other") is None


class TestEnvironmentSettings:
    @pytest.mark.unit
    def test_reads_environment_on_each_lookup(self, monkeypatch):
        settings = EnvironmentSettings()
        assert settings.get(KEY) is None
        monkeypatch.setenv(config.SERVER_PATH_ENV, "/opt/fso/server")
        assert settings.get(KEY) == "/opt/fso/server"

    @pytest.mark.unit
    def test_empty_value_is_unset(self, monkeypatch):
        monkeypatch.setenv(config.SERVER_PATH_ENV, "")
        assert EnvironmentSettings().get(KEY) is None

    @pytest.mark.unit
    def test_unmapped_key(self):
        assert EnvironmentSettings().get("fsoTables.other") is None


class TestYamlSettings:
    @pytest.mark.unit
    def test_missing_file(self, tmp_path):
        assert YamlSettings(tmp_path / "missing.yaml").get(KEY) is None

    @pytest.mark.unit
    def test_flat_key(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("fsoTables.serverPath: /opt/fso/server\n")
        assert YamlSettings(path).get(KEY) == "/opt/fso/server"

    @pytest.mark.unit
    def test_nested_key(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("fsoTables:\n  serverPath: /opt/fso/nested\n")
        assert YamlSettings(path).get(KEY) == "/opt/fso/nested"

    @pytest.mark.unit
    def test_reread_after_change(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("fsoTables.serverPath: /first\n")
        settings = YamlSettings(path)
        assert settings.get(KEY) == "/first"
        path.write_text("fsoTables.serverPath: /second\n")
        assert settings.get(KEY) == "/second"

    @pytest.mark.unit
    def test_empty_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("")
        assert YamlSettings(path).get(KEY) is None

    @pytest.mark.unit
    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("fsoTables: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid settings file"):
            YamlSettings(path).get(KEY)

    @pytest.mark.unit
    def test_non_mapping(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- one\n- two\n")
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            YamlSettings(path).get(KEY)

    @pytest.mark.unit
    def test_directory_is_unreadable(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read settings file"):
            YamlSettings(tmp_path).get(KEY)


class TestChainedSettings:
    @pytest.mark.unit
    def test_first_non_null_wins(self):
        chain = ChainedSettings(
            StaticSettings(),
            StaticSettings({KEY: "/second"}),
            StaticSettings({KEY: "/third"}),
        )
        assert chain.get(KEY) == "/second"

    @pytest.mark.unit
    def test_all_unset(self):
        assert ChainedSettings(StaticSettings()).get(KEY) is None


class TestDefaultSettings:
    @pytest.mark.unit
    def test_override_beats_file_and_env(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text("fsoTables.serverPath: /from-file\n")
        monkeypatch.setenv(config.SERVER_PATH_ENV, "/from-env")
        assert default_settings("/override", path).get(KEY) == "/override"

    @pytest.mark.unit
    def test_file_beats_env(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text("fsoTables.serverPath: /from-file\n")
        monkeypatch.setenv(config.SERVER_PATH_ENV, "/from-env")
        assert default_settings(None, path).get(KEY) == "/from-file"

    @pytest.mark.unit
    def test_env_fallback(self, tmp_path, monkeypatch):
        monkeypatch.setenv(config.SERVER_PATH_ENV, "/from-env")
        assert default_settings(None, tmp_path / "none.yaml").get(KEY) == "/from-env"
