"""
Unit tests for configuration loading.
"""

import json
from pathlib import Path

import pytest

from workspace_rewind.backup import ignore
from workspace_rewind.utils.config import BackupConfig, ConfigLoader, RewindConfig, load_config
from workspace_rewind.utils.errors import ConfigurationError


class TestBackupConfig:
    """Test BackupConfig validation."""

    def test_defaults(self):
        config = BackupConfig()

        assert config.backup_dir_name == ".backup"
        assert config.objects_dir_name == "objects"
        assert config.ignore_file_name == ".gitignore"
        assert config.default_ignore_rules == [".backup", ".operit"]

    def test_default_ignore_rules_match_loader_defaults(self):
        assert BackupConfig().default_ignore_rules == list(ignore.DEFAULT_IGNORE_RULES)
        assert BackupConfig().default_ignore_rules is not BackupConfig().default_ignore_rules

    @pytest.mark.parametrize("name", ["", "a/b", ".", ".."])
    def test_names_must_be_single_segment(self, name):
        with pytest.raises(ValueError):
            BackupConfig(backup_dir_name=name)

    def test_comma_separated_lists(self):
        config = BackupConfig(extra_text_extensions=".GLSL, wgsl", default_ignore_rules=".backup,dist/")

        assert config.extra_text_extensions == ["glsl", "wgsl"]
        assert config.default_ignore_rules == [".backup", "dist/"]


class TestConfigLoader:
    """Test ConfigLoader sources and merging."""

    def test_yaml_source(self, tmp_path):
        path = tmp_path / "rewind.yaml"
        path.write_text("debug: true\nbackup:\n  objects_dir_name: blobs\n")
        loader = ConfigLoader()
        loader.add_source(path)

        config = loader.load()

        assert config.debug is True
        assert config.backup.objects_dir_name == "blobs"
        assert config.backup.backup_dir_name == ".backup"

    def test_toml_source(self, tmp_path):
        path = tmp_path / "rewind.toml"
        path.write_text('[backup]\nextra_text_extensions = [".GLSL"]\n\n[logging]\nlevel = "debug"\n')
        loader = ConfigLoader()
        loader.add_source(path)

        config = loader.load()

        assert config.backup.extra_text_extensions == ["glsl"]
        assert config.logging.level == "DEBUG"

    def test_higher_priority_wins(self, tmp_path):
        low = tmp_path / "low.json"
        low.write_text(json.dumps({"backup": {"objects_dir_name": "low", "ignore_file_name": ".ignore"}}))
        loader = ConfigLoader()
        loader.add_source({"backup": {"objects_dir_name": "high"}}, priority=50)
        loader.add_source(low, priority=10)

        config = loader.load()

        assert config.backup.objects_dir_name == "high"
        assert config.backup.ignore_file_name == ".ignore"

    def test_env_file_source(self, tmp_path):
        path = tmp_path / "rewind.env"
        path.write_text("# local overrides\nREWIND_BACKUP__OBJECTS_DIR_NAME=blobs\nREWIND_DEBUG='yes'\n")
        loader = ConfigLoader()
        loader.add_source(path)

        config = loader.load()

        assert config.backup.objects_dir_name == "blobs"
        assert config.debug is True

    def test_environment_overrides_files(self, tmp_path, monkeypatch):
        path = tmp_path / "rewind.yaml"
        path.write_text("backup:\n  backup_dir_name: .from-file\n")
        monkeypatch.setenv("REWIND_BACKUP__BACKUP_DIR_NAME", ".from-env")
        monkeypatch.setenv("REWIND_LOGGING__BACKUP_COUNT", "3")
        loader = ConfigLoader()
        loader.add_source(path)

        config = loader.load()

        assert config.backup.backup_dir_name == ".from-env"
        assert config.logging.backup_count == 3

    def test_missing_file_is_skipped(self, tmp_path):
        loader = ConfigLoader()
        loader.add_source(tmp_path / "absent.yaml")

        assert loader.load() == RewindConfig()

    def test_malformed_low_priority_source_is_skipped(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{ nope")
        loader = ConfigLoader()
        loader.add_source(path, priority=10)

        assert loader.load().backup.backup_dir_name == ".backup"

    def test_malformed_high_priority_source_raises(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{ nope")
        loader = ConfigLoader()
        loader.add_source(path, priority=200)

        with pytest.raises(ConfigurationError):
            loader.load()

    def test_invalid_values_raise(self):
        loader = ConfigLoader()
        loader.add_source({"logging": {"level": "chatty"}})

        with pytest.raises(ConfigurationError) as exc_info:
            loader.load()

        assert "logging.level" in str(exc_info.value)

    def test_unknown_file_type(self):
        with pytest.raises(ConfigurationError):
            ConfigLoader().add_source(Path("config.ini"))

    def test_get_config_before_load(self):
        with pytest.raises(ConfigurationError):
            ConfigLoader().get_config()


def test_load_config_with_paths_and_extra(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    path = tmp_path / "custom.yaml"
    path.write_text("backup:\n  objects_dir_name: custom\n")

    config = load_config([path], extra_config={"debug": True})

    assert config.backup.objects_dir_name == "custom"
    assert config.debug is True
