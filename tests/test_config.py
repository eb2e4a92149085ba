"""
Tests for configuration loading and storage settings.
"""

from pathlib import Path

import pytest
import yaml

from transcript_vault.config import (
    DEFAULT_STORAGE_CONFIG,
    ENV_OVERRIDES,
    Config,
    StorageSettings,
    deep_merge,
    load_config,
    load_yaml_file,
)
from transcript_vault.storage import TranscriptStorage


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for variable in ENV_OVERRIDES:
        monkeypatch.delenv(variable, raising=False)


def write_config(config_dir: Path, data: dict) -> Path:
    config_dir.mkdir(parents=True, exist_ok=True)
    path = config_dir / "storage_config.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestDeepMerge:
    """Test nested dictionary merging."""

    def test_override_nested_value(self):
        merged = deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}})
        assert merged == {"a": {"b": 1, "c": 3}}

    def test_base_not_mutated(self):
        base = {"a": {"b": 1}}
        deep_merge(base, {"a": {"b": 2}})
        assert base == {"a": {"b": 1}}


class TestLoadConfig:
    """Test YAML loading with defaults and environment overrides."""

    def test_defaults_when_file_missing(self, tmp_path):
        config = load_config(tmp_path / "nowhere")
        assert config == DEFAULT_STORAGE_CONFIG
        assert config is not DEFAULT_STORAGE_CONFIG

    def test_file_overrides_defaults(self, tmp_path):
        write_config(tmp_path, {"storage": {"key_prefix": "archive"}, "cleanup": {"orphan_min_age_days": 7}})
        config = load_config(tmp_path)

        assert config["storage"]["key_prefix"] == "archive"
        assert config["storage"]["database"] == "metadata.duckdb"
        assert config["cleanup"]["orphan_min_age_days"] == 7

    def test_empty_file(self, tmp_path):
        (tmp_path / "storage_config.yaml").write_text("", encoding="utf-8")
        assert load_yaml_file(tmp_path / "storage_config.yaml") == {}
        assert load_config(tmp_path)["storage"]["key_prefix"] == "transcripts"

    def test_environment_overrides(self, tmp_path, monkeypatch):
        write_config(tmp_path, {"storage": {"root": "/from/file"}})
        monkeypatch.setenv("TRANSCRIPT_VAULT_ROOT", "/from/env")
        monkeypatch.setenv("TRANSCRIPT_VAULT_KEY_PREFIX", "envprefix")
        monkeypatch.setenv("TRANSCRIPT_VAULT_LOG_LEVEL", "DEBUG")

        config = load_config(tmp_path)

        assert config["storage"]["root"] == "/from/env"
        assert config["storage"]["key_prefix"] == "envprefix"
        assert config["logging"]["level"] == "DEBUG"

    def test_missing_yaml_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml_file(tmp_path / "missing.yaml")


class TestStorageSettings:
    """Test resolution of settings from configuration."""

    def test_relative_paths_resolve_against_root(self, tmp_path):
        settings = StorageSettings.from_config(DEFAULT_STORAGE_CONFIG, root=tmp_path)

        assert settings.root == tmp_path
        assert settings.blob_root == tmp_path / "blobs"
        assert settings.database_path == tmp_path / "metadata.duckdb"
        assert settings.key_prefix == "transcripts"
        assert settings.orphan_min_age_days == 30

    def test_absolute_paths_kept(self, tmp_path):
        config = deep_merge(DEFAULT_STORAGE_CONFIG, {
            "storage": {"blob_dir": str(tmp_path / "b"), "database": str(tmp_path / "db.duckdb")},
        })
        settings = StorageSettings.from_config(config, root=tmp_path / "root")

        assert settings.blob_root == tmp_path / "b"
        assert settings.database_path == tmp_path / "db.duckdb"

    def test_config_manager(self, tmp_path):
        write_config(tmp_path / "config", {"storage": {"root": str(tmp_path / "store")}})
        config = Config(tmp_path / "config")

        assert config.get("storage", "key_prefix") == "transcripts"
        assert config.get("storage", "missing", default="x") == "x"
        assert config.settings().blob_root == tmp_path / "store" / "blobs"

    def test_reload(self, tmp_path):
        config = Config(tmp_path)
        assert config.get("storage", "key_prefix") == "transcripts"

        write_config(tmp_path, {"storage": {"key_prefix": "changed"}})
        assert config.get("storage", "key_prefix") == "transcripts"
        config.reload()
        assert config.get("storage", "key_prefix") == "changed"

    def test_engine_from_settings(self, tmp_path):
        settings = Config(tmp_path / "config").settings(root=tmp_path / "store")
        storage = TranscriptStorage.from_settings(settings)
        try:
            storage.initialize_database()
            result = storage.upload_transcript("hello", {
                "source_id": "s1", "title": "T", "date": "2023-04-15",
                "speakers": [], "format": "text",
            })
        finally:
            storage.close()

        assert result.location.startswith("file://")
        assert (tmp_path / "store" / "metadata.duckdb").exists()
        assert (tmp_path / "store" / "blobs" / "transcripts" / "s1").is_dir()
