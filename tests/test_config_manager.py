"""Tests for per-project TOML configuration."""

from pathlib import Path

import pytest

from depgraph import config
from depgraph.config_manager import IndexConfig, config_from_dict, load_project_config


class TestLoadProjectConfig:
    """Tests for load_project_config."""

    def test_defaults_without_file(self, temp_dir: Path):
        cfg = load_project_config(temp_dir)

        assert cfg == IndexConfig()
        assert cfg.extensions == frozenset({".swift"})
        assert ".git" in cfg.exclude
        assert cfg.max_file_bytes == config.MAX_FILE_BYTES

    def test_reads_index_table(self, temp_dir: Path):
        (temp_dir / ".depgraph.toml").write_text(
            "[index]\n"
            'extensions = ["swift", ".swiftinterface"]\n'
            'exclude = ["Generated"]\n'
            "workers = 2\n"
            "max_file_bytes = 4096\n"
            "file_timeout = 2.5\n",
            encoding="utf-8",
        )

        cfg = load_project_config(temp_dir)

        assert cfg.extensions == frozenset({".swift", ".swiftinterface"})
        assert "Generated" in cfg.exclude
        assert cfg.workers == 2
        assert cfg.max_file_bytes == 4096
        assert cfg.file_timeout == 2.5

    def test_exclude_extends_defaults(self, temp_dir: Path):
        """User exclusions never re-enable the built-in ones."""
        (temp_dir / ".depgraph.toml").write_text('[index]\nexclude = ["Vendor"]\n', encoding="utf-8")

        cfg = load_project_config(temp_dir)

        assert cfg.exclude == frozenset(config.SKIP_DIRS) | {"Vendor"}

    def test_explicit_config_file(self, temp_dir: Path):
        custom = temp_dir / "custom.toml"
        custom.write_text("[index]\nworkers = 3\n", encoding="utf-8")

        assert load_project_config(temp_dir, config_file=custom).workers == 3

    def test_malformed_file_falls_back(self, temp_dir: Path):
        (temp_dir / ".depgraph.toml").write_text("[index\nworkers = ", encoding="utf-8")
        assert load_project_config(temp_dir) == IndexConfig()

    def test_string_instead_of_list_falls_back(self, temp_dir: Path):
        """A bare string is not split into single-character extensions."""
        (temp_dir / ".depgraph.toml").write_text('[index]\nextensions = ".swift"\n', encoding="utf-8")

        cfg = load_project_config(temp_dir)

        assert cfg == IndexConfig()
        assert cfg.extensions == frozenset({".swift"})

    def test_invalid_values_fall_back(self, temp_dir: Path):
        (temp_dir / ".depgraph.toml").write_text('[index]\nworkers = "many"\n', encoding="utf-8")
        assert load_project_config(temp_dir) == IndexConfig()


class TestConfigFromDict:
    """Tests for config_from_dict."""

    def test_empty_table_is_default(self):
        assert config_from_dict({}) == IndexConfig()

    @pytest.mark.parametrize("payload", [{"extensions": ".swift"}, {"exclude": "Vendor"}])
    def test_non_list_rejected(self, payload):
        with pytest.raises(TypeError):
            config_from_dict(payload)

    def test_workers_at_least_one(self):
        assert config_from_dict({"workers": 0}).workers == 1

    def test_to_dict_is_sorted(self):
        payload = config_from_dict({"extensions": ["swift"]}).to_dict()
        assert payload["extensions"] == [".swift"]
        assert payload["exclude"] == sorted(config.SKIP_DIRS)


class TestEnvironmentOverrides:
    """Tests for environment variables read by depgraph.config."""

    def test_workers_from_environment(self, monkeypatch):
        monkeypatch.setenv("DEPGRAPH_WORKERS", "3")
        assert config.default_workers() == 3

    @pytest.mark.parametrize("value", ["many", "2.5", "0", "-4"])
    def test_invalid_workers_fall_back(self, monkeypatch, value: str):
        """A bad value is logged and ignored instead of failing at import."""
        monkeypatch.setenv("DEPGRAPH_WORKERS", value)
        monkeypatch.setattr(config.os, "cpu_count", lambda: 6)

        assert config.default_workers() == 6

    def test_unset_uses_cpu_count(self, monkeypatch):
        monkeypatch.delenv("DEPGRAPH_WORKERS", raising=False)
        monkeypatch.setattr(config.os, "cpu_count", lambda: None)

        assert config.default_workers() == 1
