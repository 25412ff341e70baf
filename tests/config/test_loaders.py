"""
Unit tests for config.loaders module.

Tests cover:
- Path resolution (relative vs absolute)
- YAML loading with environment variable expansion
- Error handling (missing files, invalid YAML)
"""

import os

import pytest
import yaml

from interviewer.config.loaders import (
    CONFIG_PATH_ENV,
    PROJECT_ROOT,
    load_yaml_with_env_expansion,
    resolve_config_path,
)


class TestResolveConfigPath:
    """Tests for resolve_config_path function."""

    def test_absolute_path_unchanged(self):
        """Absolute paths should be returned unchanged."""
        abs_path = "/etc/interviewer/test.yaml"
        assert resolve_config_path(abs_path) == abs_path

    def test_relative_path_resolved(self):
        """Relative paths should be resolved relative to project root."""
        rel_path = "config/interviewer.yaml"
        result = resolve_config_path(rel_path)

        assert os.path.isabs(result)
        assert result.endswith(rel_path)
        assert result.startswith(str(PROJECT_ROOT))

    def test_default_config_exists(self):
        """The shipped config resolves to a real file."""
        assert os.path.isfile(resolve_config_path("config/interviewer.yaml"))

    def test_env_selects_config_file(self, monkeypatch, tmp_path):
        target = tmp_path / "other.yaml"
        monkeypatch.setenv(CONFIG_PATH_ENV, str(target))

        assert resolve_config_path() == str(target)

    def test_default_without_env(self, monkeypatch):
        monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)

        assert resolve_config_path() == str(PROJECT_ROOT / "config" / "interviewer.yaml")


class TestLoadYamlWithEnvExpansion:
    """Tests for load_yaml_with_env_expansion function."""

    def test_load_simple_yaml(self, tmp_path):
        config_file = tmp_path / "test.yaml"
        config_file.write_text("""
presentation:
  talking_hold_ms: 4000
vad:
  enabled: true
  start_threshold: 0.04
""")

        result = load_yaml_with_env_expansion(str(config_file))

        assert result['presentation']['talking_hold_ms'] == 4000
        assert result['vad']['enabled'] is True
        assert result['vad']['start_threshold'] == 0.04

    def test_env_var_expansion_dollar_brace(self, tmp_path, monkeypatch):
        """Should expand ${VAR} style environment variables."""
        monkeypatch.setenv("TEST_MODEL", "gpt-realtime-mini")
        monkeypatch.setenv("TEST_HOLD", "2500")

        config_file = tmp_path / "test.yaml"
        config_file.write_text("""
realtime:
  model: ${TEST_MODEL}
presentation:
  talking_hold_ms: ${TEST_HOLD}
""")

        result = load_yaml_with_env_expansion(str(config_file))

        assert result['realtime']['model'] == 'gpt-realtime-mini'
        # YAML parser converts numeric strings to int
        assert result['presentation']['talking_hold_ms'] == 2500

    def test_env_var_expansion_dollar_only(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TEST_VOICE", "cedar")

        config_file = tmp_path / "test.yaml"
        config_file.write_text("voice: $TEST_VOICE\n")

        assert load_yaml_with_env_expansion(str(config_file))['voice'] == 'cedar'

    def test_missing_env_var_left_unchanged(self, tmp_path, monkeypatch):
        """os.path.expandvars leaves undefined vars alone."""
        monkeypatch.delenv("NONEXISTENT_VAR", raising=False)
        config_file = tmp_path / "test.yaml"
        config_file.write_text("missing: ${NONEXISTENT_VAR}\n")

        result = load_yaml_with_env_expansion(str(config_file))

        assert result['missing'] == '${NONEXISTENT_VAR}'

    def test_file_not_found_raises_error(self):
        with pytest.raises(FileNotFoundError) as exc_info:
            load_yaml_with_env_expansion("/nonexistent/path/interviewer.yaml")

        assert "not found" in str(exc_info.value).lower()

    def test_invalid_yaml_raises_error(self, tmp_path):
        config_file = tmp_path / "invalid.yaml"
        # Invalid YAML: mismatched indentation
        config_file.write_text("""
key1: value1
  key2: value2
    key3: value3
""")

        with pytest.raises(yaml.YAMLError) as exc_info:
            load_yaml_with_env_expansion(str(config_file))

        assert "parsing" in str(exc_info.value).lower()

    def test_empty_file_returns_empty_dict(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        assert load_yaml_with_env_expansion(str(config_file)) == {}

    def test_non_mapping_top_level_rejected(self, tmp_path):
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- realtime\n- vad\n")

        with pytest.raises(yaml.YAMLError):
            load_yaml_with_env_expansion(str(config_file))
