"""Tests for sparebook.core.config."""

import json
import os

import pytest
import yaml

from sparebook.core.config import Config, env_overrides, get_config, merge_into, reset_config
from sparebook.core.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def _reset_singleton():
    """Reset config singleton between tests."""
    reset_config()
    yield
    reset_config()


class TestConfig:
    def test_defaults(self):
        config = Config(env_prefix="")
        assert config.get("logging.level") == "WARNING"
        assert config.get("engine.history_window_days") == 365
        assert config.get("engine.timezone") is None
        assert config.get("cache.ttl_seconds") == 300

    def test_yaml_config_file(self, tmp_dir):
        config_path = os.path.join(tmp_dir, "sparebook.yaml")
        with open(config_path, "w") as f:
            yaml.dump({"engine": {"history_window_days": 90}}, f)

        config = Config(config_file=config_path, env_prefix="")
        assert config.get("engine.history_window_days") == 90
        assert config.get("cache.enabled") is True

    def test_json_config_file(self, tmp_dir):
        config_path = os.path.join(tmp_dir, "sparebook.json")
        with open(config_path, "w") as f:
            json.dump({"cache": {"ttl_seconds": 30}}, f)

        assert Config(config_file=config_path, env_prefix="").get("cache.ttl_seconds") == 30

    def test_missing_file(self, tmp_dir):
        with pytest.raises(ConfigurationError):
            Config(config_file=os.path.join(tmp_dir, "nope.yaml"))

    def test_unsupported_extension(self, tmp_dir):
        config_path = os.path.join(tmp_dir, "sparebook.toml")
        with open(config_path, "w") as f:
            f.write("[engine]\n")
        with pytest.raises(ConfigurationError):
            Config(config_file=config_path)

    def test_file_must_be_mapping(self, tmp_dir):
        config_path = os.path.join(tmp_dir, "list.yaml")
        with open(config_path, "w") as f:
            yaml.dump([1, 2, 3], f)
        with pytest.raises(ConfigurationError):
            Config(config_file=config_path)

    def test_env_overrides_file(self, tmp_dir, monkeypatch):
        config_path = os.path.join(tmp_dir, "sparebook.yaml")
        with open(config_path, "w") as f:
            yaml.dump({"engine": {"timezone": "UTC"}}, f)

        monkeypatch.setenv("SPAREBOOK_ENGINE__TIMEZONE", "Europe/Lisbon")
        config = Config(config_file=config_path)
        assert config.get("engine.timezone") == "Europe/Lisbon"

    def test_custom_env_prefix(self, monkeypatch):
        monkeypatch.setenv("MYAPP_CACHE__ENABLED", "false")
        assert Config(env_prefix="MYAPP_").get("cache.enabled") is False

    def test_empty_file(self, tmp_dir):
        config_path = os.path.join(tmp_dir, "empty.yaml")
        open(config_path, "w").close()
        assert Config(config_file=config_path, env_prefix="").get("cache.ttl_seconds") == 300

    def test_defaults_not_shared(self):
        Config(env_prefix="").set("engine.history_window_days", 7)
        assert Config(env_prefix="").get("engine.history_window_days") == 365

    def test_extra_defaults(self):
        config = Config(env_prefix="", defaults={"custom": {"key": "value"}})
        assert config.get("custom.key") == "value"

    def test_get_missing_key(self):
        config = Config(env_prefix="")
        assert config.get("nonexistent.key") is None
        assert config.get("nonexistent.key", "fallback") == "fallback"

    def test_set(self):
        config = Config(env_prefix="")
        config.set("custom.nested.value", 42)
        assert config.get("custom.nested.value") == 42


class TestGetConfig:
    def test_singleton(self):
        assert get_config() is get_config()

    def test_reset(self):
        first = get_config()
        reset_config()
        assert get_config() is not first


class TestHelpers:
    def test_env_overrides_nesting_and_scalars(self):
        environ = {
            "SPAREBOOK_ENGINE__HISTORY_WINDOW_DAYS": "90",
            "SPAREBOOK_ENGINE__TIMEZONE": "UTC",
            "SPAREBOOK_CACHE__ENABLED": "no-such-bool",
            "OTHER_THING": "1",
        }
        assert env_overrides("SPAREBOOK_", environ) == {
            "engine": {"history_window_days": 90, "timezone": "UTC"},
            "cache": {"enabled": "no-such-bool"},
        }

    def test_env_overrides_disabled(self):
        assert env_overrides("", {"SPAREBOOK_CACHE__ENABLED": "false"}) == {}

    def test_merge_into(self):
        target = {"a": {"b": 1, "c": 2}, "d": 3}
        merge_into(target, {"a": {"c": 20}, "e": 5})
        assert target == {"a": {"b": 1, "c": 20}, "d": 3, "e": 5}
