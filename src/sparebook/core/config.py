"""
Layered settings for sparebook.

Three layers are merged, later ones winning:
    1. Built-in defaults (``DEFAULTS`` plus any caller-supplied extras)
    2. A YAML or JSON settings file
    3. Environment variables named ``<PREFIX><SECTION>__<KEY>``

Usage:
    config = Config(config_file="sparebook.yaml")
    config.get("engine.history_window_days")
    config.get("cache.ttl_seconds", 300)

    # SPAREBOOK_CACHE__TTL_SECONDS=60 overrides cache.ttl_seconds

Environment values are read as YAML scalars, so ``60`` arrives as an int and
``false`` as a bool. Call :meth:`Config.validated` for a typed view.
"""

import copy
import json
import os
from typing import Any

import yaml

from .exceptions import ConfigurationError

ENV_PREFIX = "SPAREBOOK_"

DEFAULTS: dict[str, Any] = {
    "logging": {"level": "WARNING", "file": None},
    "engine": {"history_window_days": 365, "timezone": None},
    "cache": {"enabled": True, "ttl_seconds": 300},
}

_FILE_LOADERS = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.load,
}


def merge_into(target: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge ``overrides`` into ``target`` in place and return it."""
    for key, value in overrides.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merge_into(current, value)
        else:
            target[key] = value
    return target


def read_settings_file(path: str) -> dict[str, Any]:
    """Parse a settings file into a mapping.

    Raises:
        ConfigurationError: If the file is missing, has an unknown extension,
            or does not hold a mapping at the top level.
    """
    if not os.path.isfile(path):
        raise ConfigurationError(f"Config file not found: {path}")
    ext = os.path.splitext(path)[1].lower()
    loader = _FILE_LOADERS.get(ext)
    if loader is None:
        raise ConfigurationError(f"Unsupported config file type: {ext or path}")
    with open(path) as f:
        try:
            data = loader(f)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Could not parse {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file must contain a mapping: {path}")
    return data


def env_overrides(prefix: str, environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Nested overrides from ``PREFIX_SECTION__KEY=value`` variables."""
    overrides: dict[str, Any] = {}
    if not prefix:
        return overrides
    for name, raw in (os.environ if environ is None else environ).items():
        if not name.startswith(prefix):
            continue
        *sections, leaf = name[len(prefix) :].lower().split("__")
        node = overrides
        for section in sections:
            node = node.setdefault(section, {})
        node[leaf] = _scalar(raw)
    return overrides


def _scalar(raw: str) -> Any:
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw
    return value if isinstance(value, str | int | float | bool) or value is None else raw


class Config:
    """Merged settings with dot-path access."""

    def __init__(
        self,
        config_file: str | None = None,
        env_prefix: str = ENV_PREFIX,
        defaults: dict[str, Any] | None = None,
    ):
        """
        Args:
            config_file: Optional YAML or JSON settings file.
            env_prefix: Prefix of overriding environment variables; empty disables them.
            defaults: Extra defaults layered over ``DEFAULTS``.
        """
        self.config_file = config_file
        self.env_prefix = env_prefix or ""

        data = merge_into(copy.deepcopy(DEFAULTS), copy.deepcopy(defaults or {}))
        if config_file:
            merge_into(data, read_settings_file(config_file))
        self.config_data: dict[str, Any] = merge_into(data, env_overrides(self.env_prefix))

    def get(self, key_path: str, default: Any = None) -> Any:
        """Value at a dot path such as ``"engine.timezone"``, or ``default``."""
        node: Any = self.config_data
        for part in key_path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key_path: str, value: Any) -> None:
        *sections, leaf = key_path.split(".")
        node = self.config_data
        for section in sections:
            node = node.setdefault(section, {})
        node[leaf] = value

    def validated(self):
        """Typed :class:`~sparebook.core.config_schema.SparebookConfig` view.

        Raises:
            ConfigurationError: If any section fails schema validation.
        """
        from pydantic import ValidationError

        from .config_schema import SparebookConfig

        try:
            return SparebookConfig.model_validate(self.config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e


_config_instance: Config | None = None


def get_config(config_file: str | None = None, env_prefix: str = ENV_PREFIX) -> Config:
    """Process-wide Config, built on first use."""
    global _config_instance
    if _config_instance is None:
        _config_instance = Config(config_file=config_file, env_prefix=env_prefix)
    return _config_instance


def reset_config() -> None:
    """Forget the process-wide Config (tests use this)."""
    global _config_instance
    _config_instance = None
