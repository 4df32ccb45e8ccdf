"""Settings file loading shared by the engine, the catalog client and the CLI."""

import json
import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

SETTINGS_PATH = Path("config/settings.json")

DEFAULT_SETTINGS: Dict[str, Any] = {
    "catalog_client": {
        "base_url": "http://localhost:4000/api/v2",
        "timeout_seconds": 10.0,
        "headers": {},
    },
    "variant_engine": {
        "low_stock_threshold": 5,
        "max_quantity_without_stock": 999,
    },
    "logging": {},
}

REQUIRED_SECTIONS = tuple(DEFAULT_SETTINGS)

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Settings file is missing, unreadable or not valid JSON."""


class ConfigLoader:
    """Reads JSON settings, expands ``${VAR}`` / ``${VAR:-fallback}`` and caches per path."""

    ENV_PATTERN = re.compile(r"\$\{([A-Z0-9_]+)(?::-([^}]*))?\}")

    def __init__(self):
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._warned_env: set[str] = set()

    def load_config(self, config_path: str) -> Dict[str, Any]:
        """Return the parsed settings at ``config_path``.

        Raises:
            ConfigurationError: the file does not exist, cannot be read, or is not JSON
        """
        cached = self._cache.get(config_path)
        if cached is not None:
            return cached

        raw = self._read(Path(config_path))
        config = self._expand(raw)

        for problem in self.validate_config_structure(config):
            logger.warning("Settings %s: %s", config_path, problem)

        self._cache[config_path] = config
        logger.debug("Settings loaded from %s", config_path)
        return config

    @staticmethod
    def _read(path: Path) -> Dict[str, Any]:
        if not path.is_file():
            raise ConfigurationError(f"Settings file {path} does not exist")
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Settings file {path} is not valid JSON: {exc}") from exc
        except OSError as exc:
            raise ConfigurationError(f"Settings file {path} could not be read: {exc}") from exc

    def get_nested_value(self, config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
        """Look up ``"section.key.subkey"``; ``default`` when any step is missing.

        >>> ConfigLoader().get_nested_value({"variant_engine": {"low_stock_threshold": 5}},
        ...                                 "variant_engine.low_stock_threshold")
        5
        """
        node: Any = config
        for part in key_path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def clear_cache(self, config_path: Optional[str] = None) -> None:
        if config_path is None:
            self._cache.clear()
            self._warned_env.clear()
        else:
            self._cache.pop(config_path, None)

    def _expand(self, value: Any) -> Any:
        if isinstance(value, str):
            return self.ENV_PATTERN.sub(self._env_value, value)
        if isinstance(value, list):
            return [self._expand(item) for item in value]
        if isinstance(value, dict):
            return {key: self._expand(item) for key, item in value.items()}
        return value

    def _env_value(self, match: "re.Match[str]") -> str:
        name, fallback = match.groups()
        if name in os.environ:
            return os.environ[name]
        if fallback is not None:
            return fallback
        if name not in self._warned_env:
            self._warned_env.add(name)
            logger.warning("Environment variable %s is unset, expanding to an empty string", name)
        return ""

    def validate_config_structure(self, config: Dict[str, Any]) -> List[str]:
        problems: List[str] = []
        for section in REQUIRED_SECTIONS:
            if section not in config or config[section] is None:
                problems.append(f"Missing configuration section '{section}'")
            elif not isinstance(config[section], dict):
                problems.append(f"Section '{section}' must be an object in configuration")
        return problems


config_loader = ConfigLoader()


def _layer(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _layer(result[key], value)
        else:
            result[key] = value
    return result


@lru_cache(maxsize=1)
def load_settings() -> Dict[str, Any]:
    """config/settings.json layered over DEFAULT_SETTINGS; defaults alone when unusable."""
    try:
        loaded = config_loader.load_config(str(SETTINGS_PATH))
    except ConfigurationError as exc:
        logger.warning("%s; falling back to built-in settings", exc)
        loaded = {}
    return _layer(DEFAULT_SETTINGS, loaded)
