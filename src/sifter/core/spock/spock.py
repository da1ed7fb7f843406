"""Spock - Configuration Manager for sifter.

Spock manages configuration from JSON files, dicts and environment
variables, providing one place to read connection and loader settings.

Configuration hierarchy:
- sifter: Core settings
  - base_url: Backend base URL
  - version: Backend protocol version (drives negation rendering)
  - negation: "must_not", "not_filter" or "auto"
  - bulk_batch_size, scroll_timeout, request_timeout
  - username / password / headers
- indices: Per-index overrides
  - <index_name>: bulk_batch_size, scroll_timeout

Environment variables follow the naming convention:
SIFTER__<section>__<key> for nested values
Example: SIFTER__SIFTER__BASE_URL="http://search:9200"
         SIFTER__INDICES__PRODUCTS__BULK_BATCH_SIZE=500
"""

import json
import logging
import os
from copy import deepcopy
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

SECTIONS = ("sifter", "indices")

DEFAULTS: dict[str, Any] = {
    "base_url": "http://127.0.0.1:9200",
    "version": "7.0.0",
    "negation": "auto",
    "bulk_batch_size": 1000,
    "scroll_timeout": "1m",
    "request_timeout": 30.0,
    "username": None,
    "password": None,
    "headers": {},
}


class Spock:
    """Configuration manager for sifter instances.

    Each Sifter facade owns its own Spock instance, so two facades never
    share configuration state.

    Famous quote from Spock in Star Trek:
    "Logic is the beginning of wisdom, not the end."
    """

    ENV_PREFIX = "SIFTER"
    ENV_SEPARATOR = "__"

    def __init__(self, config_path: str | None = None):
        """Initialize Spock configuration manager.

        Args:
            config_path: Path to JSON configuration file. If None, only
                        provided dicts and environment variables are used.
        """
        self._config_path = config_path
        self._config = self.default_config()
        self._loaded = False
        logger.debug("Spock instance created with config_path=%s", config_path)

    @staticmethod
    def default_config() -> dict[str, Any]:
        """Return a new default config dict each time."""
        return {"sifter": deepcopy(DEFAULTS), "indices": {}}

    def load(self, config: dict[str, Any] | None = None) -> None:
        """Load configuration from defaults, a dict, a JSON file and the environment.

        Args:
            config: Optional config dict merged over the defaults.

        Priority (highest to lowest):
        1. Environment variables
        2. JSON file
        3. Provided config (if any)
        4. Default values
        """
        if self._loaded:
            logger.debug("Configuration already loaded, skipping reload")
            return

        self._config = self.default_config()

        if config is not None:
            self._merge(config, source="config object")

        if self._config_path:
            self._load_from_json()

        self._load_from_env()

        self._loaded = True
        logger.info("Configuration loaded successfully")
        logger.debug(
            "Final config structure: sifter keys=%s, indices=%s",
            list(self._config["sifter"].keys()),
            list(self._config["indices"].keys()),
        )

    def _load_from_json(self) -> None:
        """Load configuration from JSON file."""
        config_file = Path(self._config_path)
        if not config_file.exists():
            logger.warning("Config file not found: %s", self._config_path)
            return

        try:
            with open(config_file, encoding="utf-8") as f:
                json_config = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in config file %s: %s", self._config_path, e)
            raise ValueError(f"Invalid JSON configuration file: {e}") from e

        self._merge(json_config, source=self._config_path)
        logger.info("Loaded configuration from JSON: %s", self._config_path)

    def _merge(self, config: Any, *, source: str) -> None:
        """Validate and merge a config mapping section by section."""
        if not isinstance(config, dict):
            raise ValueError(f"Configuration from {source} must be an object")

        for section in SECTIONS:
            if section not in config:
                continue
            if not isinstance(config[section], dict):
                raise ValueError(f"'{section}' section must be an object")
            if section == "sifter":
                self._config["sifter"].update(deepcopy(config["sifter"]))
            else:
                for index_name, overrides in config["indices"].items():
                    if not isinstance(overrides, dict):
                        raise ValueError(f"'indices.{index_name}' must be an object")
                    self._config["indices"].setdefault(index_name, {}).update(
                        deepcopy(overrides)
                    )

    def _load_from_env(self) -> None:
        """Load configuration from environment variables.

        Environment variables follow the pattern:
        SIFTER__<SECTION>__<KEY>__<SUBKEY>...

        Examples:
        - SIFTER__SIFTER__BASE_URL=http://search:9200
        - SIFTER__SIFTER__HEADERS__X_TENANT=acme
        - SIFTER__INDICES__PRODUCTS__SCROLL_TIMEOUT=5m
        """
        prefix = f"{self.ENV_PREFIX}{self.ENV_SEPARATOR}"

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(prefix):
                continue

            key_path = env_key[len(prefix) :].split(self.ENV_SEPARATOR)

            if len(key_path) < 2:
                logger.warning("Invalid env var format (too short): %s", env_key)
                continue

            section = key_path[0].lower()
            if section not in SECTIONS:
                logger.warning("Invalid section in env var %s: %s", env_key, section)
                continue

            if section == "indices" and len(key_path) < 3:
                logger.warning("Index env var too short: %s", env_key)
                continue

            parsed_value = self._parse_env_value(env_value)
            self._set_nested_value(section, key_path[1:], parsed_value)
            logger.debug("Set from env: %s = %s", env_key, parsed_value)

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value with type inference.

        Attempts to parse as JSON first, falls back to string.
        """
        try:
            return json.loads(value)
        except (json.JSONDecodeError, ValueError):
            return value

    def _set_nested_value(self, section: str, path: list[str], value: Any) -> None:
        """Set a value in nested configuration structure.

        Args:
            section: Top-level section ('sifter' or 'indices')
            path: List of keys representing the path to the value
            value: Value to set
        """
        target = self._config[section]
        for key in path[:-1]:
            target = target.setdefault(key.lower(), {})
        target[path[-1].lower()] = value

    def get_sifter_config(self, key: str | None = None, default: Any = None) -> Any:
        """Get core configuration.

        Args:
            key: Specific configuration key. If None, returns entire core config.
            default: Default value if key not found.

        Returns:
            Configuration value or default.
        """
        if not self._loaded:
            self.load()

        if key is None:
            return deepcopy(self._config["sifter"])

        return self._config["sifter"].get(key, default)

    def get_index_config(self, index_name: str, key: str | None = None, default: Any = None) -> Any:
        """Get index-specific configuration, falling back to the core value.

        Args:
            index_name: Index name.
            key: Specific configuration key. If None, returns the index overrides.
            default: Default value if key is found neither for the index nor in core.

        Returns:
            Configuration value or default.
        """
        if not self._loaded:
            self.load()

        index_config = self._config["indices"].get(index_name, {})

        if key is None:
            return deepcopy(index_config)

        if key in index_config:
            return index_config[key]
        return self._config["sifter"].get(key, default)

    def set_sifter_config(self, key: str, value: Any) -> None:
        """Set core configuration (runtime only, not persisted)."""
        if not self._loaded:
            self.load()

        self._config["sifter"][key] = value
        logger.debug("Set sifter config: %s = %s", key, value)

    def set_index_config(self, index_name: str, key: str, value: Any) -> None:
        """Set index configuration (runtime only, not persisted)."""
        if not self._loaded:
            self.load()

        self._config["indices"].setdefault(index_name, {})[key] = value
        logger.debug("Set index config: %s.%s = %s", index_name, key, value)

    def get_all_config(self) -> dict[str, Any]:
        """Get complete configuration snapshot.

        Returns:
            Deep copy of entire configuration.
        """
        if not self._loaded:
            self.load()

        return deepcopy(self._config)

    def reload(self, config: dict[str, Any] | None = None) -> None:
        """Reload configuration from sources."""
        self._loaded = False
        self.load(config=config)
        logger.info("Configuration reloaded")

    @property
    def config_path(self) -> str | None:
        """Get the configuration file path."""
        return self._config_path

    @property
    def is_loaded(self) -> bool:
        """Check if configuration has been loaded."""
        return self._loaded


ConfigManager = Spock
