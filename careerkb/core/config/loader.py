"""Configuration loader with a layered YAML + environment hierarchy."""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from ..errors import ConfigurationError

# Load environment variables from .env file
load_dotenv()

ENV_PREFIX = "CAREERKB_"
NESTING_SEPARATOR = "__"

# Process-level switches that are read directly, never merged into the config tree
RESERVED_ENV_KEYS = {"CAREERKB_ENV", "CAREERKB_TEST_MODE"}


class ConfigLoader:
    """Load and merge configuration from multiple sources.

    Hierarchy (later overrides earlier):
    1. Default config (config/default.yaml)
    2. Environment config (config/environments/{env}.yaml)
    3. Programmatic overrides passed to ``load``
    4. Environment variables (CAREERKB_SECTION__KEY)
    """

    def __init__(self, config_dir: Path | str | None = None):
        """Initialize config loader.

        Args:
            config_dir: Configuration directory (defaults to ./config at the project root)
        """
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent.parent / "config"
        self.config_dir = Path(config_dir)

    def load(self, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
        """Load configuration with full hierarchy.

        Args:
            overrides: Configuration dict provided programmatically (e.g. by tests or the CLI)

        Returns:
            Merged configuration dictionary
        """
        config = self._load_yaml(self.config_dir / "default.yaml")

        env = os.getenv("CAREERKB_ENV", "development")
        env_config_path = self.config_dir / f"environments/{env}.yaml"
        if env_config_path.exists():
            config = self._deep_merge(config, self._load_yaml(env_config_path))

        if overrides:
            config = self._deep_merge(config, overrides)

        return self._apply_env_overrides(config)

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """Load YAML file.

        Args:
            path: Path to YAML file

        Returns:
            Parsed YAML as dictionary (empty when the file is missing or blank)
        """
        if not path.exists():
            return {}

        with open(path) as f:
            content = yaml.safe_load(f)
            return content if content else {}

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries without mutating ``base``."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_overrides(self, config: dict[str, Any]) -> dict[str, Any]:
        """Override config with environment variables.

        Sections are separated by a double underscore so keys may contain
        single underscores. Example: CAREERKB_PIPELINE__MAX_RESUME_CHARS
        overrides config["pipeline"]["max_resume_chars"].

        Args:
            config: Configuration dictionary

        Returns:
            Config with environment variable overrides
        """
        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX) or key in RESERVED_ENV_KEYS:
                continue
            path = key[len(ENV_PREFIX):].lower().split(NESTING_SEPARATOR)
            if all(path):
                self._set_nested(config, path, value)

        return config

    def _set_nested(self, config: dict[str, Any], path: list[str], value: str) -> None:
        """Set a nested configuration value, creating sections on the way."""
        current = config
        for key in path[:-1]:
            if key not in current or current[key] is None:
                current[key] = {}
            elif not isinstance(current[key], dict):
                return
            current = current[key]

        current[path[-1]] = self._convert_value(value)

    def _convert_value(self, value: str) -> Any:
        """Convert string value to bool, int, float, or leave it as str."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        return value


_config_loader: ConfigLoader | None = None


def get_config_loader() -> ConfigLoader:
    """Get global configuration loader instance.

    Returns:
        ConfigLoader: Global config loader
    """
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def load_config(overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    """Load configuration (convenience function).

    Args:
        overrides: Configuration provided programmatically

    Returns:
        Merged configuration dictionary
    """
    return get_config_loader().load(overrides=overrides)


def resolve_database_url(config: dict[str, Any]) -> str:
    """Return the relational store URL from config, falling back to DATABASE_URL.

    Args:
        config: Merged configuration dictionary

    Returns:
        SQLAlchemy database URL

    Raises:
        ConfigurationError: If no database is configured anywhere
    """
    url = (config.get("database", {}) or {}).get("url") or os.getenv("DATABASE_URL")
    if not url:
        raise ConfigurationError(
            "resume database not configured "
            "(set DATABASE_URL or CAREERKB_DATABASE__URL)"
        )
    return str(url)
