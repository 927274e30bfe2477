import os
import copy
import yaml
import json
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import ConfigurationError


DEFAULT_CONFIG: Dict[str, Any] = {
    "general": {
        "log_level": "INFO",
        "debug": False,
    },
    "runner": {
        "features_dir": "features",
        "steps": [],
        "fail_fast": False,
        "dry_run": False,
    },
    "reporter": {
        "formats": [],
        "output_dir": "test-results",
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Manages configuration for co-gherkin"""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else self._get_default_config_path()
        self._config = self._load_config()

    def _get_default_config_path(self) -> Path:
        """Get default configuration path"""
        # Check environment variable first
        if env_path := os.getenv("CO_GHERKIN_CONFIG"):
            return Path(env_path)

        locations = [
            Path.cwd() / "co-gherkin.yaml",
            Path.cwd() / ".co-gherkin" / "config.yaml",
            Path.home() / ".co-gherkin" / "config.yaml",
        ]

        for location in locations:
            if location.exists():
                return location

        return Path.home() / ".co-gherkin" / "config.yaml"

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file, layered over the defaults"""
        if not self.config_path.exists():
            return copy.deepcopy(DEFAULT_CONFIG)

        with open(self.config_path, 'r') as f:
            try:
                if self.config_path.suffix in ('.yaml', '.yml'):
                    loaded = yaml.safe_load(f)
                elif self.config_path.suffix == '.json':
                    loaded = json.load(f)
                else:
                    raise ConfigurationError(f"Unsupported config format: {self.config_path.suffix}")
            except (yaml.YAMLError, json.JSONDecodeError) as e:
                raise ConfigurationError(f"Invalid configuration in {self.config_path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {self.config_path}")

        return _deep_merge(DEFAULT_CONFIG, loaded)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation"""
        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot notation"""
        keys = key.split('.')
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def save(self) -> None:
        """Save configuration to file"""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, 'w') as f:
            if self.config_path.suffix in ('.yaml', '.yml'):
                yaml.safe_dump(self._config, f, default_flow_style=False)
            elif self.config_path.suffix == '.json':
                json.dump(self._config, f, indent=2)
            else:
                raise ConfigurationError(f"Unsupported config format: {self.config_path.suffix}")

    def get_section(self, name: str) -> Dict[str, Any]:
        """Get configuration for a specific section"""
        return self.get(name, {})
