"""
Base configuration classes for the matchfeed configuration system.

Configuration is loaded from:
1. Dataclass defaults
2. config.yaml - Application settings (optional)
3. .env file / environment - Deployment-specific overrides

Features:
- Type-safe data classes
- YAML-based configuration with .env overrides
- Validation returning a list of readable problems
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, List

import yaml
from dotenv import load_dotenv

load_dotenv()


@dataclass
class LoggingConfig:
    """Standardized logging configuration."""
    level: str = "INFO"
    format: str = (
        "%(asctime)s - %(name)s - %(levelname)s - "
        "%(funcName)s:%(lineno)d - %(message)s"
    )
    dir: str = "logs"
    json: bool = False

    def ensure_directories(self):
        """Create log directory if it doesn't exist."""
        Path(self.dir).mkdir(parents=True, exist_ok=True)


@dataclass
class RetryConfig:
    """Retry policy for page navigation."""
    max_attempts: int = 3
    initial_wait: float = 2.0
    max_wait: float = 10.0


def env_flag(name: str, default: bool) -> bool:
    """Read a boolean environment variable ('true', '1', 'yes' are truthy)."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("true", "1", "yes")


def apply_section(section: Any, values: Dict[str, Any]) -> None:
    """Copy known keys from a YAML mapping onto a dataclass section.

    Nested dataclass attributes are updated recursively; unknown keys are
    ignored so old config files keep loading.
    """
    if not isinstance(values, dict):
        return
    known = {f.name for f in fields(section)}
    for key, value in values.items():
        if key not in known:
            continue
        current = getattr(section, key)
        if is_dataclass(current) and isinstance(value, dict):
            apply_section(current, value)
        else:
            setattr(section, key, value)


class BaseConfig(ABC):
    """
    Base configuration class with common functionality.

    Subclasses declare their sections in ``_load_config`` and their
    environment variables in ``_apply_env_overrides``.
    """

    def __init__(self, config_path: str = None):
        """Initialize configuration from YAML and environment variables.

        Args:
            config_path: Optional YAML path. Falls back to CONFIG_FILE_PATH,
                then to ``config.yaml`` in the working directory.
        """
        self._config_path = config_path
        self._load_config()
        self._apply_yaml(self._load_yaml_config())
        self._apply_env_overrides()

    def _load_yaml_config(self) -> Dict[str, Any]:
        """Load configuration from the YAML file.

        Returns:
            Dictionary with configuration from YAML, or empty dict if file not found
        """
        config_path = self._config_path or os.getenv('CONFIG_FILE_PATH', 'config.yaml')
        path = Path(config_path)
        if not path.exists():
            return {}

        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    def _apply_yaml(self, data: Dict[str, Any]) -> None:
        """Overlay YAML sections onto the defaults."""
        for name, values in data.items():
            section = getattr(self, name, None)
            if section is not None and is_dataclass(section):
                apply_section(section, values)

    @abstractmethod
    def _load_config(self) -> None:
        """Initialize configuration sections with defaults.

        Raises:
            NotImplementedError: If subclass does not implement this method.
        """
        raise NotImplementedError("Subclasses must implement _load_config()")

    def _apply_env_overrides(self):
        """
        Apply environment variable overrides.

        Subclasses should override this to add their own env vars.
        """
        if hasattr(self, 'logging') and isinstance(self.logging, LoggingConfig):
            if os.getenv('LOG_LEVEL'):
                self.logging.level = os.getenv('LOG_LEVEL').upper()
            if os.getenv('LOG_DIR'):
                self.logging.dir = os.getenv('LOG_DIR')
            self.logging.json = env_flag('LOG_JSON', self.logging.json)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to dictionary.

        Returns:
            Dictionary representation of configuration
        """
        result = {}
        for field_name, field_value in self.__dict__.items():
            if field_name.startswith('_'):
                continue
            if is_dataclass(field_value):
                result[field_name] = {
                    f.name: getattr(field_value, f.name) for f in fields(field_value)
                }
            else:
                result[field_name] = field_value
        return result

    def validate(self) -> List[str]:
        """
        Validate configuration values.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if hasattr(self, 'logging') and isinstance(self.logging, LoggingConfig):
            valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
            if self.logging.level not in valid_levels:
                errors.append(
                    f"Invalid log level: {self.logging.level}. "
                    f"Must be one of {valid_levels}"
                )

        if hasattr(self, 'retry') and isinstance(self.retry, RetryConfig):
            if self.retry.max_attempts < 1:
                errors.append("retry.max_attempts must be at least 1")

        return errors
