"""
Configuration management for kubectl-mapper

Supports configuration from:
1. Default values (code)
2. Config file (~/.kubectl-mapper/config.yaml)
3. Environment variables (KUBECTL_MAPPER_*)
4. Command-line arguments (highest priority)

Configuration precedence (highest to lowest):
CLI args > ENV vars > Config file > Defaults
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
import yaml

from .models import DiscoveryOptions, RenderOptions
from .resilience import RetryStrategy
from .validation import ConfigurationError

logger = structlog.get_logger(__name__)

ENV_PREFIX = "KUBECTL_MAPPER_"


class Config:
    """Configuration manager for kubectl-mapper"""

    DEFAULTS: Dict[str, Dict[str, Any]] = {
        "output": {
            "colors_enabled": True,
            "show_details": True,
            "compact": False,
            "default_format": "text",  # text, json or yaml
            "width": 100,
        },
        "discovery": {
            "exclude_namespaces": [],
            "max_concurrent_namespaces": 4,
            "max_concurrent_calls": 8,
            "call_timeout_seconds": 10.0,
            "strict": False,
        },
        # retries are off unless asked for
        "retry": {
            "max_retries": 0,
            "base_delay": 0.5,
            "max_delay": 10.0,
        },
        "kubectl": {
            "context": None,
            "kubeconfig": None,
            "path": None,
        },
        "logging": {
            "enabled": True,
            "level": "WARNING",  # DEBUG, INFO, WARNING, ERROR
            "file": None,
            "max_size_mb": 10,
            "backup_count": 3,
        },
    }

    def __init__(self, config_file: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        """Initialize configuration

        Args:
            config_file: Path to config file. An explicit path must exist;
                the default path (~/.kubectl-mapper/config.yaml) is optional.
            environ: Environment mapping (defaults to os.environ)
        """
        self.explicit_file = config_file is not None
        self.config_file = config_file or self._get_default_config_path()
        self.environ = os.environ if environ is None else environ
        self.config = self._load_configuration()

    def _get_default_config_path(self) -> str:
        return str(Path.home() / ".kubectl-mapper" / "config.yaml")

    def _load_configuration(self) -> Dict[str, Any]:
        config = copy.deepcopy(self.DEFAULTS)

        file_config = self._load_from_file()
        if file_config:
            config = self._deep_merge(config, file_config)

        return self._deep_merge(config, self._load_from_env())

    def _load_from_file(self) -> Optional[Dict[str, Any]]:
        """Load configuration from the YAML file

        Raises:
            ConfigurationError: If an explicit file is missing, or any file is unreadable
        """
        config_path = Path(self.config_file).expanduser()

        if not config_path.exists():
            if self.explicit_file:
                raise ConfigurationError(f"config file not found: {self.config_file}")
            logger.debug("Config file not found", path=self.config_file)
            return None

        try:
            with open(config_path, "r") as f:
                config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"failed to load config file {self.config_file}: {e}") from e

        if config is not None and not isinstance(config, dict):
            raise ConfigurationError(f"config file {self.config_file} must contain a mapping")

        logger.info("Loaded configuration from file", path=self.config_file)
        return config or {}

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables

        Environment variables use the format:
        KUBECTL_MAPPER_SECTION_KEY=value

        Example: KUBECTL_MAPPER_OUTPUT_COLORS_ENABLED=false
        """
        config: Dict[str, Any] = {}

        for key, value in self.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            parts = key[len(ENV_PREFIX):].lower().split("_")
            if len(parts) < 2:
                continue

            section = parts[0]
            setting = "_".join(parts[1:])
            config.setdefault(section, {})[setting] = self._parse_env_value(value)

        return config

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value to bool, int, float or str"""
        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        return value

    def _deep_merge(self, base: Dict, overlay: Dict) -> Dict:
        """Deep merge two dictionaries (overlay takes precedence)"""
        result = copy.deepcopy(base)

        for key, value in overlay.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value with dot notation (e.g. "output.colors_enabled")"""
        value = self.config

        try:
            for k in key.split("."):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> None:
        """Set configuration value with dot notation"""
        keys = key.split(".")
        config = self.config

        for k in keys[:-1]:
            config = config.setdefault(k, {})

        config[keys[-1]] = value

    def apply_overrides(self, overrides: Dict[str, Any]) -> None:
        """Apply CLI flags; None values mean "not given" and are skipped"""
        for key, value in overrides.items():
            if value is not None:
                self.set(key, value)

    def exclude_namespaces(self) -> List[str]:
        value = self.get("discovery.exclude_namespaces") or []
        if isinstance(value, str):
            value = [part.strip() for part in value.split(",")]
        return [namespace for namespace in value if namespace]

    def render_options(self) -> RenderOptions:
        return RenderOptions(
            show_details=bool(self.get("output.show_details", True)),
            colors_enabled=bool(self.get("output.colors_enabled", True)),
            compact=bool(self.get("output.compact", False)),
            width=int(self.get("output.width", 100)),
        )

    def discovery_options(self) -> DiscoveryOptions:
        return DiscoveryOptions(
            max_concurrent_namespaces=int(self.get("discovery.max_concurrent_namespaces", 4)),
            strict=bool(self.get("discovery.strict", False)),
        )

    def retry_strategy(self) -> RetryStrategy:
        return RetryStrategy(
            max_retries=int(self.get("retry.max_retries", 0)),
            base_delay=float(self.get("retry.base_delay", 0.5)),
            max_delay=float(self.get("retry.max_delay", 10.0)),
        )

    def save(self, path: Optional[str] = None) -> None:
        """Save configuration to file"""
        save_path = Path(path or self.config_file).expanduser()
        save_path.parent.mkdir(parents=True, exist_ok=True)

        with open(save_path, "w") as f:
            yaml.safe_dump(self.config, f, default_flow_style=False, sort_keys=False)

        logger.info("Saved configuration to file", path=str(save_path))
