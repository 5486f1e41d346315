"""
Configuration Loader Service

Loads evaluator configuration from docagg.json in the project root.
Environment variables always take precedence over config file values.

Config file location (in order of precedence):
1. DOCAGG_PROJECT_ROOT/docagg.json (if DOCAGG_PROJECT_ROOT is set)
2. CWD/docagg.json

Supported settings in docagg.json:
{
    "strict_fields": true,        // -> DOCAGG_STRICT_FIELDS
    "log_level": "INFO",          // -> DOCAGG_LOG_LEVEL
    "log_dir": ".docagg",         // -> DOCAGG_LOG_DIR
    "debug_log": "1"              // -> DOCAGG_DEBUG_LOG ("" disables the file log)
}
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluatorSettings:
    """Resolved evaluator settings.

    ::: This is-in-layer Service-Layer.
    ::: This is a value-object.
    ::: This is stateless.
    """
    strict_fields: bool = True
    log_level: str = "INFO"


class ConfigLoader:
    """
    Loads configuration from docagg.json file.

    ::: This is-in-layer Service-Layer.
    ::: This is a loader.
    ::: This is-in-process Main-Process.
    ::: This is stateless.

    Priority: Environment variables > docagg.json > defaults
    """

    CONFIG_FILENAME = "docagg.json"

    CONFIG_KEY_TO_ENV = {
        "strict_fields": "DOCAGG_STRICT_FIELDS",
        "log_level": "DOCAGG_LOG_LEVEL",
        "log_dir": "DOCAGG_LOG_DIR",
        "debug_log": "DOCAGG_DEBUG_LOG",
    }

    DEFAULTS = {
        "strict_fields": True,
        "log_level": "INFO",
        "log_dir": ".docagg",
        "debug_log": "1",
    }

    def __init__(self):
        self._config: Dict[str, Any] = {}
        self._config_path: Optional[Path] = None
        self._project_root: Optional[Path] = None
        self._loaded = False

    def load(self, project_root: Optional[Path] = None) -> bool:
        """
        Load configuration from docagg.json.

        Args:
            project_root: Project root directory. If None, uses DOCAGG_PROJECT_ROOT or CWD.

        Returns:
            True if config file was found and loaded, False otherwise.
        """
        if self._loaded:
            return self._config_path is not None

        if project_root is None:
            env_root = os.getenv("DOCAGG_PROJECT_ROOT")
            project_root = Path(env_root) if env_root else Path.cwd()

        self._project_root = Path(project_root)
        config_path = self._project_root / self.CONFIG_FILENAME
        if config_path.exists():
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    loaded = json.load(f)
                if not isinstance(loaded, dict):
                    logger.warning("Ignoring %s: top level must be an object", config_path)
                else:
                    self._config = loaded
                    self._config_path = config_path
                    logger.info("Loaded config from: %s", config_path)
            except json.JSONDecodeError as e:
                logger.warning("Invalid JSON in %s: %s", config_path, e)
            except OSError as e:
                logger.warning("Error loading %s: %s", config_path, e)

        self._loaded = True
        return self._config_path is not None

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting, checking the environment first, then the config
        file, then the built-in default.
        """
        fallback = self.DEFAULTS.get(key, default)
        env_var = self.CONFIG_KEY_TO_ENV.get(key)
        if env_var:
            env_value = os.getenv(env_var)
            if env_value is not None:
                return _coerce(env_value, fallback)
        if key in self._config:
            value = self._config[key]
            if isinstance(value, str):
                return _coerce(value, fallback)
            return value
        return fallback

    def get_settings(self) -> EvaluatorSettings:
        """Build the evaluator settings from the resolved configuration."""
        return EvaluatorSettings(
            strict_fields=bool(self.get("strict_fields")),
            log_level=str(self.get("log_level")).upper(),
        )

    def log_directory(self) -> Path:
        """Directory for the trace log; a relative log_dir is taken from the project root."""
        log_dir = Path(str(self.get("log_dir")))
        if log_dir.is_absolute():
            return log_dir
        return (self._project_root or Path.cwd()) / log_dir

    def file_log_enabled(self) -> bool:
        """The trace log is on unless debug_log is empty or false."""
        value = self.get("debug_log")
        return value is not False and value is not None and value != ""

    @property
    def config_path(self) -> Optional[Path]:
        """Path to the loaded config file, or None if not loaded."""
        return self._config_path

    @property
    def config(self) -> Dict[str, Any]:
        """The loaded configuration dictionary."""
        return self._config.copy()


def _coerce(env_value: str, default: Any) -> Any:
    """Convert an environment string to the type of the default."""
    if isinstance(default, bool):
        return env_value.strip().lower() in ("true", "1", "yes", "on")
    if isinstance(default, int):
        try:
            return int(env_value)
        except ValueError:
            return default
    return env_value


# Global singleton instance
_config_loader: Optional[ConfigLoader] = None


def get_config_loader() -> ConfigLoader:
    """Get the global config loader instance."""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def reset_config_loader() -> None:
    """Drop the global loader so the next call re-reads configuration."""
    global _config_loader
    _config_loader = None


def get_settings() -> EvaluatorSettings:
    """Load configuration if needed and return the evaluator settings."""
    loader = get_config_loader()
    loader.load()
    return loader.get_settings()
