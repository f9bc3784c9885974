"""
Global app configuration manager for the statgrid webapp.

This module manages the app configuration folder that stores:
- grid_settings.json: grid display minimums, default column width, operation
  history size and log level

The config folder location is determined by (in order of priority):
1. STATGRID_CONFIG environment variable
2. Default platform-specific location (platformdirs user config dir)

Individual settings can be overridden with ``STATGRID_<FIELD>`` environment
variables, e.g. ``STATGRID_MIN_ROWS=200``.
"""

import json
import os
from dataclasses import asdict, dataclass, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

from .shared.logger import get_logger

logger = get_logger(__name__)

APP_NAME = "statgrid"
SETTINGS_FILE_NAME = "grid_settings.json"
_ENV_PREFIX = "STATGRID_"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class GridSettings:
    """User-tunable grid settings."""
    min_rows: int = 100
    min_columns: int = 45
    default_column_width: int = 64
    history_limit: int = 200
    log_level: str = "INFO"

    def validate(self) -> None:
        """Raise ValueError if any setting is out of range."""
        for name in ("min_rows", "min_columns", "default_column_width", "history_limit"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GridSettings":
        defaults = cls()
        values = {}
        for f in fields(cls):
            raw = data.get(f.name, getattr(defaults, f.name))
            values[f.name] = str(raw).upper() if f.name == "log_level" else int(raw)
        return cls(**values)


class AppConfigManager:
    """Manages the app configuration folder and the grid settings file."""

    def __init__(self, config_dir: Optional[Path] = None):
        self._config_dir = Path(config_dir) if config_dir else self._get_config_dir()
        self._config_dir.mkdir(parents=True, exist_ok=True)
        self._settings_path = self._config_dir / SETTINGS_FILE_NAME

    def _get_config_dir(self) -> Path:
        """Get the config directory: STATGRID_CONFIG, else the platform default."""
        env_config = os.environ.get("STATGRID_CONFIG")
        if env_config:
            return Path(env_config)
        return self._get_default_config_dir()

    def _get_default_config_dir(self) -> Path:
        return Path(platformdirs.user_config_dir(APP_NAME))

    @property
    def config_dir(self) -> Path:
        """Get the config directory path."""
        return self._config_dir

    def get_config_path(self) -> str:
        return str(self._config_dir)

    def is_using_custom_path(self) -> bool:
        """Check if using a custom (non-default) config path."""
        return self._config_dir != self._get_default_config_dir()

    # ============================================================================
    # Grid Settings
    # ============================================================================

    def _load_raw_settings(self) -> Dict[str, Any]:
        if self._settings_path.exists():
            try:
                with open(self._settings_path, "r", encoding="utf-8") as f:
                    return json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Failed to load grid settings: %s", e)
        return {}

    def _env_overrides(self) -> Dict[str, Any]:
        overrides = {}
        for f in fields(GridSettings):
            value = os.environ.get(f"{_ENV_PREFIX}{f.name.upper()}")
            if value is not None:
                overrides[f.name] = value
        return overrides

    def get_grid_settings(self) -> GridSettings:
        """Load grid settings from disk with environment overrides applied.

        Invalid values in the file or the environment fall back to defaults.
        """
        data = {**self._load_raw_settings(), **self._env_overrides()}
        try:
            settings = GridSettings.from_dict(data)
            settings.validate()
        except (TypeError, ValueError) as e:
            logger.warning("Invalid grid settings, using defaults: %s", e)
            return GridSettings()
        return settings

    def save_grid_settings(self, settings: GridSettings) -> bool:
        """Save grid settings to disk.

        Raises:
            ValueError: If a setting is out of range.
        """
        settings.validate()
        data = settings.to_dict()
        data["last_updated"] = datetime.now().isoformat()
        try:
            with open(self._settings_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            return True
        except OSError as e:
            logger.error("Failed to save grid settings: %s", e)
            return False

    def update_grid_settings(self, updates: Dict[str, Any]) -> GridSettings:
        """Merge ``updates`` into the stored settings and save them.

        Raises:
            ValueError: If an updated value is invalid.
        """
        unknown = set(updates) - {f.name for f in fields(GridSettings)}
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

        current = GridSettings.from_dict(self._load_raw_settings()).to_dict()
        merged = GridSettings.from_dict({**current, **updates})
        self.save_grid_settings(merged)
        return self.get_grid_settings()


# Global instance
app_config = AppConfigManager()
