"""Configuration management for the tt application."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = "~/.tt"


def _default_data_dir() -> str:
    return os.environ.get("TT_DATA_DIR", DEFAULT_DATA_DIR)


@dataclass
class ConfigModel:
    """Global configuration model for tt."""

    # Storage
    data_dir: str = field(default_factory=_default_data_dir)

    # Listing
    default_view: str = "today"
    sort: str = ""  # Global default sort spec, e.g. "due,title"
    view_sort: Dict[str, str] = field(default_factory=dict)  # Per-view overrides

    # Display
    date_format: str = "%Y-%m-%d"

    # Behavior
    log_level: str = "WARNING"
    strict_regeneration: bool = False  # Raise instead of skipping failed regeneration

    def __post_init__(self):
        self.data_dir = os.path.expanduser(str(self.data_dir))

    def to_yaml(self) -> str:
        """Serialize config to YAML."""
        data = {
            "data_dir": self.data_dir,
            "default_view": self.default_view,
            "sort": self.sort,
            "view_sort": dict(self.view_sort),
            "date_format": self.date_format,
            "log_level": self.log_level,
            "strict_regeneration": self.strict_regeneration,
        }
        return yaml.safe_dump(data, default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ConfigModel":
        """Deserialize config from YAML, ignoring unknown keys."""
        data = yaml.safe_load(yaml_str) or {}
        if not isinstance(data, dict):
            raise ValueError("config file must contain a mapping")

        known = {name for name in cls.__dataclass_fields__}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**{key: value for key, value in data.items() if key in known})

    def get_sort(self, view: str) -> str:
        """Sort spec for a view: view-specific, then global, then empty."""
        return self.view_sort.get(view) or self.sort

    def get_tasks_dir(self) -> Path:
        return Path(self.data_dir) / "tasks"

    def get_areas_path(self) -> Path:
        return Path(self.data_dir) / "areas.yaml"

    def get_config_path(self) -> Path:
        return Path(self.data_dir) / "config.yaml"


class Config:
    """Configuration manager for tt."""

    _instance: Optional[ConfigModel] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> ConfigModel:
        """Load configuration from file or create default."""
        if cls._instance is not None:
            return cls._instance

        config = ConfigModel()

        if config_path is None:
            config_path = config.get_config_path()
        config_path = Path(config_path)

        if config_path.exists():
            try:
                config = ConfigModel.from_yaml(config_path.read_text(encoding="utf-8"))
                logger.debug(f"Loaded configuration from {config_path}")
            except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load config from {config_path}: {e}; using defaults")
        else:
            cls.save(config, config_path)
            logger.info(f"Created default configuration at {config_path}")

        cls._instance = config
        return config

    @classmethod
    def save(cls, config: ConfigModel, config_path: Optional[Path] = None) -> None:
        """Save configuration to file."""
        if config_path is None:
            config_path = config.get_config_path()
        config_path = Path(config_path)

        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            config_path.write_text(config.to_yaml(), encoding="utf-8")
            logger.debug(f"Configuration saved to {config_path}")
        except OSError as e:
            logger.error(f"Failed to save config to {config_path}: {e}")

    @classmethod
    def get(cls) -> ConfigModel:
        """Get the current configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reload(cls, config_path: Optional[Path] = None) -> ConfigModel:
        """Reload configuration from file."""
        cls._instance = None
        return cls.load(config_path)

    @classmethod
    def reset(cls) -> None:
        """Forget the cached configuration (useful for testing)."""
        cls._instance = None


def get_config() -> ConfigModel:
    """Get the current configuration."""
    return Config.get()


def load_config(config_path: Optional[Path] = None) -> ConfigModel:
    """Load configuration from file."""
    return Config.load(config_path)


def save_config(config: ConfigModel, config_path: Optional[Path] = None) -> None:
    """Save configuration to file."""
    Config.save(config, config_path)
