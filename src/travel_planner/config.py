"""Configuration system using platformdirs for cross-platform paths."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import platformdirs

APP_NAME = "travel-planner"
ENV_PREFIX = "TRAVEL_PLANNER_"


@dataclass
class Config:
	"""Central configuration with XDG/platform conventions."""

	config_dir: Path = field(default_factory=lambda: Path(platformdirs.user_config_dir(APP_NAME)))
	data_dir: Path = field(default_factory=lambda: Path(platformdirs.user_data_dir(APP_NAME)))

	# Explicit database location; derived from data_dir when unset
	db_file: Optional[Path] = None

	# Derived paths
	db_path: Path = field(init=False)
	log_dir: Path = field(init=False)

	# Server
	host: str = "127.0.0.1"
	port: int = 3000
	log_level: str = "INFO"

	# Storage
	busy_timeout: float = 30.0
	default_page_size: int = 10

	def __post_init__(self) -> None:
		self.db_path = self.db_file or self.data_dir / "travel_planner.db"
		self.log_dir = self.data_dir / "logs"

	def ensure_dirs(self) -> None:
		"""Create all required directories."""
		self.config_dir.mkdir(parents=True, exist_ok=True)
		self.data_dir.mkdir(parents=True, exist_ok=True)
		self.log_dir.mkdir(parents=True, exist_ok=True)
		self.db_path.parent.mkdir(parents=True, exist_ok=True)


PATH_FIELDS = {"config_dir", "data_dir", "db_file"}
INT_FIELDS = {"port", "default_page_size"}
FLOAT_FIELDS = {"busy_timeout"}


def _coerce(key: str, val):
	if key in PATH_FIELDS:
		return Path(os.path.expanduser(str(val)))
	if key in INT_FIELDS:
		return int(val)
	if key in FLOAT_FIELDS:
		return float(val)
	return val


def _apply_env_overrides(config: Config) -> Config:
	"""Apply TRAVEL_PLANNER_* environment variable overrides."""
	env_map = {
		f"{ENV_PREFIX}CONFIG_DIR": "config_dir",
		f"{ENV_PREFIX}DATA_DIR": "data_dir",
		f"{ENV_PREFIX}DB_PATH": "db_file",
		f"{ENV_PREFIX}HOST": "host",
		f"{ENV_PREFIX}PORT": "port",
		f"{ENV_PREFIX}LOG_LEVEL": "log_level",
		f"{ENV_PREFIX}BUSY_TIMEOUT": "busy_timeout",
	}
	for env_key, attr in env_map.items():
		val = os.getenv(env_key)
		if val:
			setattr(config, attr, _coerce(attr, val))
	# Recompute derived paths after overrides
	config.__post_init__()
	return config


def _apply_toml(config: Config) -> Config:
	"""Apply config.toml overrides if file exists."""
	toml_path = config.config_dir / "config.toml"
	if not toml_path.exists():
		return config

	with open(toml_path, "rb") as f:
		data = tomllib.load(f)

	for key, val in data.items():
		if key == "db_path":
			key = "db_file"
		if hasattr(config, key):
			setattr(config, key, _coerce(key, val))

	# Recompute derived paths after toml overrides
	config.__post_init__()
	return config


def load_config() -> Config:
	"""Load config with precedence: env vars > config.toml > defaults."""
	config = Config()
	# config_dir itself may come from the environment
	config = _apply_env_overrides(config)
	config = _apply_toml(config)
	config = _apply_env_overrides(config)
	config.ensure_dirs()
	return config


# Singleton
_config: Config | None = None


def get_config() -> Config:
	"""Get or create the global config instance."""
	global _config
	if _config is None:
		_config = load_config()
	return _config
