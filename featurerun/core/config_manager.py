"""
Configuration file management for featurerun.

Loads an optional YAML or JSON configuration file over the environment-based
defaults and hot-reloads it when the file changes on disk.
"""

import os
import json
import threading
import time
from dataclasses import fields
from pathlib import Path
from typing import Dict, Any, Optional, List, Callable

import yaml
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler

from .config import Config
from .exceptions import ValidationError
from .logging_config import get_logger

DEFAULT_CONFIG_FILENAMES = ("featurerun.config.yaml", "featurerun.config.yml", "featurerun.config.json")

_PATH_SUFFIXES = ("_dir", "_root", "_file")


class ConfigFileHandler(FileSystemEventHandler):
    """File system event handler for configuration hot-reloading."""

    def __init__(self, config_manager: "ConfigManager"):
        self.config_manager = config_manager
        self.last_reload = time.time()
        self.reload_debounce = 1.0  # 1 second debounce

    def on_modified(self, event):
        """Handle file modification events."""
        if event.is_directory:
            return

        if Path(event.src_path).name != self.config_manager.config_file_path.name:
            return

        current_time = time.time()
        if current_time - self.last_reload > self.reload_debounce:
            self.last_reload = current_time
            self.config_manager._trigger_reload()


class ConfigManager:
    """
    Configuration management with file overrides, validation and hot-reloading.

    The file holds any subset of ``Config`` field names. Paths are resolved
    relative to the directory containing the file.
    """

    def __init__(self, config_file_path: Optional[Path] = None):
        self.config_file_path = Path(config_file_path) if config_file_path else self._discover()
        self.logger = get_logger("featurerun.config")

        self._config: Optional[Config] = None
        self._unknown_keys: List[str] = []
        self._reload_callbacks: List[Callable[[Config], None]] = []
        self._observer: Optional[Observer] = None
        self._lock = threading.RLock()

    @staticmethod
    def _discover() -> Path:
        for name in DEFAULT_CONFIG_FILENAMES:
            candidate = Path.cwd() / name
            if candidate.exists():
                return candidate
        return Path.cwd() / DEFAULT_CONFIG_FILENAMES[0]

    def get_config(self) -> Config:
        """Get current configuration, loading if necessary."""
        with self._lock:
            if self._config is None:
                self._config = self._load_config()
            return self._config

    def reload_config(self) -> Config:
        """Force reload configuration from files."""
        with self._lock:
            self._config = self._load_config()
            self._notify_reload_callbacks()
            return self._config

    def validate_config(self, config: Optional[Config] = None) -> List[str]:
        """
        Validate configuration and return list of validation errors.

        Args:
            config: Configuration to validate. If None, uses current config.

        Returns:
            List of validation error messages. Empty list if valid.
        """
        if config is None:
            config = self.get_config()

        errors = []
        try:
            config.validate()
        except ValidationError as e:
            errors.extend(e.violations)

        for key in self._unknown_keys:
            errors.append(f"Unknown configuration key in {self.config_file_path.name}: {key}")

        return errors

    def read_file_overrides(self) -> Dict[str, Any]:
        """Read the raw key/value overrides from the configuration file."""
        if not self.config_file_path.exists():
            return {}

        text = self.config_file_path.read_text(encoding="utf-8")
        if self.config_file_path.suffix.lower() == ".json":
            data = json.loads(text) if text.strip() else {}
        else:
            data = yaml.safe_load(text) or {}

        if not isinstance(data, dict):
            raise ValidationError(
                f"Configuration file must contain a mapping: {self.config_file_path}",
                validation_type="config_file",
            )
        return data

    def save_config(self, config: Config) -> None:
        """Save configuration to file."""
        config_dict = {}
        for item in fields(Config):
            value = getattr(config, item.name)
            if isinstance(value, Path):
                value = str(value)
            config_dict[item.name] = value

        self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file_path, "w", encoding="utf-8") as f:
            if self.config_file_path.suffix.lower() == ".json":
                json.dump(config_dict, f, indent=2, default=str)
            else:
                yaml.safe_dump(config_dict, f, sort_keys=False)

    def start_hot_reload(self) -> None:
        """Start hot-reloading of the configuration file."""
        if self._observer is not None:
            return

        watch_dir = self.config_file_path.parent
        watch_dir.mkdir(parents=True, exist_ok=True)

        self._observer = Observer()
        self._observer.schedule(ConfigFileHandler(self), str(watch_dir), recursive=False)
        self._observer.start()
        self.logger.debug(f"Watching configuration file: {self.config_file_path}")

    def stop_hot_reload(self) -> None:
        """Stop hot-reloading of the configuration file."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    def add_reload_callback(self, callback: Callable[[Config], None]) -> None:
        """Add callback to be called when configuration is reloaded."""
        self._reload_callbacks.append(callback)

    def remove_reload_callback(self, callback: Callable[[Config], None]) -> None:
        """Remove reload callback."""
        if callback in self._reload_callbacks:
            self._reload_callbacks.remove(callback)

    def _load_config(self) -> Config:
        """Load configuration from environment and file overrides."""
        env_config = Config.from_env()
        kwargs = {
            "ci_mode": env_config.ci_mode,
            "log_level": env_config.log_level,
            "log_format": env_config.log_format,
            "java_executable": env_config.java_executable,
        }
        workspace = os.getenv("FEATURERUN_WORKSPACE")
        if workspace:
            kwargs["workspace_root"] = Path(workspace)

        try:
            overrides = self.read_file_overrides()
        except (ValidationError, ValueError, yaml.YAMLError, OSError) as e:
            self.logger.warning(f"Could not load config file {self.config_file_path}: {e}")
            overrides = {}

        known = {item.name for item in fields(Config)}
        base_dir = self.config_file_path.parent
        self._unknown_keys = sorted(key for key in overrides if key not in known)

        for key, value in overrides.items():
            if key not in known:
                continue
            if key.endswith(_PATH_SUFFIXES) and value is not None:
                value = Path(value)
                if not value.is_absolute():
                    value = base_dir / value
            kwargs[key] = value

        return Config(**kwargs)

    def _trigger_reload(self) -> None:
        """Trigger configuration reload (called by file watcher)."""
        try:
            self.reload_config()
            self.logger.info(f"Configuration reloaded from {self.config_file_path}")
        except Exception as e:
            self.logger.error(f"Error reloading configuration: {e}")

    def _notify_reload_callbacks(self) -> None:
        """Notify all registered callbacks of configuration reload."""
        for callback in self._reload_callbacks:
            try:
                callback(self._config)
            except Exception as e:
                self.logger.error(f"Error in reload callback: {e}")
