"""
Configuration management for the argument list validator.

This module provides flexible configuration management with support for:
- Environment variables
- Configuration files (YAML/JSON)
- Configuration validation
- Hot-reloading
"""

import os
import json
import yaml
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
from dataclasses import dataclass, field
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler
from pydantic import BaseModel, ValidationError, Field, field_validator

from .logging_config import get_logger
from .messages import MessageTemplates, MessageFormatter

logger = get_logger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
CONFIG_SECTIONS = ("messages", "logging")


@dataclass
class MessageConfig:
    """Message templates and the translation table fed to the formatter."""
    required: str = MessageTemplates.required
    type_mismatch: str = MessageTemplates.type_mismatch
    invalid_descriptor: str = MessageTemplates.invalid_descriptor
    translations: Dict[str, str] = field(default_factory=dict)


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    structured: bool = True
    enable_file_logging: bool = False
    log_file_path: Optional[str] = None


class ConfigurationModel(BaseModel):
    """Pydantic model for configuration validation."""
    messages: MessageConfig = Field(default_factory=MessageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"arbitrary_types_allowed": True}

    @field_validator("logging")
    @classmethod
    def _check_level(cls, value: LoggingConfig) -> LoggingConfig:
        level = value.level.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value.level}")
        value.level = level
        return value


def _parse_bool(value: str) -> bool:
    return value.lower() in ['true', '1', 'yes']


class ConfigFileHandler(FileSystemEventHandler):
    """File system event handler for configuration hot-reloading."""

    def __init__(self, config_manager: 'ConfigManager'):
        self.config_manager = config_manager
        super().__init__()

    def _is_config_file(self, path) -> bool:
        return Path(os.fsdecode(path)).resolve() == self.config_manager.config_file_path

    def _reload(self, path, action: str):
        logger.info(f"Configuration file {os.fsdecode(path)} {action}, reloading...")
        self.config_manager.reload_configuration()

    def on_modified(self, event):
        if not event.is_directory and self._is_config_file(event.src_path):
            self._reload(event.src_path, "modified")

    def on_created(self, event):
        if not event.is_directory and self._is_config_file(event.src_path):
            self._reload(event.src_path, "created")

    def on_moved(self, event):
        # Editors that save atomically rename a temporary file over the original
        if not event.is_directory and self._is_config_file(event.dest_path):
            self._reload(event.dest_path, "replaced")


class ConfigManager:
    """
    Flexible configuration manager supporting environment variables,
    configuration files, validation, and hot-reloading.
    """

    def __init__(self, config_file: Optional[Union[str, Path]] = None, enable_hot_reload: bool = True):
        """
        Initialize the configuration manager.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            enable_hot_reload: Whether to enable hot-reloading of configuration files
        """
        # Absolute, so file system events for relative paths still match
        self.config_file_path = Path(config_file).resolve() if config_file else None
        self.enable_hot_reload = enable_hot_reload
        self._config_lock = threading.RLock()
        self._observer = None
        self._config: Optional[ConfigurationModel] = None

        self.load_configuration()

        if self.enable_hot_reload and self.config_file_path and self.config_file_path.exists():
            self._setup_hot_reload()

    def _setup_hot_reload(self):
        """Set up file system monitoring for hot-reloading."""
        if self._observer:
            self._observer.stop()
            self._observer.join()

        self._observer = Observer()
        event_handler = ConfigFileHandler(self)
        self._observer.schedule(event_handler, str(self.config_file_path.parent), recursive=False)
        self._observer.start()

    def load_configuration(self):
        """Load configuration from environment variables and config file."""
        with self._config_lock:
            config_dict = {}

            if self.config_file_path and self.config_file_path.exists():
                config_dict = self._load_config_file()

            for section in CONFIG_SECTIONS:
                if section in config_dict and config_dict[section] is None:
                    config_dict[section] = {}
                elif section in config_dict and not isinstance(config_dict[section], dict):
                    raise ValueError(
                        f"Configuration validation failed: section '{section}' must be a mapping"
                    )

            config_dict = self._load_environment_variables(config_dict)

            try:
                self._config = ConfigurationModel(**config_dict)
            except ValidationError as e:
                raise ValueError(f"Configuration validation failed: {e}")

    def _load_config_file(self) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        suffix = self.config_file_path.suffix.lower()
        if suffix not in ['.yml', '.yaml', '.json']:
            raise ValueError(f"Unsupported configuration file format: {self.config_file_path.suffix}")
        try:
            with open(self.config_file_path, 'r') as f:
                if suffix == '.json':
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ValueError(f"Failed to load configuration file {self.config_file_path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(
                f"Configuration validation failed: {self.config_file_path} must contain a mapping, "
                f"not {type(data).__name__}"
            )
        return data

    def _load_environment_variables(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_mappings = {
            # Logging
            'ARGLIST_VALIDATOR_LOG_LEVEL': ('logging', 'level', str),
            'ARGLIST_VALIDATOR_STRUCTURED_LOGS': ('logging', 'structured', _parse_bool),
            'ARGLIST_VALIDATOR_FILE_LOGGING': ('logging', 'enable_file_logging', _parse_bool),
            'ARGLIST_VALIDATOR_LOG_FILE': ('logging', 'log_file_path', str),

            # Message templates
            'ARGLIST_VALIDATOR_MSG_REQUIRED': ('messages', 'required', str),
            'ARGLIST_VALIDATOR_MSG_TYPE_MISMATCH': ('messages', 'type_mismatch', str),
            'ARGLIST_VALIDATOR_MSG_INVALID_DESCRIPTOR': ('messages', 'invalid_descriptor', str),
        }

        for env_var, (section, key, type_converter) in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                try:
                    if section not in config_dict:
                        config_dict[section] = {}

                    config_dict[section][key] = type_converter(env_value)
                except (ValueError, TypeError) as e:
                    raise ValueError(f"Invalid value for environment variable {env_var}: {env_value} ({e})")

        return config_dict

    def reload_configuration(self):
        """Reload configuration from file and environment variables."""
        try:
            self.load_configuration()
            logger.info("Configuration reloaded successfully")
        except ValueError as e:
            # Keep serving the previous configuration
            logger.error(f"Failed to reload configuration: {e}")

    @property
    def config(self) -> ConfigurationModel:
        """Get the current configuration."""
        with self._config_lock:
            if self._config is None:
                raise RuntimeError("Configuration not loaded")
            return self._config

    def get_message_templates(self) -> MessageTemplates:
        """Get the configured message templates."""
        return self.get_message_settings()[0]

    def get_message_formatter(self) -> MessageFormatter:
        """Get a message formatter using the configured translations."""
        return self.get_message_settings()[1]

    def get_message_settings(self) -> Tuple[MessageTemplates, MessageFormatter]:
        """Get templates and formatter from one configuration snapshot."""
        messages = self.config.messages
        templates = MessageTemplates(
            required=messages.required,
            type_mismatch=messages.type_mismatch,
            invalid_descriptor=messages.invalid_descriptor,
        )
        return templates, MessageFormatter(messages.translations)

    def stop(self):
        """Stop the configuration manager and clean up resources."""
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get the global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        config_paths = [
            Path("arglist_validator.yml"),
            Path("arglist_validator.yaml"),
            Path("arglist_validator.json"),
            Path("/etc/arglist-validator/config.yml"),
            Path("/etc/arglist-validator/config.yaml"),
            Path("/etc/arglist-validator/config.json"),
        ]

        config_file = None
        for path in config_paths:
            if path.exists():
                config_file = path
                break

        _config_manager = ConfigManager(config_file)

    return _config_manager


def set_config_manager(config_manager: Optional[ConfigManager]):
    """Set the global configuration manager instance."""
    global _config_manager
    if _config_manager and _config_manager is not config_manager:
        _config_manager.stop()
    _config_manager = config_manager
