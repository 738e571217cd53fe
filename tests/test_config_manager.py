"""
Tests for the configuration management system.
"""

import os
import json
import yaml
import pytest
import tempfile
import time
from pathlib import Path
from unittest.mock import MagicMock, patch

from watchdog.events import DirModifiedEvent, FileCreatedEvent, FileModifiedEvent, FileMovedEvent

from arglist_validator.config_manager import (
    ConfigFileHandler,
    ConfigManager,
    ConfigurationModel,
    LoggingConfig,
    MessageConfig,
    get_config_manager,
    set_config_manager
)
from arglist_validator.messages import MessageTemplates
from arglist_validator.param_validator import ArgumentListValidator, ParameterDescriptor


ENV_VARS = [
    'ARGLIST_VALIDATOR_LOG_LEVEL',
    'ARGLIST_VALIDATOR_STRUCTURED_LOGS',
    'ARGLIST_VALIDATOR_FILE_LOGGING',
    'ARGLIST_VALIDATOR_LOG_FILE',
    'ARGLIST_VALIDATOR_MSG_REQUIRED',
    'ARGLIST_VALIDATOR_MSG_TYPE_MISMATCH',
    'ARGLIST_VALIDATOR_MSG_INVALID_DESCRIPTOR',
]


@pytest.fixture(autouse=True)
def clean_environment():
    """Remove validator environment variables around each test."""
    saved = {var: os.environ.pop(var) for var in ENV_VARS if var in os.environ}
    yield
    for var in ENV_VARS:
        os.environ.pop(var, None)
    os.environ.update(saved)


def _write_config(suffix, content):
    with tempfile.NamedTemporaryFile(mode='w', suffix=suffix, delete=False) as f:
        if isinstance(content, str):
            f.write(content)
        elif suffix == '.json':
            json.dump(content, f)
        else:
            yaml.dump(content, f)
        return f.name


class TestConfigurationModels:
    """Test configuration data models."""

    def test_message_config_defaults(self):
        config = MessageConfig()
        assert config.required == "Argument #%1$s is required"
        assert config.type_mismatch == 'Argument #%1$s must be of type "%2$s"'
        assert config.invalid_descriptor == "Parameter #%1$d of the specification is invalid"
        assert config.translations == {}

    def test_logging_config_defaults(self):
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.structured is True
        assert config.enable_file_logging is False
        assert config.log_file_path is None


class TestConfigurationValidation:
    """Test configuration validation with pydantic."""

    def test_valid_configuration(self):
        config = ConfigurationModel(
            messages={"required": "missing %1", "translations": {"a": "b"}},
            logging={"level": "debug"}
        )
        assert config.messages.required == "missing %1"
        assert config.messages.translations == {"a": "b"}
        assert config.logging.level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(Exception):  # pydantic ValidationError
            ConfigurationModel(logging={"level": "LOUD"})

    def test_invalid_configuration_type(self):
        with pytest.raises(Exception):  # pydantic ValidationError
            ConfigurationModel(messages={"translations": "not a mapping"})

    def test_partial_configuration(self):
        config = ConfigurationModel(logging={"structured": False})
        assert config.logging.structured is False
        assert config.logging.level == "INFO"  # Default
        assert config.messages.required == "Argument #%1$s is required"  # Default


class TestConfigManager:
    """Test the ConfigManager class."""

    def test_config_manager_defaults(self):
        manager = ConfigManager()
        assert manager.config.logging.level == "INFO"
        assert manager.config.messages.translations == {}

    def test_config_manager_environment_variables(self):
        """Test ConfigManager loading from environment variables."""
        with patch.dict(os.environ, {
            'ARGLIST_VALIDATOR_LOG_LEVEL': 'warning',
            'ARGLIST_VALIDATOR_STRUCTURED_LOGS': 'no',
            'ARGLIST_VALIDATOR_MSG_REQUIRED': 'Need argument %1',
        }):
            manager = ConfigManager()

        assert manager.config.logging.level == "WARNING"
        assert manager.config.logging.structured is False
        assert manager.config.messages.required == "Need argument %1"

    def test_config_manager_yaml_file(self):
        config_file = _write_config('.yml', {
            'messages': {'type_mismatch': 'Argument %1 is not a %2'},
            'logging': {'level': 'ERROR'},
        })

        try:
            manager = ConfigManager(config_file=config_file, enable_hot_reload=False)
            assert manager.config.messages.type_mismatch == 'Argument %1 is not a %2'
            assert manager.config.logging.level == "ERROR"
        finally:
            os.unlink(config_file)

    def test_config_manager_json_file(self):
        config_file = _write_config('.json', {
            'messages': {'translations': {'Argument #%1$s is required': 'Argument %1 fehlt'}},
        })

        try:
            manager = ConfigManager(config_file=config_file, enable_hot_reload=False)
            assert manager.config.messages.translations == {'Argument #%1$s is required': 'Argument %1 fehlt'}
        finally:
            os.unlink(config_file)

    def test_empty_yaml_file(self):
        config_file = _write_config('.yaml', "")

        try:
            manager = ConfigManager(config_file=config_file, enable_hot_reload=False)
            assert manager.config.logging.level == "INFO"
        finally:
            os.unlink(config_file)

    def test_environment_variables_override_config_file(self):
        config_file = _write_config('.yml', {
            'logging': {'level': 'ERROR', 'structured': False},
        })

        try:
            with patch.dict(os.environ, {'ARGLIST_VALIDATOR_LOG_LEVEL': 'DEBUG'}):
                manager = ConfigManager(config_file=config_file, enable_hot_reload=False)

            assert manager.config.logging.level == "DEBUG"
            assert manager.config.logging.structured is False
        finally:
            os.unlink(config_file)

    def test_invalid_config_file_format(self):
        config_file = _write_config('.txt', "invalid config")

        try:
            with pytest.raises(ValueError, match="Unsupported configuration file format"):
                ConfigManager(config_file=config_file, enable_hot_reload=False)
        finally:
            os.unlink(config_file)

    def test_invalid_yaml_file(self):
        config_file = _write_config('.yml', "invalid: yaml: content: [")

        try:
            with pytest.raises(ValueError, match="Failed to load configuration file"):
                ConfigManager(config_file=config_file, enable_hot_reload=False)
        finally:
            os.unlink(config_file)

    def test_invalid_configuration_values(self):
        with patch.dict(os.environ, {'ARGLIST_VALIDATOR_LOG_LEVEL': 'LOUD'}):
            with pytest.raises(ValueError, match="Configuration validation failed"):
                ConfigManager()

    def test_message_helpers(self):
        """Test templates and formatter are built from configuration."""
        config_file = _write_config('.yml', {
            'messages': {
                'required': 'Missing #%1',
                'translations': {'Missing #%1': 'Fehlt #%1'},
            },
        })

        try:
            manager = ConfigManager(config_file=config_file, enable_hot_reload=False)
            templates = manager.get_message_templates()
            formatter = manager.get_message_formatter()

            assert templates.required == 'Missing #%1'
            assert formatter(templates.required, [4]) == 'Fehlt #4'
        finally:
            os.unlink(config_file)

    def test_validator_from_config(self):
        """Test a configured validator uses configured templates."""
        with patch.dict(os.environ, {'ARGLIST_VALIDATOR_MSG_REQUIRED': 'Argument %1 missing'}):
            manager = ConfigManager()

        validator = ArgumentListValidator.from_config(manager)
        assert validator.validate({}, [ParameterDescriptor(2)]) == ['Argument 2 missing']

    def test_validator_follows_reload(self, tmp_path):
        """Test a configured validator picks up templates after a reload."""
        config_file = tmp_path / "arglist_validator.yml"
        config_file.write_text(yaml.dump({'messages': {'required': 'Missing %1'}}))

        manager = ConfigManager(config_file=config_file, enable_hot_reload=False)
        validator = ArgumentListValidator.from_config(manager)
        assert validator.validate({}, [ParameterDescriptor(0)]) == ['Missing 0']

        config_file.write_text(yaml.dump({
            'messages': {
                'required': 'Still missing %1',
                'translations': {'Still missing %1': 'Fehlt noch %1'},
            },
        }))
        manager.reload_configuration()

        assert validator.validate({}, [ParameterDescriptor(0)]) == ['Fehlt noch 0']

    def test_explicit_templates_override_configuration(self):
        with patch.dict(os.environ, {'ARGLIST_VALIDATOR_MSG_REQUIRED': 'Argument %1 missing'}):
            manager = ConfigManager()

        validator = ArgumentListValidator.from_config(manager, templates=MessageTemplates(required="need %1"))
        assert validator.validate({}, [ParameterDescriptor(1)]) == ['need 1']

    @pytest.mark.parametrize("suffix,content", [
        ('.yml', "- a\n- b\n"),
        ('.yaml', "just a string\n"),
        ('.json', "[1, 2]"),
    ])
    def test_top_level_must_be_mapping(self, suffix, content):
        """Test files that are not a mapping fail validation."""
        config_file = _write_config(suffix, content)

        try:
            with pytest.raises(ValueError, match="Configuration validation failed"):
                ConfigManager(config_file=config_file, enable_hot_reload=False)
        finally:
            os.unlink(config_file)

    def test_null_sections_use_defaults(self):
        """Test empty sections accept environment overrides."""
        config_file = _write_config('.yml', "messages:\nlogging:\n")

        try:
            with patch.dict(os.environ, {'ARGLIST_VALIDATOR_LOG_LEVEL': 'DEBUG'}):
                manager = ConfigManager(config_file=config_file, enable_hot_reload=False)

            assert manager.config.logging.level == "DEBUG"
            assert manager.config.messages.required == "Argument #%1$s is required"
        finally:
            os.unlink(config_file)

    def test_section_must_be_mapping(self):
        config_file = _write_config('.yml', {'logging': ['DEBUG']})

        try:
            with patch.dict(os.environ, {'ARGLIST_VALIDATOR_LOG_LEVEL': 'DEBUG'}):
                with pytest.raises(ValueError, match="section 'logging' must be a mapping"):
                    ConfigManager(config_file=config_file, enable_hot_reload=False)
        finally:
            os.unlink(config_file)

    def test_reload_with_non_mapping_keeps_previous_configuration(self):
        config_file = _write_config('.yml', {'logging': {'level': 'ERROR'}})

        try:
            manager = ConfigManager(config_file=config_file, enable_hot_reload=False)

            with open(config_file, 'w') as f:
                f.write("- a\n- b\n")

            manager.reload_configuration()
            assert manager.config.logging.level == "ERROR"
        finally:
            os.unlink(config_file)


class TestConfigReloading:
    """Test configuration hot-reloading functionality."""

    def test_manual_reload(self):
        config_file = _write_config('.yml', {'logging': {'level': 'ERROR'}})

        try:
            manager = ConfigManager(config_file=config_file, enable_hot_reload=False)
            assert manager.config.logging.level == "ERROR"

            with open(config_file, 'w') as f:
                yaml.dump({'logging': {'level': 'DEBUG'}}, f)

            manager.reload_configuration()
            assert manager.config.logging.level == "DEBUG"
        finally:
            os.unlink(config_file)

    def test_failed_reload_keeps_previous_configuration(self):
        config_file = _write_config('.yml', {'logging': {'level': 'ERROR'}})

        try:
            manager = ConfigManager(config_file=config_file, enable_hot_reload=False)

            with open(config_file, 'w') as f:
                f.write("invalid: yaml: content: [")

            manager.reload_configuration()
            assert manager.config.logging.level == "ERROR"
        finally:
            os.unlink(config_file)

    def test_hot_reload_observer_lifecycle(self):
        config_file = _write_config('.yml', {'logging': {'level': 'ERROR'}})

        try:
            manager = ConfigManager(config_file=config_file, enable_hot_reload=True)
            assert manager._observer is not None
            manager.stop()
            assert manager._observer is None
        finally:
            os.unlink(config_file)

    def test_hot_reload_relative_path(self, tmp_path, monkeypatch):
        """Test editing a config file found by relative path reloads it."""
        monkeypatch.chdir(tmp_path)
        config_file = Path("arglist_validator.yml")
        config_file.write_text(yaml.dump({'logging': {'level': 'ERROR'}}))

        manager = ConfigManager(config_file=config_file, enable_hot_reload=True)
        try:
            assert manager.config_file_path == (tmp_path / "arglist_validator.yml").resolve()
            assert manager.config.logging.level == "ERROR"

            config_file.write_text(yaml.dump({'logging': {'level': 'DEBUG'}}))

            deadline = time.time() + 5
            while manager.config.logging.level != "DEBUG" and time.time() < deadline:
                time.sleep(0.05)
            assert manager.config.logging.level == "DEBUG"
        finally:
            manager.stop()


class TestConfigFileHandler:
    """Test which file system events trigger a reload."""

    def _handler(self, tmp_path):
        manager = MagicMock()
        manager.config_file_path = (tmp_path / "arglist_validator.yml").resolve()
        return ConfigFileHandler(manager), manager

    def test_modified_relative_path(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        handler, manager = self._handler(tmp_path)

        handler.on_modified(FileModifiedEvent("./arglist_validator.yml"))
        manager.reload_configuration.assert_called_once()

    def test_created(self, tmp_path):
        handler, manager = self._handler(tmp_path)

        handler.on_created(FileCreatedEvent(str(tmp_path / "arglist_validator.yml")))
        manager.reload_configuration.assert_called_once()

    def test_moved_over_config_file(self, tmp_path):
        """Test atomic saves that rename a temporary file over the config."""
        handler, manager = self._handler(tmp_path)

        handler.on_moved(FileMovedEvent(
            str(tmp_path / ".arglist_validator.yml.swp"),
            str(tmp_path / "arglist_validator.yml"),
        ))
        manager.reload_configuration.assert_called_once()

    def test_other_files_ignored(self, tmp_path):
        handler, manager = self._handler(tmp_path)

        handler.on_modified(FileModifiedEvent(str(tmp_path / "other.yml")))
        handler.on_created(FileCreatedEvent(str(tmp_path / "other.yml")))
        handler.on_moved(FileMovedEvent(
            str(tmp_path / "arglist_validator.yml"),
            str(tmp_path / "backup.yml"),
        ))
        handler.on_modified(DirModifiedEvent(str(tmp_path)))
        manager.reload_configuration.assert_not_called()

class TestGlobalConfigManager:
    """Test the global configuration manager accessors."""

    def test_get_and_set(self):
        manager = ConfigManager(enable_hot_reload=False)
        set_config_manager(manager)
        try:
            assert get_config_manager() is manager
        finally:
            set_config_manager(None)

    def test_get_creates_instance(self):
        set_config_manager(None)
        try:
            manager = get_config_manager()
            assert isinstance(manager, ConfigManager)
            assert get_config_manager() is manager
        finally:
            set_config_manager(None)
