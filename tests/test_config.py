#!/usr/bin/env python3
"""
Tests for configuration storage and setting resolution.
"""

import logging
import stat

import pytest

from cellcoach import config
from cellcoach.logging_setup import configure_logging


class TestConfigFile:
    """Tests for reading and writing ~/.cellcoach/config.json"""

    def test_config_dir_under_home(self, isolated_home):
        """Test the config directory lives in the user's home"""
        assert config.get_config_dir() == isolated_home / '.cellcoach'
        assert config.get_config_dir().is_dir()

    def test_missing_file_is_empty(self):
        """Test no file means an empty config"""
        assert config.load_config() == {}

    def test_save_and_load(self):
        """Test values round-trip through the file"""
        config.set_config_value('step_limit', 500)
        assert config.get_config_value('step_limit') == 500

    def test_file_permissions(self):
        """Test the saved file is readable only by its owner"""
        config.save_config({'log_level': 'INFO'})
        mode = stat.S_IMODE(config.get_config_path().stat().st_mode)
        assert mode == 0o600

    def test_corrupt_file_ignored(self):
        """Test unreadable JSON falls back to an empty config"""
        config.get_config_path().write_text('{not json')
        assert config.load_config() == {}


class TestSettings:
    """Tests for env > file > default resolution"""

    def test_defaults(self):
        """Test defaults apply with no file and no environment"""
        assert config.get_settings() == {
            'step_limit': 10000,
            'max_suggested_hints': 2,
            'output_preview_chars': 200,
            'log_level': 'WARNING',
        }

    def test_file_overrides_default(self):
        """Test a saved value beats the default"""
        config.set_config_value('max_suggested_hints', 3)
        assert config.get_setting('max_suggested_hints') == 3

    def test_env_overrides_file(self, monkeypatch):
        """Test the environment beats the config file"""
        config.set_config_value('step_limit', 500)
        monkeypatch.setenv('CELLCOACH_STEP_LIMIT', '2500')
        assert config.get_setting('step_limit') == 2500

    def test_bad_env_value(self, monkeypatch):
        """Test a non-numeric step limit is reported"""
        monkeypatch.setenv('CELLCOACH_STEP_LIMIT', 'lots')
        with pytest.raises(ValueError):
            config.get_setting('step_limit')

    def test_parse_assignment(self):
        """Test KEY=VALUE parsing converts to the setting's type"""
        assert config.parse_assignment('step_limit=20000') == ('step_limit', 20000)
        assert config.parse_assignment('log_level = DEBUG') == ('log_level', 'DEBUG')

    def test_parse_assignment_errors(self):
        """Test malformed and unknown assignments are rejected"""
        with pytest.raises(ValueError):
            config.parse_assignment('step_limit')
        with pytest.raises(ValueError):
            config.parse_assignment('colour=blue')


class TestLogging:
    """Tests for configure_logging"""

    def teardown_method(self):
        root = logging.getLogger()
        for handler in [h for h in root.handlers if h.get_name() == 'cellcoach-rich']:
            root.removeHandler(handler)
        root.setLevel(logging.WARNING)

    def test_handler_installed_once(self):
        """Test repeated calls keep a single rich handler and update the level"""
        root = logging.getLogger()
        configure_logging('INFO')
        configure_logging('DEBUG')

        handlers = [h for h in root.handlers if h.get_name() == 'cellcoach-rich']
        assert len(handlers) == 1
        assert root.level == logging.DEBUG

    def test_level_from_environment(self, monkeypatch):
        """Test the log level falls back to CELLCOACH_LOG_LEVEL"""
        monkeypatch.setenv('CELLCOACH_LOG_LEVEL', 'error')
        configure_logging()
        assert logging.getLogger().level == logging.ERROR
