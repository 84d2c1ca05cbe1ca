# tests/test_settings.py
"""Tests for editor settings, directories and logging setup."""

import json
import logging

import pytest

from inklayer.utils import (
    EditorSettings,
    configure_logging,
    get_config_dir,
    get_log_dir,
    load_settings,
    save_settings,
)


class TestSettings:
    """Tests for loading and saving settings."""

    def test_defaults(self):
        """Test the default values."""
        settings = EditorSettings()
        assert settings.eraser_radius == 10
        assert settings.highlight_opacity == 0.3
        assert settings.selection_color == "#0066ff"

    def test_missing_file_gives_defaults(self, tmp_path):
        """Test that a missing file falls back to defaults."""
        assert load_settings(str(tmp_path / "none.json")) == EditorSettings()

    def test_unknown_keys_ignored(self, tmp_path):
        """Test that unknown keys do not break loading."""
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"eraser_radius": 25, "theme": "dark"}))
        settings = load_settings(str(path))
        assert settings.eraser_radius == 25
        assert settings.stroke_width == EditorSettings().stroke_width

    def test_malformed_file_gives_defaults(self, tmp_path, caplog):
        """Test that a broken file is logged and ignored."""
        path = tmp_path / "settings.json"
        path.write_text("[1, 2")
        assert load_settings(str(path)) == EditorSettings()
        assert "Ignoring settings file" in caplog.text

    def test_save_then_load_from_config_dir(self, tmp_path):
        """Test the default location in the config dir."""
        save_settings(EditorSettings(font_size=20))
        assert str(get_config_dir()).startswith(str(tmp_path))
        assert load_settings().font_size == 20


_LOGGING_FLAGS = ("_inklayer_configured", "_inklayer_console")


@pytest.fixture
def root_logger():
    """Root logger with the application's handlers removed again afterwards."""
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    saved_flags = {name: getattr(root, name) for name in _LOGGING_FLAGS if hasattr(root, name)}
    for name in saved_flags:
        delattr(root, name)
    yield root
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
    for name in _LOGGING_FLAGS:
        if hasattr(root, name):
            delattr(root, name)
    for name, value in saved_flags.items():
        setattr(root, name, value)


class TestLogging:
    """Tests for logging configuration."""

    def test_configure_logging_is_idempotent(self, root_logger, tmp_path):
        """Test that repeated calls do not stack handlers."""
        log_path = tmp_path / "test.log"
        configure_logging(log_path=str(log_path))
        count = len(root_logger.handlers)
        configure_logging(log_path=str(log_path))
        assert len(root_logger.handlers) == count

        logging.getLogger("inklayer.test").info("hello log")
        for handler in root_logger.handlers:
            handler.flush()
        assert "hello log" in log_path.read_text(encoding="utf-8")

    def test_debug_adds_console_once(self, root_logger, tmp_path):
        """Test that turning on debug later adds a single console handler."""
        configure_logging(log_path=str(tmp_path / "test.log"))
        assert root_logger.level == logging.INFO
        count = len(root_logger.handlers)

        configure_logging(debug=True)
        configure_logging(debug=True)

        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == count + 1

    def test_default_log_file_in_log_dir(self, root_logger, tmp_path):
        """Test that the log file lands in the log directory by default."""
        configure_logging()
        logging.getLogger("inklayer.test").warning("to the default file")
        for handler in root_logger.handlers:
            handler.flush()
        assert "to the default file" in (tmp_path / "logs" / "inklayer.log").read_text(encoding="utf-8")

    def test_log_dir_from_environment(self, tmp_path):
        """Test that INKLAYER_LOG_DIR sets the log directory."""
        assert get_log_dir() == tmp_path / "logs"
        assert get_log_dir().is_dir()
